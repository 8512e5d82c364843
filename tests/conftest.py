import pytest

from userop_codec.typing import Address
from userop_codec.user_operation.user_operation import UserOperation

# hardhat / anvil default account 0
AUTH_SIGNER_KEY = "0xac0974bec39a17e36ba4a6b4d238ff944bacb478cbed5efcae784d7bf4f2ff80"
AUTH_SIGNER_ADDRESS = "0xf39Fd6e51aad88F6F4ce6aB8827279cffFb92266"

ENTRYPOINT = Address("0x0000000071727De22E5E9d8BAf0edAc6f37da032")
CHAIN_ID = 1337
SENDER = Address("0x1111111111111111111111111111111111111111")
PAYMASTER = Address("0x2222222222222222222222222222222222222222")
FACTORY = Address("0x3333333333333333333333333333333333333333")
DELEGATE = Address("0x4444444444444444444444444444444444444444")


@pytest.fixture
def user_operation() -> UserOperation:
    return UserOperation(
        sender_address=SENDER,
        nonce=123,
        call_data=bytes.fromhex("ca11"),
        call_gas_limit=10,
        verification_gas_limit=20,
        pre_verification_gas=30,
        max_fee_per_gas=40,
        max_priority_fee_per_gas=50,
        signature=bytes.fromhex("deadface"),
        paymaster=PAYMASTER,
        paymaster_verification_gas_limit=60,
        paymaster_post_op_gas_limit=70,
        paymaster_data=bytes.fromhex("cafe"),
    )


@pytest.fixture
def user_operation_without_paymaster() -> UserOperation:
    return UserOperation(
        sender_address=SENDER,
        nonce=1,
        call_data=bytes.fromhex("dead"),
        call_gas_limit=2,
        verification_gas_limit=3,
        pre_verification_gas=0,
        max_fee_per_gas=4,
        max_priority_fee_per_gas=0,
        signature=bytes(0),
    )
