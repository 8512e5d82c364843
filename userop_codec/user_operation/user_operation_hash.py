import logging

from eth_abi import encode
from eth_utils import keccak
from userop_codec.exceptions import CodecException, CodecExceptionCode
from userop_codec.typing import Address, UserOperationHash

from .models import PackedUserOperation
from .paymaster_signature import paymaster_data_keccak
from .user_operation import UserOperation

# code of an eip-7702 delegated account: 0xef0100 || delegate address
EIP7702_DELEGATION_PREFIX = bytes.fromhex("ef0100")

PACKED_USEROP_TYPEHASH = keccak(
    text=(
        "PackedUserOperation(address sender,uint256 nonce,bytes initCode,"
        "bytes callData,bytes32 accountGasLimits,uint256 preVerificationGas,"
        "bytes32 gasFees,bytes paymasterAndData)"
    )
)
EIP712_DOMAIN_TYPEHASH = keccak(
    text=(
        "EIP712Domain(string name,string version,uint256 chainId,"
        "address verifyingContract)"
    )
)
DOMAIN_NAME = "ERC4337"
DOMAIN_VERSION = "1"


def get_user_operation_hash(
    user_operation: UserOperation,
    entrypoint_addr: Address,
    chain_id: int,
    delegate: Address | None = None
) -> UserOperationHash:
    packed_user_operation_hash = keccak(
        pack_user_operation_for_hashing(
            user_operation.pack(),
            _get_delegate_if_eip7702(user_operation, delegate)
        )
    )
    encoded_user_operation_hash = encode(
        ["(bytes32,address,uint256)"],
        [[
            packed_user_operation_hash,
            bytes.fromhex(entrypoint_addr[2:]),
            chain_id
        ]],
    )

    user_operation_hash = "0x" + keccak(encoded_user_operation_hash).hex()
    logging.debug(
        f"UserOperation from {user_operation.sender_address} nonce "
        f"{user_operation.nonce} hash: {user_operation_hash}"
    )
    return UserOperationHash(user_operation_hash)


def get_user_operation_typed_data_hash(
    user_operation: UserOperation,
    entrypoint_addr: Address,
    chain_id: int,
    delegate: Address | None = None
) -> UserOperationHash:
    """
    EIP-712 flavour of the userOpHash, used by entrypoints from v0.8 on.
    """
    packed_user_operation_hash = keccak(
        PACKED_USEROP_TYPEHASH +
        pack_user_operation_for_hashing(
            user_operation.pack(),
            _get_delegate_if_eip7702(user_operation, delegate)
        )
    )
    domain_separator = build_domain_separator(entrypoint_addr, chain_id)
    return UserOperationHash(
        "0x" + keccak(
            b'\x19\x01' + domain_separator + packed_user_operation_hash,
        ).hex()
    )


def build_domain_separator(entrypoint_addr: Address, chain_id: int) -> bytes:
    return keccak(
        encode(
            ["(bytes32,bytes32,bytes32,uint256,address)"],
            [[
                EIP712_DOMAIN_TYPEHASH,
                keccak(text=DOMAIN_NAME),
                keccak(text=DOMAIN_VERSION),
                chain_id,
                bytes.fromhex(entrypoint_addr[2:])
            ]],
        )
    )


def pack_user_operation_for_hashing(
    packed_user_operation: PackedUserOperation,
    delegate: Address | None = None
) -> bytes:
    init_code = packed_user_operation.init_code
    if delegate is not None:
        # the delegate takes the place of the factory address
        init_code = bytes.fromhex(delegate[2:]) + init_code[20:]

    return encode(
        [
            "address",
            "uint256",
            "bytes32",
            "bytes32",
            "bytes32",
            "uint256",
            "bytes32",
            "bytes32",
        ],
        [
            bytes.fromhex(packed_user_operation.sender[2:]),
            packed_user_operation.nonce,
            keccak(init_code),
            keccak(packed_user_operation.call_data),
            packed_user_operation.account_gas_limits,
            packed_user_operation.pre_verification_gas,
            packed_user_operation.gas_fees,
            paymaster_data_keccak(packed_user_operation.paymaster_and_data),
        ],
    )


def get_delegate_from_code(sender_address: Address, code: bytes) -> Address:
    if (
        len(code) != len(EIP7702_DELEGATION_PREFIX) + 20 or
        code[:3] != EIP7702_DELEGATION_PREFIX
    ):
        raise CodecException(
            CodecExceptionCode.UnresolvedDelegate,
            f"Eip7702SenderNotDelegate({sender_address})",
        )
    return Address("0x" + code[3:].hex())


def _get_delegate_if_eip7702(
    user_operation: UserOperation, delegate: Address | None
) -> Address | None:
    if not user_operation.is_eip7702:
        return None
    if delegate is None:
        raise CodecException(
            CodecExceptionCode.UnresolvedDelegate,
            f"No eip-7702 delegate for sender {user_operation.sender_address}",
        )
    return delegate
