from dataclasses import dataclass

from userop_codec.typing import Address


@dataclass(frozen=True)
class PackedUserOperation:
    sender: Address
    nonce: int
    init_code: bytes
    call_data: bytes
    account_gas_limits: bytes  # verificationGasLimit(16) || callGasLimit(16)
    pre_verification_gas: int
    gas_fees: bytes  # maxPriorityFeePerGas(16) || maxFeePerGas(16)
    paymaster_and_data: bytes
    signature: bytes

    def to_list(self) -> list[Address | int | bytes]:
        return [
            self.sender,
            self.nonce,
            self.init_code,
            self.call_data,
            self.account_gas_limits,
            self.pre_verification_gas,
            self.gas_fees,
            self.paymaster_and_data,
            self.signature,
        ]

    def get_packed_user_operation_json(self) -> dict[str, str]:
        return {
            "sender": self.sender,
            "nonce": hex(self.nonce),
            "initCode": "0x" + self.init_code.hex(),
            "callData": "0x" + self.call_data.hex(),
            "accountGasLimits": "0x" + self.account_gas_limits.hex(),
            "preVerificationGas": hex(self.pre_verification_gas),
            "gasFees": "0x" + self.gas_fees.hex(),
            "paymasterAndData": "0x" + self.paymaster_and_data.hex(),
            "signature": "0x" + self.signature.hex(),
        }
