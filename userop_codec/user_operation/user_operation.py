from dataclasses import dataclass

from userop_codec.exceptions import CodecException, CodecExceptionCode
from userop_codec.typing import Address
from userop_codec.utils.eip7702 import SignedAuthorization
from userop_codec.utils.verify import (MAX_UINT256, verify_and_get_address,
                                       verify_and_get_bytes,
                                       verify_and_get_uint)

from .models import PackedUserOperation
from .paymaster_signature import (PAYMASTER_DATA_OFFSET,
                                  PAYMASTER_SUFFIX_LEN,
                                  encode_paymaster_signature,
                                  get_paymaster_signature_length)

# "factory" value of an eip-7702 user operation in its json form
EIP7702_FACTORY_FLAG = "0x7702"
# initCode prefix of an eip-7702 sender, followed by the optional init calldata
INITCODE_EIP7702_MARKER = bytes.fromhex("7702") + bytes(18)


@dataclass(frozen=True)
class UserOperation:
    sender_address: Address
    nonce: int
    call_data: bytes
    call_gas_limit: int
    verification_gas_limit: int
    pre_verification_gas: int
    max_fee_per_gas: int
    max_priority_fee_per_gas: int
    signature: bytes
    factory: Address | None = None
    factory_data: bytes | None = None
    paymaster: Address | None = None
    paymaster_verification_gas_limit: int | None = None
    paymaster_post_op_gas_limit: int | None = None
    paymaster_data: bytes | None = None
    paymaster_signature: bytes | None = None
    is_eip7702: bool = False
    eip7702_auth: SignedAuthorization | None = None

    def __post_init__(self) -> None:
        if self.is_eip7702:
            if self.factory is not None:
                raise CodecException(
                    CodecExceptionCode.MalformedOperation,
                    "Invalid UserOperation, "
                    '"factory" has to be null for an eip-7702 UserOperation',
                )
            # packs the same as no init calldata
            if self.factory_data == b"":
                object.__setattr__(self, "factory_data", None)
        elif self.factory is None and self.factory_data is not None:
            raise CodecException(
                CodecExceptionCode.MalformedOperation,
                'Invalid UserOperation, '
                '"factoryData" has to be null if "factory" is null',
            )
        elif self.factory is not None and self.factory_data is None:
            raise CodecException(
                CodecExceptionCode.MalformedOperation,
                'Invalid UserOperation, '
                '"factoryData" is required if "factory" is set',
            )

        if self.paymaster is None:
            if (
                self.paymaster_verification_gas_limit is not None or
                self.paymaster_post_op_gas_limit is not None or
                self.paymaster_data is not None or
                self.paymaster_signature is not None
            ):
                raise CodecException(
                    CodecExceptionCode.MalformedOperation,
                    "Invalid UserOperation, "
                    '"paymasterVerificationGasLimit", "paymasterPostOpGasLimit", '
                    '"paymasterData" and "paymasterSignature" have to be null '
                    'if "paymaster" is null',
                )
        elif (
            self.paymaster_verification_gas_limit is None or
            self.paymaster_post_op_gas_limit is None or
            self.paymaster_data is None
        ):
            raise CodecException(
                CodecExceptionCode.MalformedOperation,
                "Invalid UserOperation, "
                '"paymasterVerificationGasLimit", "paymasterPostOpGasLimit" '
                'and "paymasterData" are required if "paymaster" is set',
            )

    @classmethod
    def from_json(
        cls, jsonRequestDict: dict[str, str | dict | None]
    ) -> "UserOperation":
        jsonRequestDict = dict(jsonRequestDict)
        cls.verify_fields_exist_and_fill_optional(jsonRequestDict)

        if jsonRequestDict["eip7702Auth"] is not None:
            eip7702_auth = SignedAuthorization.from_json(
                jsonRequestDict["eip7702Auth"])
        else:
            eip7702_auth = None

        factory = jsonRequestDict["factory"]
        factory_data = jsonRequestDict["factoryData"]
        is_eip7702 = factory == EIP7702_FACTORY_FLAG
        if is_eip7702:
            factory_address = None
        elif factory is not None:
            factory_address = verify_and_get_address("factory", factory)
            if factory_data is None:
                factory_data = "0x"
        else:
            factory_address = None

        paymaster = jsonRequestDict["paymaster"]
        paymaster_signature = jsonRequestDict["paymasterSignature"]
        if paymaster is not None:
            paymaster_kwargs = {
                "paymaster": verify_and_get_address("paymaster", paymaster),
                "paymaster_verification_gas_limit": verify_and_get_uint(
                    "paymasterVerificationGasLimit",
                    jsonRequestDict["paymasterVerificationGasLimit"],
                ),
                "paymaster_post_op_gas_limit": verify_and_get_uint(
                    "paymasterPostOpGasLimit",
                    jsonRequestDict["paymasterPostOpGasLimit"],
                ),
                "paymaster_data": verify_and_get_bytes(
                    "paymasterData", jsonRequestDict["paymasterData"]),
                "paymaster_signature":
                None if paymaster_signature is None
                else verify_and_get_bytes(
                    "paymasterSignature", paymaster_signature),
            }
        elif (
            jsonRequestDict["paymasterVerificationGasLimit"] is None and
            jsonRequestDict["paymasterPostOpGasLimit"] is None and
            jsonRequestDict["paymasterData"] is None and
            paymaster_signature is None
        ):
            paymaster_kwargs = {}
        else:
            raise CodecException(
                CodecExceptionCode.MalformedOperation,
                "Invalid UserOperation, "
                '"paymasterVerificationGasLimit", "paymasterPostOpGasLimit", '
                '"paymasterData" and "paymasterSignature" have to be null '
                'if "paymaster" is null',
            )

        return cls(
            sender_address=verify_and_get_address(
                "sender", jsonRequestDict["sender"]),
            nonce=verify_and_get_uint("nonce", jsonRequestDict["nonce"]),
            call_data=verify_and_get_bytes(
                "callData", jsonRequestDict["callData"]),
            call_gas_limit=verify_and_get_uint(
                "callGasLimit", jsonRequestDict["callGasLimit"]),
            verification_gas_limit=verify_and_get_uint(
                "verificationGasLimit",
                jsonRequestDict["verificationGasLimit"]
            ),
            pre_verification_gas=verify_and_get_uint(
                "preVerificationGas", jsonRequestDict["preVerificationGas"]),
            max_fee_per_gas=verify_and_get_uint(
                "maxFeePerGas", jsonRequestDict["maxFeePerGas"]),
            max_priority_fee_per_gas=verify_and_get_uint(
                "maxPriorityFeePerGas",
                jsonRequestDict["maxPriorityFeePerGas"]
            ),
            signature=verify_and_get_bytes(
                "signature", jsonRequestDict["signature"]),
            factory=factory_address,
            factory_data=None if factory_data is None
            else verify_and_get_bytes("factoryData", factory_data),
            is_eip7702=is_eip7702,
            eip7702_auth=eip7702_auth,
            **paymaster_kwargs,
        )

    @staticmethod
    def verify_fields_exist_and_fill_optional(
        jsonRequestDict: dict[str, str | dict | None]
    ) -> None:
        required_fields_list = [
            "sender",
            "nonce",
            "callData",
            "callGasLimit",
            "verificationGasLimit",
            "preVerificationGas",
            "maxFeePerGas",
            "maxPriorityFeePerGas",
            "signature",
        ]

        for field in required_fields_list:
            if field not in jsonRequestDict:
                raise CodecException(
                    CodecExceptionCode.InvalidFields,
                    f"UserOperation missing {field} field",
                )

        optional_fields_list = [
            "factory",
            "factoryData",
            "paymaster",
            "paymasterVerificationGasLimit",
            "paymasterPostOpGasLimit",
            "paymasterData",
            "paymasterSignature",
            "eip7702Auth"
        ]

        for field in optional_fields_list:
            if field not in jsonRequestDict:
                jsonRequestDict[field] = None

        unknown_fields = set(jsonRequestDict) - set(
            required_fields_list + optional_fields_list)
        if len(unknown_fields) > 0:
            raise CodecException(
                CodecExceptionCode.InvalidFields,
                f"Invalid UserOperation, unknown fields {sorted(unknown_fields)}",
            )

    def get_user_operation_json(self) -> dict[str, Address | str | dict | None]:
        user_operation_json = {
            "sender": self.sender_address,
            "nonce": hex(self.nonce),
            "factory":
            EIP7702_FACTORY_FLAG if self.is_eip7702 else self.factory,
            "factoryData":
            None if self.factory_data is None
            else "0x" + self.factory_data.hex(),
            "callData": "0x" + self.call_data.hex(),
            "callGasLimit": hex(self.call_gas_limit),
            "verificationGasLimit": hex(self.verification_gas_limit),
            "preVerificationGas": hex(self.pre_verification_gas),
            "maxFeePerGas": hex(self.max_fee_per_gas),
            "maxPriorityFeePerGas": hex(self.max_priority_fee_per_gas),
            "paymaster": self.paymaster,
            "paymasterVerificationGasLimit":
            None if self.paymaster_verification_gas_limit is None
            else hex(self.paymaster_verification_gas_limit),
            "paymasterPostOpGasLimit":
            None if self.paymaster_post_op_gas_limit is None
            else hex(self.paymaster_post_op_gas_limit),
            "paymasterData":
            None if self.paymaster_data is None
            else "0x" + self.paymaster_data.hex(),
            "signature": "0x" + self.signature.hex(),
        }
        if self.paymaster_signature is not None:
            user_operation_json["paymasterSignature"] = (
                "0x" + self.paymaster_signature.hex())
        if self.eip7702_auth is not None:
            user_operation_json["eip7702Auth"] = self.eip7702_auth.to_json()
        return user_operation_json

    def pack(self) -> PackedUserOperation:
        if self.is_eip7702:
            init_code = INITCODE_EIP7702_MARKER
            if self.factory_data is not None:
                init_code += self.factory_data
        elif self.factory is None:
            init_code = bytes(0)
        else:
            init_code = (
                bytes.fromhex(self.factory[2:]) +
                self.factory_data  # type: ignore
            )
        account_gas_limits = (
            _to_uint128_bytes(
                "verificationGasLimit", self.verification_gas_limit) +
            _to_uint128_bytes("callGasLimit", self.call_gas_limit)
        )

        gas_fees = (
            _to_uint128_bytes(
                "maxPriorityFeePerGas", self.max_priority_fee_per_gas) +
            _to_uint128_bytes("maxFeePerGas", self.max_fee_per_gas)
        )

        if self.paymaster is None:
            paymaster_and_data = bytes(0)
        else:
            paymaster_and_data = (
                bytes.fromhex(self.paymaster[2:]) +
                _to_uint128_bytes(
                    "paymasterVerificationGasLimit",
                    self.paymaster_verification_gas_limit  # type: ignore
                ) +
                _to_uint128_bytes(
                    "paymasterPostOpGasLimit",
                    self.paymaster_post_op_gas_limit  # type: ignore
                ) +
                self.paymaster_data +  # type: ignore
                encode_paymaster_signature(self.paymaster_signature)
            )

        return PackedUserOperation(
            sender=self.sender_address,
            nonce=_verify_uint256(
                "nonce", self.nonce, CodecExceptionCode.InvalidFields),
            init_code=init_code,
            call_data=self.call_data,
            account_gas_limits=account_gas_limits,
            pre_verification_gas=_verify_uint256(
                "preVerificationGas",
                self.pre_verification_gas,
                CodecExceptionCode.GasValueOverflow,
            ),
            gas_fees=gas_fees,
            paymaster_and_data=paymaster_and_data,
            signature=self.signature,
        )


def pack_user_operation(user_operation: UserOperation) -> PackedUserOperation:
    return user_operation.pack()


def unpack_user_operation(
    packed_user_operation: PackedUserOperation
) -> UserOperation:
    init_code = packed_user_operation.init_code
    is_eip7702 = is_eip7702_init_code(init_code)
    if is_eip7702:
        factory = None
        factory_data = init_code[20:] if len(init_code) > 20 else None
    elif len(init_code) == 0:
        factory = None
        factory_data = None
    elif len(init_code) < 20:
        raise CodecException(
            CodecExceptionCode.MalformedOperation,
            f"Invalid initCode length {len(init_code)}",
        )
    else:
        factory = Address("0x" + init_code[:20].hex())
        factory_data = init_code[20:]

    paymaster_and_data = packed_user_operation.paymaster_and_data
    if len(paymaster_and_data) == 0:
        paymaster_kwargs = {}
    elif len(paymaster_and_data) < PAYMASTER_DATA_OFFSET:
        raise CodecException(
            CodecExceptionCode.MalformedOperation,
            f"Invalid paymasterAndData length {len(paymaster_and_data)}",
        )
    else:
        pm_signature_length = get_paymaster_signature_length(
            paymaster_and_data)
        if pm_signature_length == 0:
            paymaster_data_end = len(paymaster_and_data)
            paymaster_signature = None
        else:
            paymaster_data_end = (
                len(paymaster_and_data) -
                PAYMASTER_SUFFIX_LEN -
                pm_signature_length
            )
            paymaster_signature = paymaster_and_data[
                paymaster_data_end:paymaster_data_end + pm_signature_length]
        paymaster_kwargs = {
            "paymaster": Address("0x" + paymaster_and_data[:20].hex()),
            "paymaster_verification_gas_limit":
            int.from_bytes(paymaster_and_data[20:36]),
            "paymaster_post_op_gas_limit":
            int.from_bytes(paymaster_and_data[36:52]),
            "paymaster_data":
            paymaster_and_data[PAYMASTER_DATA_OFFSET:paymaster_data_end],
            "paymaster_signature": paymaster_signature,
        }

    account_gas_limits = packed_user_operation.account_gas_limits
    gas_fees = packed_user_operation.gas_fees
    return UserOperation(
        sender_address=packed_user_operation.sender,
        nonce=packed_user_operation.nonce,
        call_data=packed_user_operation.call_data,
        call_gas_limit=int.from_bytes(account_gas_limits[16:]),
        verification_gas_limit=int.from_bytes(account_gas_limits[:16]),
        pre_verification_gas=packed_user_operation.pre_verification_gas,
        max_fee_per_gas=int.from_bytes(gas_fees[16:]),
        max_priority_fee_per_gas=int.from_bytes(gas_fees[:16]),
        signature=packed_user_operation.signature,
        factory=factory,
        factory_data=factory_data,
        is_eip7702=is_eip7702,
        **paymaster_kwargs,
    )


def is_eip7702_init_code(init_code: bytes) -> bool:
    if init_code[:2] != INITCODE_EIP7702_MARKER[:2]:
        return False
    # the rest of the first 20 bytes must be zero padding
    return not any(init_code[2:20])


def _verify_uint256(
    field_name: str, value: int, exception_code: CodecExceptionCode
) -> int:
    if value < 0 or value > MAX_UINT256:
        raise CodecException(
            exception_code,
            f"Value {value} of field {field_name} does not fit in 32 bytes",
        )
    return value


def _to_uint128_bytes(field_name: str, value: int) -> bytes:
    try:
        return value.to_bytes(16)
    except OverflowError:
        raise CodecException(
            CodecExceptionCode.GasValueOverflow,
            f"Value {value} of field {field_name} does not fit in 16 bytes",
        )
