from dataclasses import replace

import pytest

from conftest import DELEGATE, FACTORY, PAYMASTER, SENDER
from userop_codec.exceptions import CodecException, CodecExceptionCode
from userop_codec.user_operation.paymaster_signature import \
    encode_paymaster_signature
from userop_codec.user_operation.user_operation import (
    INITCODE_EIP7702_MARKER, UserOperation, is_eip7702_init_code,
    pack_user_operation, unpack_user_operation)
from userop_codec.utils.eip7702 import SignedAuthorization
from userop_codec.utils.encode import (encode_handleops_calldata,
                                       encode_packed_user_operation)


def test_pack(user_operation):
    packed = pack_user_operation(user_operation)

    assert packed.sender == SENDER
    assert packed.nonce == 123
    assert packed.init_code == b""
    assert packed.call_data == bytes.fromhex("ca11")
    assert packed.account_gas_limits == (20).to_bytes(16) + (10).to_bytes(16)
    assert packed.pre_verification_gas == 30
    assert packed.gas_fees == (50).to_bytes(16) + (40).to_bytes(16)
    assert packed.paymaster_and_data == (
        bytes.fromhex(PAYMASTER[2:]) +
        (60).to_bytes(16) +
        (70).to_bytes(16) +
        bytes.fromhex("cafe")
    )
    assert packed.signature == bytes.fromhex("deadface")


def test_pack_is_deterministic(user_operation):
    assert user_operation.pack() == user_operation.pack()
    assert encode_packed_user_operation(user_operation.pack()) == \
        encode_packed_user_operation(user_operation.pack())


def test_pack_without_paymaster(user_operation_without_paymaster):
    assert user_operation_without_paymaster.pack().paymaster_and_data == b""


def test_pack_with_factory(user_operation):
    packed = replace(
        user_operation, factory=FACTORY, factory_data=bytes.fromhex("b1ab1a")
    ).pack()
    assert packed.init_code == bytes.fromhex(FACTORY[2:] + "b1ab1a")


def test_pack_eip7702(user_operation):
    packed = replace(user_operation, is_eip7702=True).pack()
    assert packed.init_code == INITCODE_EIP7702_MARKER
    assert len(packed.init_code) == 20

    packed = replace(
        user_operation, is_eip7702=True, factory_data=bytes.fromhex("b1ab1a")
    ).pack()
    assert packed.init_code == INITCODE_EIP7702_MARKER + bytes.fromhex("b1ab1a")


def test_pack_with_paymaster_signature(user_operation):
    packed = replace(
        user_operation, paymaster_signature=bytes.fromhex("1234")).pack()
    assert packed.paymaster_and_data.endswith(
        bytes.fromhex("cafe") +
        encode_paymaster_signature(bytes.fromhex("1234"))
    )


@pytest.mark.parametrize(
    "field_name", ["call_gas_limit", "verification_gas_limit",
                   "max_fee_per_gas", "max_priority_fee_per_gas",
                   "paymaster_verification_gas_limit",
                   "paymaster_post_op_gas_limit"])
def test_pack_gas_value_overflow(user_operation, field_name):
    user_operation = replace(user_operation, **{field_name: 2**128})
    with pytest.raises(CodecException) as excinfo:
        user_operation.pack()
    assert excinfo.value.exception_code == CodecExceptionCode.GasValueOverflow


def test_max_uint128_fits(user_operation):
    packed = replace(user_operation, call_gas_limit=2**128 - 1).pack()
    assert packed.account_gas_limits[16:] == b"\xff" * 16


@pytest.mark.parametrize(
    "field_name, exception_code",
    [
        ("nonce", CodecExceptionCode.InvalidFields),
        ("pre_verification_gas", CodecExceptionCode.GasValueOverflow),
    ],
)
def test_pack_uint256_overflow(user_operation, field_name, exception_code):
    packed = replace(user_operation, **{field_name: 2**256 - 1}).pack()
    assert getattr(packed, field_name) == 2**256 - 1

    user_operation = replace(user_operation, **{field_name: 2**256})
    with pytest.raises(CodecException) as excinfo:
        user_operation.pack()
    assert excinfo.value.exception_code == exception_code


def test_pack_paymaster_signature_too_long(user_operation):
    packed = replace(
        user_operation, paymaster_signature=b"\x01" * 0xFFFF).pack()
    assert packed.paymaster_and_data[-10:-8] == b"\xff\xff"

    user_operation = replace(
        user_operation, paymaster_signature=b"\x01" * 0x10000)
    with pytest.raises(CodecException) as excinfo:
        user_operation.pack()
    assert excinfo.value.exception_code == \
        CodecExceptionCode.InvalidTrailerLength
    assert excinfo.value.message == "PaymasterSignatureTooLong(65536)"


def test_eip7702_empty_factory_data(user_operation):
    user_operation = replace(user_operation, is_eip7702=True, factory_data=b"")
    assert user_operation.factory_data is None
    assert user_operation.pack().init_code == INITCODE_EIP7702_MARKER


@pytest.mark.parametrize(
    "overrides",
    [
        {"factory_data": bytes.fromhex("b1ab1a")},
        {"factory": FACTORY},
        {"factory": FACTORY, "factory_data": b"", "is_eip7702": True},
        {"paymaster": None},
        {"paymaster_data": None},
        {"paymaster_post_op_gas_limit": None},
    ],
)
def test_malformed_operation(user_operation, overrides):
    with pytest.raises(CodecException) as excinfo:
        replace(user_operation, **overrides)
    assert excinfo.value.exception_code == \
        CodecExceptionCode.MalformedOperation


def test_paymaster_signature_without_paymaster(
        user_operation_without_paymaster):
    with pytest.raises(CodecException) as excinfo:
        replace(
            user_operation_without_paymaster,
            paymaster_signature=bytes.fromhex("1234"),
        )
    assert excinfo.value.exception_code == \
        CodecExceptionCode.MalformedOperation


def test_from_json(user_operation):
    user_operation_json = {
        "sender": SENDER,
        "nonce": "0x7b",
        "callData": "0xca11",
        "callGasLimit": "0xa",
        "verificationGasLimit": "0x14",
        "preVerificationGas": "0x1e",
        "maxFeePerGas": "0x28",
        "maxPriorityFeePerGas": "0x32",
        "paymaster": PAYMASTER,
        "paymasterVerificationGasLimit": "0x3c",
        "paymasterPostOpGasLimit": "0x46",
        "paymasterData": "0xcafe",
        "signature": "0xdeadface",
    }
    assert UserOperation.from_json(user_operation_json) == user_operation


def test_json_round_trip(user_operation):
    user_operation = replace(
        user_operation,
        factory=FACTORY,
        factory_data=bytes.fromhex("b1ab1a"),
        paymaster_signature=bytes.fromhex("abcdef"),
        eip7702_auth=SignedAuthorization(
            chain_id=1337, address=DELEGATE, nonce=2, y_parity=1, r=3, s=4),
    )
    assert UserOperation.from_json(
        user_operation.get_user_operation_json()) == user_operation


def test_from_json_eip7702(user_operation_without_paymaster):
    user_operation_json = user_operation_without_paymaster.get_user_operation_json()
    user_operation_json["factory"] = "0x7702"
    user_operation = UserOperation.from_json(user_operation_json)
    assert user_operation.is_eip7702
    assert user_operation.factory is None
    assert user_operation.factory_data is None
    assert user_operation.get_user_operation_json()["factory"] == "0x7702"


def test_from_json_factory_without_factory_data(
        user_operation_without_paymaster):
    user_operation_json = user_operation_without_paymaster.get_user_operation_json()
    user_operation_json["factory"] = FACTORY
    assert UserOperation.from_json(user_operation_json).factory_data == b""


def test_from_json_factory_data_without_factory(
        user_operation_without_paymaster):
    user_operation_json = user_operation_without_paymaster.get_user_operation_json()
    user_operation_json["factoryData"] = "0xb1ab1a"
    with pytest.raises(CodecException) as excinfo:
        UserOperation.from_json(user_operation_json)
    assert excinfo.value.exception_code == \
        CodecExceptionCode.MalformedOperation


@pytest.mark.parametrize(
    "field_name, value",
    [
        ("sender", "0x1234"),
        ("nonce", "123"),
        ("callData", "0xzz"),
        ("paymaster", "0x2222"),
        ("sender", "0x" + "," * 40),
        ("paymaster", "0x" + "," * 40),
        ("nonce", "0x1" + "0" * 64),
        ("preVerificationGas", hex(2**256)),
    ],
)
def test_from_json_invalid_fields(user_operation, field_name, value):
    user_operation_json = user_operation.get_user_operation_json()
    user_operation_json[field_name] = value
    with pytest.raises(CodecException) as excinfo:
        UserOperation.from_json(user_operation_json)
    assert excinfo.value.exception_code == CodecExceptionCode.InvalidFields
    assert field_name in excinfo.value.message


def test_from_json_missing_and_unknown_fields(user_operation):
    user_operation_json = user_operation.get_user_operation_json()
    del user_operation_json["signature"]
    with pytest.raises(CodecException) as excinfo:
        UserOperation.from_json(user_operation_json)
    assert excinfo.value.message == "UserOperation missing signature field"

    user_operation_json = user_operation.get_user_operation_json()
    user_operation_json["initCode"] = "0x"
    with pytest.raises(CodecException) as excinfo:
        UserOperation.from_json(user_operation_json)
    assert excinfo.value.exception_code == CodecExceptionCode.InvalidFields


@pytest.mark.parametrize(
    "overrides",
    [
        {},
        {"paymaster_signature": bytes.fromhex("1234")},
        {"factory": FACTORY, "factory_data": bytes.fromhex("b1ab1a")},
        {"is_eip7702": True, "factory_data": bytes.fromhex("b1ab1a")},
        {"is_eip7702": True, "factory_data": b""},
    ],
)
def test_unpack(user_operation, overrides):
    user_operation = replace(user_operation, **overrides)
    assert unpack_user_operation(user_operation.pack()) == user_operation


@pytest.mark.parametrize("pad", [1, 10, 20, 30])
def test_is_eip7702_init_code_with_zero_pad(pad):
    assert is_eip7702_init_code(bytes.fromhex("7702") + bytes(pad))


def test_is_eip7702_init_code():
    assert is_eip7702_init_code(bytes.fromhex("7702"))
    assert is_eip7702_init_code(INITCODE_EIP7702_MARKER + bytes.fromhex("b1"))
    # first 20 bytes contain a non zero byte
    assert not is_eip7702_init_code(
        bytes.fromhex("7702") + bytes(17) + bytes.fromhex("01"))
    assert not is_eip7702_init_code(bytes.fromhex(FACTORY[2:]))
    assert not is_eip7702_init_code(b"")


def test_encode_handleops_calldata(user_operation):
    call_data = encode_handleops_calldata([user_operation.pack()], PAYMASTER)
    assert call_data.startswith("0x765e827f")
    # the beneficiary is the second head word
    assert call_data[10 + 64 + 24:10 + 128] == PAYMASTER[2:]
