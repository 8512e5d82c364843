import re

from userop_codec.exceptions import CodecException, CodecExceptionCode
from userop_codec.typing import Address

ADDRESS_PATTERN = "^0x[0-9a-fA-F]{40}$"
MAX_UINT256 = 2**256 - 1


def verify_and_get_address(field_name: str, value: str | None) -> Address:
    if isinstance(value, str) and re.match(ADDRESS_PATTERN, value) is not None:
        return Address(value)
    else:
        raise CodecException(
            CodecExceptionCode.InvalidFields,
            f"Invalid address value : {value} in field {field_name}",
        )


def verify_and_get_uint(field_name: str, value: str | None) -> int:
    if value is None:
        raise CodecException(
            CodecExceptionCode.InvalidFields,
            f"Invalid uint hex value in field {field_name}",
        )

    if value == "0x":
        return 0
    elif isinstance(value, str) and value[:2] == "0x":
        try:
            uint_value = int(value, 16)
        except ValueError:
            raise CodecException(
                CodecExceptionCode.InvalidFields,
                f"Invalid uint hex value : {value} in field {field_name}",
            )
        if uint_value > MAX_UINT256:
            raise CodecException(
                CodecExceptionCode.InvalidFields,
                f"Value {value} in field {field_name} exceeds uint256",
            )
        return uint_value
    else:
        raise CodecException(
            CodecExceptionCode.InvalidFields,
            f"Invalid uint hex value : {value} in field {field_name}",
        )


def verify_and_get_bytes(field_name: str, value: str | None) -> bytes:
    if value is None:
        raise CodecException(
            CodecExceptionCode.InvalidFields,
            f"Invalid bytes hex value in field {field_name}",
        )

    if isinstance(value, str) and value[:2] == "0x":
        try:
            return bytes.fromhex(value[2:])
        except ValueError:
            raise CodecException(
                CodecExceptionCode.InvalidFields,
                f"Invalid bytes hex value : {value} in field {field_name}",
            )
    else:
        raise CodecException(
            CodecExceptionCode.InvalidFields,
            f"Invalid bytes hex value : {value} in field {field_name}",
        )
