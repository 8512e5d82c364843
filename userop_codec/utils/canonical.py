"""
Minimal big-endian byte form of integers, as expected by RLP consumers
(geth rejects integer fields with leading zero bytes).
"""


class CanonicalBytes(bytes):
    """bytes with no leading zero byte. The empty string encodes zero."""

    def __new__(cls, value: bytes = b""):
        if len(value) > 0 and value[0] == 0:
            raise ValueError(
                f"Non canonical integer bytes : 0x{bytes(value).hex()}")
        return super().__new__(cls, value)

    @classmethod
    def from_int(cls, value: int) -> "CanonicalBytes":
        if isinstance(value, bool) or not isinstance(value, int):
            raise TypeError(f"Expected int, got {type(value).__name__}")
        if value < 0:
            raise ValueError(f"Negative integer {value} has no byte form")
        return cls(value.to_bytes((value.bit_length() + 7) // 8, "big"))


def hex_to_bytes(value: str) -> bytes:
    hex_value = value[2:] if value[:2] in ("0x", "0X") else value
    # odd length hex is left padded, the numeric value is unchanged
    if len(hex_value) % 2 == 1:
        hex_value = "0" + hex_value
    return bytes.fromhex(hex_value)


def to_canonical_bytes(value: int | str | bytes) -> CanonicalBytes:
    if isinstance(value, CanonicalBytes):
        return value
    if isinstance(value, str):
        value = hex_to_bytes(value)
    if isinstance(value, (bytes, bytearray)):
        return CanonicalBytes(bytes(value).lstrip(b"\x00"))
    return CanonicalBytes.from_int(value)


def to_int(value: int | str | bytes) -> int:
    return int.from_bytes(to_canonical_bytes(value), "big")


def to_quantity_hex(value: int | str | bytes) -> str:
    return hex(to_int(value))
