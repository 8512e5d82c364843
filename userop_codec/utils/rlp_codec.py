import rlp

from .canonical import CanonicalBytes

# int, bytes, or a (nested) list or tuple of those
RlpItem = int | bytes | list | tuple


def format_for_rlp_encode(item: RlpItem) -> bytes | list:
    if isinstance(item, bool):
        raise TypeError("bool is not an rlp item")
    if isinstance(item, int):
        return bytes(CanonicalBytes.from_int(item))
    if isinstance(item, (bytes, bytearray)):
        return bytes(item)
    if isinstance(item, (list, tuple)):
        return [format_for_rlp_encode(sub_item) for sub_item in item]
    raise TypeError(f"Unsupported rlp item type : {type(item).__name__}")


def encode(item: RlpItem) -> bytes:
    return rlp.encode(format_for_rlp_encode(item))


def decode(data: bytes) -> bytes | list:
    return rlp.decode(data)
