from eth_utils import keccak
from userop_codec.exceptions import CodecException, CodecExceptionCode


def keccak_with_suffix(data: bytes, exclude_length: int, suffix: bytes) -> bytes:
    """
    keccak over data without its last exclude_length bytes, followed by a
    fixed suffix.

    The excluded tail (a detachable signature) does not affect the result,
    while the suffix marks that a tail was stripped.
    """
    if exclude_length < 0 or exclude_length > len(data):
        raise CodecException(
            CodecExceptionCode.LengthExceedsBlob,
            f"Can't exclude {exclude_length} bytes from data of "
            f"length {len(data)}",
        )
    return keccak(data[:len(data) - exclude_length] + suffix)
