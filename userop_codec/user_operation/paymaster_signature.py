"""
Paymaster signature trailer appended to the paymasterData field:

    paymasterSignature || uint16(len(paymasterSignature)) || PAYMASTER_SIG_MAGIC

The trailer lets a paymaster sign the user operation after the sender did,
since the userOpHash covers paymasterAndData with the signature bytes
replaced by the magic value.
"""
from eth_utils import keccak
from userop_codec.exceptions import (CodecException, CodecExceptionCode,
                                     InvalidPaymasterSignatureLength)
from userop_codec.utils.hashing import keccak_with_suffix

# keccak("PaymasterSignature")[:8]
PAYMASTER_SIG_MAGIC = bytes.fromhex("22e325a297439656")
# magic + length
PAYMASTER_SUFFIX_LEN = 8 + 2
# paymaster address + paymasterVerificationGasLimit + paymasterPostOpGasLimit
PAYMASTER_DATA_OFFSET = 20 + 16 + 16
# the length field is a uint16
MAX_PAYMASTER_SIGNATURE_LEN = 0xFFFF


def encode_paymaster_signature(paymaster_signature: bytes | None) -> bytes:
    if paymaster_signature is None or len(paymaster_signature) == 0:
        return bytes(0)
    if len(paymaster_signature) > MAX_PAYMASTER_SIGNATURE_LEN:
        raise CodecException(
            CodecExceptionCode.InvalidTrailerLength,
            f"PaymasterSignatureTooLong({len(paymaster_signature)})",
        )
    return (
        paymaster_signature +
        len(paymaster_signature).to_bytes(2) +
        PAYMASTER_SIG_MAGIC
    )


def get_paymaster_signature_length(
    paymaster_and_data: bytes,
    static_lead_in_length: int = PAYMASTER_DATA_OFFSET
) -> int:
    data_length = len(paymaster_and_data)
    if data_length < static_lead_in_length + PAYMASTER_SUFFIX_LEN:
        return 0
    if paymaster_and_data[-8:] != PAYMASTER_SIG_MAGIC:
        return 0

    pm_signature_length = int.from_bytes(
        paymaster_and_data[-PAYMASTER_SUFFIX_LEN:-8])
    if (
        pm_signature_length + PAYMASTER_SUFFIX_LEN >
        data_length - static_lead_in_length
    ):
        raise InvalidPaymasterSignatureLength(data_length, pm_signature_length)
    return pm_signature_length


def get_paymaster_signature_with_length(
    paymaster_and_data: bytes, pm_signature_length: int
) -> bytes:
    if pm_signature_length == 0:
        return bytes(0)
    data_length = len(paymaster_and_data)
    if pm_signature_length + PAYMASTER_SUFFIX_LEN > data_length:
        raise CodecException(
            CodecExceptionCode.LengthExceedsBlob,
            f"Paymaster signature length {pm_signature_length} exceeds "
            f"data length {data_length}",
        )
    signature_end = data_length - PAYMASTER_SUFFIX_LEN
    return paymaster_and_data[signature_end - pm_signature_length:signature_end]


def get_paymaster_signature(
    paymaster_and_data: bytes,
    static_lead_in_length: int = PAYMASTER_DATA_OFFSET
) -> bytes:
    return get_paymaster_signature_with_length(
        paymaster_and_data,
        get_paymaster_signature_length(paymaster_and_data, static_lead_in_length)
    )


def paymaster_data_keccak(paymaster_and_data: bytes) -> bytes:
    pm_signature_length = get_paymaster_signature_length(paymaster_and_data)
    if pm_signature_length == 0:
        return keccak(paymaster_and_data)
    return keccak_with_suffix(
        paymaster_and_data,
        pm_signature_length + PAYMASTER_SUFFIX_LEN,
        PAYMASTER_SIG_MAGIC,
    )
