from eth_account import Account
from eth_keys import KeyAPI
from eth_keys.exceptions import BadSignature
from eth_utils import ValidationError as EthUtilsValidationError
from userop_codec.exceptions import CodecException, CodecExceptionCode
from userop_codec.typing import Address

# offset of the legacy v value (27/28) from the y parity (0/1)
V_OFFSET = 27


def _account_from_key(private_key: str | bytes):
    try:
        if isinstance(private_key, str):
            private_key = bytes.fromhex(private_key.removeprefix("0x"))
        return Account.from_key(private_key)
    except ValueError:
        raise CodecException(
            CodecExceptionCode.InvalidFields,
            "Invalid private key, expected 32 bytes hex",
        )


def public_address_from_private_key(private_key: str | bytes) -> Address:
    return Address(_account_from_key(private_key).address)


def sign_hash(private_key: str | bytes, digest: bytes) -> tuple[int, int, int]:
    account = _account_from_key(private_key)
    signature = account.unsafe_sign_hash(digest)
    if signature.v not in (V_OFFSET, V_OFFSET + 1):
        raise CodecException(
            CodecExceptionCode.InvalidSignature,
            f"Unexpected signature v value : {signature.v}",
        )
    return signature.v - V_OFFSET, signature.r, signature.s


def recover_address(digest: bytes, y_parity: int, r: int, s: int) -> Address:
    try:
        signature = KeyAPI.Signature(vrs=(y_parity, r, s))
        public_key = signature.recover_public_key_from_msg_hash(digest)
    except (EthUtilsValidationError, BadSignature) as excp:
        raise CodecException(
            CodecExceptionCode.InvalidSignature,
            f"Failed to recover signer : {str(excp)}",
        )
    return Address(public_key.to_checksum_address())
