# https://github.com/ethereum/EIPs/blob/master/EIPS/eip-7702.md
# rlp([chain_id, nonce, max_priority_fee_per_gas, max_fee_per_gas,
#   gas_limit, destination, value, data, access_list, authorization_list,
#   signature_y_parity, signature_r, signature_s]
# )
# authorization_list = [[chain_id, address, nonce, y_parity, r, s], ...]
# authority = ecrecover(keccak(MAGIC || rlp([chain_id, address, nonce])), y_parity, r, s)

import logging
from dataclasses import dataclass, field

from eth_utils import keccak
from userop_codec.exceptions import CodecException, CodecExceptionCode
from userop_codec.typing import Address
from userop_codec.utils.verify import (verify_and_get_address,
                                       verify_and_get_bytes,
                                       verify_and_get_uint)

from . import rlp_codec
from .canonical import to_quantity_hex
from .signer import recover_address, sign_hash

EIP7702_MAGIC = b"\x05"
SET_CODE_TX_TYPE = b"\x04"
DEFAULT_GAS_LIMIT = 21000


@dataclass(frozen=True)
class UnsignedAuthorization:
    chain_id: int
    address: Address
    nonce: int | None

    def to_rlp_list(self) -> list[int | bytes]:
        if self.nonce is None:
            raise CodecException(
                CodecExceptionCode.InvalidFields,
                f"Authorization for {self.address} has no nonce",
            )
        return [
            self.chain_id,
            bytes.fromhex(self.address[2:]),
            self.nonce,
        ]


@dataclass(frozen=True)
class SignedAuthorization(UnsignedAuthorization):
    y_parity: int
    r: int
    s: int

    def __post_init__(self) -> None:
        if self.nonce is None:
            raise CodecException(
                CodecExceptionCode.InvalidFields,
                f"Signed authorization for {self.address} has no nonce",
            )

    def to_rlp_list(self) -> list[int | bytes]:
        return super().to_rlp_list() + [self.y_parity, self.r, self.s]

    def to_json(self) -> dict[str, str]:
        return {
            "chainId": to_quantity_hex(self.chain_id),
            "address": self.address,
            "nonce": to_quantity_hex(self.nonce),
            "yParity": to_quantity_hex(self.y_parity),
            "r": to_quantity_hex(self.r),
            "s": to_quantity_hex(self.s),
        }

    @classmethod
    def from_json(cls, value: dict) -> "SignedAuthorization":
        if not isinstance(value, dict) or any(
            field_name not in value for field_name in
            ("chainId", "address", "nonce", "yParity", "r", "s")
        ):
            raise CodecException(
                CodecExceptionCode.InvalidFields,
                "Invalid eip7702Auth field.",
            )
        return cls(
            chain_id=verify_and_get_uint(
                "eip7702Auth.chainId", value["chainId"]),
            address=verify_and_get_address(
                "eip7702Auth.address", value["address"]),
            nonce=verify_and_get_uint("eip7702Auth.nonce", value["nonce"]),
            y_parity=verify_and_get_uint(
                "eip7702Auth.yParity", value["yParity"]),
            r=verify_and_get_uint("eip7702Auth.r", value["r"]),
            s=verify_and_get_uint("eip7702Auth.s", value["s"]),
        )


def unsigned_authorization_from_json(value: dict) -> UnsignedAuthorization:
    if not isinstance(value, dict) or "chainId" not in value or \
            "address" not in value:
        raise CodecException(
            CodecExceptionCode.InvalidFields,
            "Invalid authorization, chainId and address are required.",
        )
    nonce = value.get("nonce")
    return UnsignedAuthorization(
        chain_id=verify_and_get_uint("chainId", value["chainId"]),
        address=verify_and_get_address("address", value["address"]),
        nonce=None if nonce is None else verify_and_get_uint("nonce", nonce),
    )


def eip7702_data_to_sign(authorization: UnsignedAuthorization) -> bytes:
    # only the (chain_id, address, nonce) triple is signed
    return keccak(
        EIP7702_MAGIC +
        rlp_codec.encode(UnsignedAuthorization.to_rlp_list(authorization))
    )


def sign_eip7702_authorization(
    private_key: str | bytes,
    authorization: UnsignedAuthorization,
    current_nonce: int | None = None,
) -> SignedAuthorization:
    nonce = authorization.nonce
    if nonce is None:
        nonce = current_nonce
    if nonce is None:
        raise CodecException(
            CodecExceptionCode.InvalidFields,
            "Authorization nonce is missing and no account nonce was supplied",
        )
    unsigned_authorization = UnsignedAuthorization(
        authorization.chain_id, authorization.address, nonce)
    y_parity, r, s = sign_hash(
        private_key, eip7702_data_to_sign(unsigned_authorization))
    return SignedAuthorization(
        chain_id=authorization.chain_id,
        address=authorization.address,
        nonce=nonce,
        y_parity=y_parity,
        r=r,
        s=s,
    )


def get_eip7702_authorization_signer(
    authorization: SignedAuthorization
) -> Address:
    return recover_address(
        eip7702_data_to_sign(authorization),
        authorization.y_parity,
        authorization.r,
        authorization.s,
    )


@dataclass(frozen=True)
class Eip7702Transaction:
    chain_id: int
    nonce: int
    max_priority_fee_per_gas: int
    max_fee_per_gas: int
    gas_limit: int
    destination: Address | None
    value: int
    data: bytes
    authorization_list: list[SignedAuthorization] = field(default_factory=list)

    def to_rlp_list(self) -> list:
        return [
            self.chain_id,
            self.nonce,
            self.max_priority_fee_per_gas,
            self.max_fee_per_gas,
            self.gas_limit,
            bytes(0) if self.destination is None
            else bytes.fromhex(self.destination[2:]),
            self.value,
            self.data,
            [],  # access_list
            [
                authorization.to_rlp_list()
                for authorization in self.authorization_list
            ],
        ]


def create_eip7702_transaction_hash(transaction: Eip7702Transaction) -> bytes:
    return keccak(
        SET_CODE_TX_TYPE + rlp_codec.encode(transaction.to_rlp_list())
    )


def create_and_sign_eip7702_raw_transaction(
    transaction: Eip7702Transaction,
    eoa_private_key: str | bytes,
) -> str:
    tx_hash = create_eip7702_transaction_hash(transaction)
    y_parity, r, s = sign_hash(eoa_private_key, tx_hash)
    logging.debug(
        f"Signed eip7702 transaction 0x{tx_hash.hex()} with "
        f"{len(transaction.authorization_list)} authorizations"
    )

    rlp_encoded_signed_eip7702_transaction = rlp_codec.encode(
        transaction.to_rlp_list() + [y_parity, r, s]
    )
    return "0x" + (
        SET_CODE_TX_TYPE + rlp_encoded_signed_eip7702_transaction
    ).hex()


def decode_eip7702_raw_transaction(
    raw_transaction: str | bytes,
) -> tuple[Eip7702Transaction, tuple[int, int, int]]:
    if isinstance(raw_transaction, str):
        raw_transaction = verify_and_get_bytes(
            "rawTransaction", raw_transaction)
    if raw_transaction[:1] != SET_CODE_TX_TYPE:
        raise CodecException(
            CodecExceptionCode.InvalidFields,
            f"Not a set code transaction, type: 0x{raw_transaction[:1].hex()}",
        )
    fields = rlp_codec.decode(raw_transaction[1:])
    if not isinstance(fields, list) or len(fields) != 13:
        raise CodecException(
            CodecExceptionCode.InvalidFields,
            "Invalid set code transaction payload",
        )
    (
        chain_id, nonce, max_priority_fee_per_gas, max_fee_per_gas, gas_limit,
        destination, value, data, _access_list, raw_authorization_list,
        y_parity, r, s
    ) = fields

    authorization_list = []
    for raw_authorization in raw_authorization_list:
        if not isinstance(raw_authorization, list) or \
                len(raw_authorization) != 6:
            raise CodecException(
                CodecExceptionCode.InvalidFields,
                "Invalid authorization tuple",
            )
        (
            auth_chain_id, auth_address, auth_nonce,
            auth_y_parity, auth_r, auth_s
        ) = raw_authorization
        authorization_list.append(
            SignedAuthorization(
                chain_id=_decode_uint(auth_chain_id),
                address=_decode_address(auth_address),
                nonce=_decode_uint(auth_nonce),
                y_parity=_decode_uint(auth_y_parity),
                r=_decode_uint(auth_r),
                s=_decode_uint(auth_s),
            )
        )

    transaction = Eip7702Transaction(
        chain_id=_decode_uint(chain_id),
        nonce=_decode_uint(nonce),
        max_priority_fee_per_gas=_decode_uint(max_priority_fee_per_gas),
        max_fee_per_gas=_decode_uint(max_fee_per_gas),
        gas_limit=_decode_uint(gas_limit),
        destination=None if len(destination) == 0
        else _decode_address(destination),
        value=_decode_uint(value),
        data=data,
        authorization_list=authorization_list,
    )
    return transaction, (_decode_uint(y_parity), _decode_uint(r), _decode_uint(s))


def recover_eip7702_transaction_sender(raw_transaction: str | bytes) -> Address:
    transaction, (y_parity, r, s) = decode_eip7702_raw_transaction(
        raw_transaction)
    return recover_address(
        create_eip7702_transaction_hash(transaction), y_parity, r, s)


def _decode_uint(value: bytes) -> int:
    if not isinstance(value, bytes) or value[:1] == b"\x00":
        raise CodecException(
            CodecExceptionCode.InvalidFields,
            "Invalid rlp integer field",
        )
    return int.from_bytes(value, "big")


def _decode_address(value: bytes) -> Address:
    if not isinstance(value, bytes) or len(value) != 20:
        raise CodecException(
            CodecExceptionCode.InvalidFields,
            "Invalid rlp address field",
        )
    return Address("0x" + value.hex())


def eip7702_transaction_from_json(value: dict) -> Eip7702Transaction:
    for field_name in ("chainId", "nonce", "maxFeePerGas"):
        if field_name not in value:
            raise CodecException(
                CodecExceptionCode.InvalidFields,
                f"Transaction missing {field_name} field",
            )
    max_fee_per_gas = verify_and_get_uint(
        "maxFeePerGas", value["maxFeePerGas"])
    destination = value.get("to")
    return Eip7702Transaction(
        chain_id=verify_and_get_uint("chainId", value["chainId"]),
        nonce=verify_and_get_uint("nonce", value["nonce"]),
        max_priority_fee_per_gas=max_fee_per_gas
        if value.get("maxPriorityFeePerGas") is None
        else verify_and_get_uint(
            "maxPriorityFeePerGas", value["maxPriorityFeePerGas"]),
        max_fee_per_gas=max_fee_per_gas,
        gas_limit=verify_and_get_uint(
            "gasLimit", value.get("gasLimit", hex(DEFAULT_GAS_LIMIT))),
        destination=None if destination is None or destination == "0x"
        else verify_and_get_address("to", destination),
        value=verify_and_get_uint("value", value.get("value", "0x0")),
        data=verify_and_get_bytes("data", value.get("data", "0x")),
        authorization_list=[
            SignedAuthorization.from_json(authorization)
            for authorization in value.get("authorizationList", [])
        ],
    )
