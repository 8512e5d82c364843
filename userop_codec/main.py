import json
import logging
import sys
from argparse import Namespace

from eth_utils import keccak

from userop_codec.exceptions import CodecException
from userop_codec.user_operation.user_operation import UserOperation
from userop_codec.user_operation.user_operation_hash import (
    get_user_operation_hash, get_user_operation_typed_data_hash)
from userop_codec.utils.eip7702 import (
    SignedAuthorization, create_and_sign_eip7702_raw_transaction,
    eip7702_transaction_from_json, get_eip7702_authorization_signer,
    sign_eip7702_authorization, unsigned_authorization_from_json)
from userop_codec.utils.encode import encode_packed_user_operation
from userop_codec.utils.signer import public_address_from_private_key

from .cli_manager import parse_args


def hash_command(args: Namespace) -> dict:
    user_operation = UserOperation.from_json(args.user_operation)
    if args.typed_data:
        user_operation_hash = get_user_operation_typed_data_hash(
            user_operation, args.entrypoint, args.chain_id, args.delegate)
    else:
        user_operation_hash = get_user_operation_hash(
            user_operation, args.entrypoint, args.chain_id, args.delegate)
    return {"userOpHash": user_operation_hash}


def pack_command(args: Namespace) -> dict:
    packed_user_operation = UserOperation.from_json(args.user_operation).pack()
    return {
        "packedUserOperation":
        packed_user_operation.get_packed_user_operation_json(),
        "encoded":
        "0x" + encode_packed_user_operation(packed_user_operation).hex(),
    }


def sign_authorization_command(args: Namespace) -> dict:
    authorization = unsigned_authorization_from_json(args.authorization)
    signed_authorization = sign_eip7702_authorization(
        args.secret, authorization, args.nonce).to_json()
    return signed_authorization | {
        "signer": public_address_from_private_key(args.secret)}


def recover_authorization_command(args: Namespace) -> dict:
    authorization = SignedAuthorization.from_json(args.authorization)
    return {"signer": get_eip7702_authorization_signer(authorization)}


def raw_transaction_command(args: Namespace) -> dict:
    transaction = eip7702_transaction_from_json(args.transaction)
    raw_transaction = create_and_sign_eip7702_raw_transaction(
        transaction, args.secret)
    return {
        "rawTransaction": raw_transaction,
        "transactionHash":
        "0x" + keccak(hexstr=raw_transaction).hex(),
        "sender": public_address_from_private_key(args.secret),
    }


COMMANDS = {
    "hash": hash_command,
    "pack": pack_command,
    "sign_authorization": sign_authorization_command,
    "recover_authorization": recover_authorization_command,
    "raw_transaction": raw_transaction_command,
}


def main(cmd_args=sys.argv[1:]) -> int:
    args = parse_args(cmd_args)
    try:
        result = COMMANDS[args.command](args)
    except CodecException as excp:
        logging.error(
            f"{args.command} failed with {excp.exception_code.name}: "
            f"{excp.message}"
        )
        return 1
    print(json.dumps(result, indent=2))
    return 0


def run() -> None:
    sys.exit(main(sys.argv[1:]))
