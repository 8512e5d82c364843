import json
import logging
import os
import re
from argparse import ArgumentParser, ArgumentTypeError, Namespace
from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("userop-codec")
except PackageNotFoundError:
    __version__ = "unknown"

# EntryPoint v0.7.0
DEFAULT_ENTRYPOINT = "0x0000000071727De22E5E9d8BAf0edAc6f37da032"
DEFAULT_CHAIN_ID = 1


def address(ep: str):
    address_pattern = "^0x[0-9a-fA-F]{40}$"
    if not isinstance(ep, str) or re.match(address_pattern, ep) is None:
        raise ArgumentTypeError(f"Wrong address format : {ep}")
    return ep


def unsigned_int(value):
    try:
        ivalue = int(value, 0) if isinstance(value, str) else int(value)
    except ValueError:
        raise ArgumentTypeError(
                "%s is an invalid unsigned int value" % value)
    if ivalue < 0:
        raise ArgumentTypeError(
                "%s is an invalid unsigned int value" % value)
    return ivalue


def json_object(value: str) -> dict:
    """
    A json object given inline, or as @path to a json file.
    """
    try:
        if value.startswith("@"):
            with open(value[1:]) as json_file:
                parsed = json.load(json_file)
        else:
            parsed = json.loads(value)
    except (OSError, ValueError) as excp:
        raise ArgumentTypeError(f"Invalid json input {value} : {excp}")
    if not isinstance(parsed, dict):
        raise ArgumentTypeError(f"Expected a json object : {value}")
    return parsed


def _get_env_or_default(env_var, default, value_type):
    """
    Helper function to get the value from an environment variable or return the default value.
    """
    value = os.getenv(env_var, None)
    if value is not None:
        return value_type(value)
    return default


def _add_network_arguments(parser: ArgumentParser) -> None:
    parser.add_argument(
        "--entrypoint",
        type=address,
        help=f"EntryPoint address - defaults to {DEFAULT_ENTRYPOINT}",
        nargs="?",
        const=DEFAULT_ENTRYPOINT,
        default=_get_env_or_default(
            "USEROP_CODEC_ENTRYPOINT", DEFAULT_ENTRYPOINT, address),
    )

    parser.add_argument(
        "--chain_id",
        type=unsigned_int,
        help=f"Chain id - defaults to {DEFAULT_CHAIN_ID}",
        nargs="?",
        const=DEFAULT_CHAIN_ID,
        default=_get_env_or_default(
            "USEROP_CODEC_CHAIN_ID", DEFAULT_CHAIN_ID, unsigned_int),
    )


def _add_secret_argument(parser: ArgumentParser) -> None:
    parser.add_argument(
        "--secret",
        type=str,
        help="Signer private key",
        nargs="?",
        default=_get_env_or_default("USEROP_CODEC_SECRET", None, str),
    )


def initialize_argument_parser() -> ArgumentParser:
    parser = ArgumentParser(
        prog="userop-codec",
        description=(
            "ERC-4337 UserOperation hashing and EIP-7702 authorization signing"
        ),
    )

    parser.add_argument(
        "--verbose",
        help="show debug log",
        action="store_true",
        default=_get_env_or_default(
            "USEROP_CODEC_VERBOSE", False, lambda v: v.lower() == "true"),
    )

    parser.add_argument(
        "--version",
        action="version",
        version=__version__,
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    hash_parser = subparsers.add_parser(
        "hash", help="Calculate a UserOperation hash")
    hash_parser.add_argument(
        "user_operation",
        type=json_object,
        help="UserOperation json, inline or @file",
    )
    _add_network_arguments(hash_parser)
    hash_parser.add_argument(
        "--delegate",
        type=address,
        help="eip-7702 delegate of the sender, required for eip-7702 UserOperations",
        default=None,
    )
    hash_parser.add_argument(
        "--typed_data",
        help="use the EIP-712 hash of entrypoint v0.8 and later",
        action="store_true",
    )

    pack_parser = subparsers.add_parser(
        "pack", help="Pack a UserOperation")
    pack_parser.add_argument(
        "user_operation",
        type=json_object,
        help="UserOperation json, inline or @file",
    )

    sign_parser = subparsers.add_parser(
        "sign_authorization", help="Sign an eip-7702 authorization")
    sign_parser.add_argument(
        "authorization",
        type=json_object,
        help="Authorization json with chainId, address and optional nonce",
    )
    sign_parser.add_argument(
        "--nonce",
        type=unsigned_int,
        help="signer account nonce, used when the authorization has no nonce",
        default=None,
    )
    _add_secret_argument(sign_parser)

    recover_parser = subparsers.add_parser(
        "recover_authorization", help="Recover an eip-7702 authorization signer")
    recover_parser.add_argument(
        "authorization",
        type=json_object,
        help="Signed authorization json",
    )

    raw_transaction_parser = subparsers.add_parser(
        "raw_transaction",
        help="Create and sign an eip-7702 raw transaction")
    raw_transaction_parser.add_argument(
        "transaction",
        type=json_object,
        help="Transaction json with an authorizationList",
    )
    _add_secret_argument(raw_transaction_parser)

    return parser


def init_logging(args: Namespace):
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s.%(msecs)03d %(levelname)s %(message)s",
        datefmt="%b %d %H:%M:%S",
    )
    logging.getLogger("userop_codec")


def parse_args(cmd_args: list[str]) -> Namespace:
    argument_parser = initialize_argument_parser()
    args = argument_parser.parse_args(cmd_args)

    if args.command in ("sign_authorization", "raw_transaction") and \
            args.secret is None:
        argument_parser.error(
            "--secret or USEROP_CODEC_SECRET is required for signing")

    init_logging(args)
    return args
