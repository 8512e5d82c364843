from eth_abi import encode
from userop_codec.typing import Address
from userop_codec.user_operation.models import PackedUserOperation

PACKED_USER_OPERATION_ABI = (
    "(address,uint256,bytes,bytes,bytes32,uint256,bytes32,bytes,bytes)")
HANDLE_OPS_SELECTOR = "0x765e827f"  # handleOps


def encode_packed_user_operation(
        packed_user_operation: PackedUserOperation) -> bytes:
    return encode(
        [PACKED_USER_OPERATION_ABI],
        [_to_abi_list(packed_user_operation)],
    )


def encode_handleops_calldata(
        packed_user_operations: list[PackedUserOperation],
        beneficiary: Address) -> str:
    params = encode(
        [
            PACKED_USER_OPERATION_ABI + "[]",
            "address",
        ],
        [
            [_to_abi_list(op) for op in packed_user_operations],
            bytes.fromhex(beneficiary[2:]),
        ],
    )

    call_data = HANDLE_OPS_SELECTOR + params.hex()
    return call_data


def _to_abi_list(
        packed_user_operation: PackedUserOperation) -> list[int | bytes]:
    user_operation_list = packed_user_operation.to_list()
    user_operation_list[0] = bytes.fromhex(packed_user_operation.sender[2:])
    return user_operation_list
