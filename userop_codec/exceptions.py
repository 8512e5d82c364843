from dataclasses import dataclass
from enum import Enum


class CodecExceptionCode(Enum):
    InvalidFields = -32602
    MalformedOperation = -32600
    GasValueOverflow = -32610
    InvalidTrailerLength = -32611
    LengthExceedsBlob = -32612
    InvalidSignature = -32507
    UnresolvedDelegate = -32613


@dataclass
class CodecException(Exception):
    exception_code: CodecExceptionCode
    message: str

    def __str__(self) -> str:
        return self.message


class InvalidPaymasterSignatureLength(CodecException):
    data_length: int
    pm_signature_length: int

    def __init__(self, data_length: int, pm_signature_length: int) -> None:
        super().__init__(
            CodecExceptionCode.InvalidTrailerLength,
            f"InvalidPaymasterSignatureLength"
            f"({data_length},{pm_signature_length})",
        )
        self.data_length = data_length
        self.pm_signature_length = pm_signature_length
