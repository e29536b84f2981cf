from enum import IntEnum
from typing import Optional


class ErrorCode(IntEnum):
    INVALID_ARGUMENT = 1
    STORAGE_UNAVAILABLE = 2
    RECORD_MISSING = 3
    DECODE_FAILURE = 4
    SERVER_EXCEPTION = 5


class PayoutsError(Exception):
    """
    Base error for the payouts core. Every error names the operation that failed and the key or parameter
    involved, so callers never see a bare transport error.
    """

    code: ErrorCode = ErrorCode.SERVER_EXCEPTION

    def __init__(self, operation: str, key: Optional[str], detail: str = ""):
        self.operation = operation
        self.key = key
        self.detail = detail
        message = f"{operation} failed for {key!r}"
        if detail:
            message += f": {detail}"
        super().__init__(message)


class InvalidArgument(PayoutsError):
    code = ErrorCode.INVALID_ARGUMENT


class StorageUnavailable(PayoutsError):
    code = ErrorCode.STORAGE_UNAVAILABLE


class RecordMissing(PayoutsError):
    code = ErrorCode.RECORD_MISSING


class DecodeFailure(PayoutsError):
    code = ErrorCode.DECODE_FAILURE
