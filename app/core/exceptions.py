from fastapi import HTTPException
from app.constants.error_codes import ErrorCode


class AppException(HTTPException):
    def __init__(
        self,
        status_code: int,
        message: str,
        error_code: ErrorCode,
        details: dict | None = None,
    ):
        super().__init__(status_code=status_code, detail=message)
        self.error_code = error_code
        self.details = details

    @property
    def message(self) -> str:
        return self.detail


# =====================================================
# INVENTORY DOMAIN ERRORS
# =====================================================
class NotFoundError(AppException):
    def __init__(
        self,
        message: str,
        error_code: ErrorCode = ErrorCode.NOT_FOUND,
        details: dict | None = None,
    ):
        super().__init__(404, message, error_code, details)


class ValidationError(AppException):
    def __init__(
        self,
        message: str,
        error_code: ErrorCode = ErrorCode.VALIDATION_ERROR,
        details: dict | None = None,
    ):
        super().__init__(400, message, error_code, details)


class InsufficientStockError(AppException):
    def __init__(
        self,
        message: str,
        error_code: ErrorCode = ErrorCode.INVENTORY_INSUFFICIENT_STOCK,
        details: dict | None = None,
    ):
        super().__init__(409, message, error_code, details)


class DuplicateBatchError(AppException):
    def __init__(self, message: str, details: dict | None = None):
        super().__init__(409, message, ErrorCode.INVENTORY_DUPLICATE_BATCH, details)


class DuplicateSerialError(AppException):
    def __init__(self, message: str, details: dict | None = None):
        super().__init__(409, message, ErrorCode.INVENTORY_DUPLICATE_SERIAL, details)


class ConcurrencyConflictError(AppException):
    def __init__(
        self,
        message: str,
        error_code: ErrorCode = ErrorCode.INVENTORY_CONCURRENT_UPDATE,
        details: dict | None = None,
    ):
        super().__init__(409, message, error_code, details)


class InvalidStateError(AppException):
    def __init__(self, message: str, error_code: ErrorCode, details: dict | None = None):
        super().__init__(409, message, error_code, details)
