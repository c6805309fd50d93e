from typing import Any, Dict, Optional


class AppException(Exception):
    def __init__(
        self,
        message: str,
        status_code: int = 400,
        error_code: str = "BUSINESS_ERROR",
        details: Optional[Dict[str, Any]] = None
    ):
        self.message = message
        self.status_code = status_code
        self.error_code = error_code
        self.details = details
        super().__init__(self.message)


class InvalidInputError(AppException):
    """Missing or malformed input. Raised before any storage access."""
    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(
            message=message,
            status_code=400,
            error_code="VALIDATION_ERROR",
            details=details
        )


class NotFoundError(AppException):
    def __init__(self, entity: str, identifier: Any):
        super().__init__(
            message=f"{entity} not found",
            status_code=404,
            error_code="NOT_FOUND",
            details={"entity": entity, "id": str(identifier)}
        )


class ConcurrentModificationError(AppException):
    """The request is no longer pending: another actor already resolved it."""
    def __init__(self, request_id: int, current_status: Optional[str] = None):
        super().__init__(
            message="Leave request was already processed",
            status_code=409,
            error_code="CONCURRENT_MODIFICATION",
            details={"request_id": request_id, "current_status": current_status}
        )


class InsufficientBalanceError(AppException):
    def __init__(self, requested: float, remaining: float):
        super().__init__(
            message=f"Insufficient balance. Requested: {requested}, Remaining: {remaining}",
            status_code=409,
            error_code="INSUFFICIENT_BALANCE",
            details={"requested": requested, "remaining": remaining}
        )


class AuthenticationError(AppException):
    def __init__(self, message: str = "Could not identify the caller"):
        super().__init__(
            message=message,
            status_code=401,
            error_code="AUTH_FAILED"
        )


class AccessDeniedError(AppException):
    """Custom permission error. Named AccessDeniedError to avoid shadowing Python's built-in PermissionError."""
    def __init__(self, message: str = "Insufficient permissions"):
        super().__init__(
            message=message,
            status_code=403,
            error_code="PERMISSION_DENIED"
        )
