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

class ValidationError(AppException):
    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message=message, status_code=400, error_code="VALIDATION_ERROR", details=details)

class PastDateError(AppException):
    def __init__(self, message: str = "Cannot apply for leave on past dates"):
        super().__init__(message=message, status_code=400, error_code="PAST_DATE")

class InvalidDateRangeError(AppException):
    def __init__(self, message: str = "Start date cannot be after end date"):
        super().__init__(message=message, status_code=400, error_code="INVALID_DATE_RANGE")

class OverlappingLeaveError(AppException):
    def __init__(self, message: str = "You have overlapping leave requests for the selected dates"):
        super().__init__(message=message, status_code=400, error_code="OVERLAPPING_REQUEST")

class InsufficientBalanceError(AppException):
    def __init__(self, available_days: float, message: str = "Insufficient leave balance"):
        self.available_days = available_days
        super().__init__(
            message=message,
            status_code=400,
            error_code="INSUFFICIENT_BALANCE",
            details={"availableDays": available_days}
        )

class RequestNotPendingError(AppException):
    def __init__(self, message: str = "Leave request is not pending"):
        super().__init__(message=message, status_code=400, error_code="NOT_PENDING")

class NotFoundError(AppException):
    def __init__(self, message: str = "Resource not found"):
        super().__init__(message=message, status_code=404, error_code="NOT_FOUND")

class AuthenticationError(AppException):
    def __init__(self, message: str = "Could not validate credentials"):
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

class RateLimitExceededError(AppException):
    def __init__(self, retry_after: int, message: str = "Too many requests, please try again later."):
        self.retry_after = retry_after
        super().__init__(
            message=message,
            status_code=429,
            error_code="RATE_LIMITED",
            details={"retryAfter": retry_after}
        )

class SessionStoreError(AppException):
    def __init__(self, message: str = "Session store is unavailable"):
        super().__init__(message=message, status_code=503, error_code="SESSION_STORE_UNAVAILABLE")
