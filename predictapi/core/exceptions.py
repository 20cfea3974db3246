from fastapi import HTTPException, status
from typing import Optional, Dict, Any

class BaseAPIException(HTTPException):
    """Base exception for API errors"""
    def __init__(
        self,
        status_code: int,
        error_code: str,
        message: str,
        details: Optional[Dict[str, Any]] = None
    ):
        self.error_code = error_code
        self.message = message
        self.details = details or {}

        super().__init__(
            status_code=status_code,
            detail={
                "success": False,
                "error": {
                    "code": error_code,
                    "message": message,
                    "details": self.details
                }
            }
        )

    def __str__(self) -> str:  # Ensure str(e) returns the human message
        return self.message

class AuthenticationError(BaseAPIException):
    """Authentication related errors"""
    def __init__(self, message: str = "Authentication failed", details: Optional[Dict] = None):
        super().__init__(
            status_code=status.HTTP_401_UNAUTHORIZED,
            error_code="AUTH_001",
            message=message,
            details=details
        )

class AuthorizationError(BaseAPIException):
    """Authorization related errors"""
    def __init__(self, message: str = "Access forbidden", details: Optional[Dict] = None):
        super().__init__(
            status_code=status.HTTP_403_FORBIDDEN,
            error_code="AUTH_002",
            message=message,
            details=details
        )

class ValidationError(BaseAPIException):
    """Validation errors"""
    def __init__(self, message: str = "Validation failed", details: Optional[Dict] = None):
        super().__init__(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            error_code="VALIDATION_001",
            message=message,
            details=details
        )

class BusinessLogicError(BaseAPIException):
    """Business logic errors"""
    def __init__(self, error_code: str, message: str, details: Optional[Dict] = None):
        super().__init__(
            status_code=status.HTTP_400_BAD_REQUEST,
            error_code=error_code,
            message=message,
            details=details
        )

class NotFoundError(BaseAPIException):
    """Resource not found errors"""
    def __init__(self, message: str = "Resource not found", details: Optional[Dict] = None, error_code: str = "NOT_FOUND_001"):
        super().__init__(
            status_code=status.HTTP_404_NOT_FOUND,
            error_code=error_code,
            message=message,
            details=details
        )

class ConflictError(BaseAPIException):
    """Resource conflict errors"""
    def __init__(self, message: str = "Resource conflict", details: Optional[Dict] = None, error_code: str = "CONFLICT_001"):
        super().__init__(
            status_code=status.HTTP_409_CONFLICT,
            error_code=error_code,
            message=message,
            details=details
        )

class InternalServerError(BaseAPIException):
    """Internal server errors"""
    def __init__(self, message: str = "Internal server error", details: Optional[Dict] = None):
        super().__init__(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            error_code="INTERNAL_001",
            message=message,
            details=details
        )

# ---------------------------------------------------------------------------
# 이벤트 / 참가 / 정산 도메인 에러
# ---------------------------------------------------------------------------

class EventNotFoundError(NotFoundError):
    """Event does not exist"""
    def __init__(self, event_id: Any):
        super().__init__(
            message=f"Event {event_id} not found",
            details={"event_id": event_id},
            error_code="EVENT_001",
        )

class UserNotFoundError(NotFoundError):
    """User does not exist"""
    def __init__(self, user_id: Any):
        super().__init__(
            message=f"User {user_id} not found",
            details={"user_id": user_id},
            error_code="USER_002",
        )

class BettingClosedError(BaseAPIException):
    """Event no longer accepts entries (terminal, not retryable)"""
    def __init__(self, message: str = "Event closed for predictions", details: Optional[Dict] = None):
        super().__init__(
            status_code=status.HTTP_410_GONE,
            error_code="BET_001",
            message=message,
            details=details
        )

class InvalidEntryFeeError(BusinessLogicError):
    """Entry fee outside the allowed set"""
    def __init__(self, entry_fee: Any, allowed: Any):
        super().__init__(
            error_code="BET_002",
            message=f"Invalid entry fee. Must be one of: {', '.join(str(f) for f in allowed)}",
            details={"entry_fee": entry_fee, "allowed_entry_fees": list(allowed)},
        )

class InvalidPredictionError(BusinessLogicError):
    """Prediction is not one of the event's options"""
    def __init__(self, prediction: Any, options: Any):
        super().__init__(
            error_code="BET_003",
            message="Invalid prediction value submitted",
            details={"prediction": prediction, "options": list(options)},
        )

class DuplicateEntryError(ConflictError):
    """User already holds a position in the event"""
    def __init__(self, event_id: Any, user_id: Any):
        super().__init__(
            message="Already participated in this event",
            details={"event_id": event_id, "user_id": user_id},
            error_code="BET_004",
        )

class InsufficientBalanceError(BaseAPIException):
    """Insufficient balance errors"""
    def __init__(self, message: str = "Insufficient balance", details: Optional[Dict] = None):
        super().__init__(
            status_code=status.HTTP_402_PAYMENT_REQUIRED,
            error_code="BALANCE_001",
            message=message,
            details=details
        )

class AlreadyResolvedError(ConflictError):
    """Event has already been resolved; safe to ignore on retry"""
    def __init__(self, event_id: Any):
        super().__init__(
            message=f"Event {event_id} already resolved",
            details={"event_id": event_id},
            error_code="SETTLE_001",
        )

class NoBetsError(ConflictError):
    """Event has no stakes to settle"""
    def __init__(self, event_id: Any):
        super().__init__(
            message=f"Event {event_id} has no participants to settle",
            details={"event_id": event_id},
            error_code="SETTLE_002",
        )
