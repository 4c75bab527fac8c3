# shopeasy/core/exceptions.py

from enum import Enum
from typing import Optional, Dict, Any, List
import logging

logger = logging.getLogger(__name__)


class ErrorCode(Enum):
    """Standardized error codes for the application."""

    # Input validation errors
    INVALID_INPUT = "INVALID_INPUT"
    MISSING_REQUIRED_FIELD = "MISSING_REQUIRED_FIELD"
    WEAK_PASSWORD = "WEAK_PASSWORD"
    SAME_PASSWORD = "SAME_PASSWORD"
    EMAIL_NOT_VERIFIED = "EMAIL_NOT_VERIFIED"

    # Signup OTP errors
    INVALID_OTP = "INVALID_OTP"
    OTP_EXPIRED = "OTP_EXPIRED"

    # Password reset errors
    INVALID_OR_EXPIRED_TOKEN = "INVALID_OR_EXPIRED_TOKEN"

    # Lookup errors
    NOT_FOUND = "NOT_FOUND"
    USER_NOT_FOUND = "USER_NOT_FOUND"
    PRODUCT_NOT_FOUND = "PRODUCT_NOT_FOUND"
    ORDER_NOT_FOUND = "ORDER_NOT_FOUND"
    PENDING_REGISTRATION_NOT_FOUND = "PENDING_REGISTRATION_NOT_FOUND"

    # Conflicts
    CONFLICT = "CONFLICT"
    EMAIL_ALREADY_REGISTERED = "EMAIL_ALREADY_REGISTERED"
    DUPLICATE_ORDER_NUMBER = "DUPLICATE_ORDER_NUMBER"
    HAS_DEPENDENT_RECORDS = "HAS_DEPENDENT_RECORDS"
    INSUFFICIENT_STOCK = "INSUFFICIENT_STOCK"

    # Session errors
    TOKEN_MISSING = "TOKEN_MISSING"
    TOKEN_INVALID = "TOKEN_INVALID"
    TOKEN_EXPIRED = "TOKEN_EXPIRED"
    TOKEN_REVOKED = "TOKEN_REVOKED"
    INVALID_CREDENTIALS = "INVALID_CREDENTIALS"
    ACCOUNT_DEACTIVATED = "ACCOUNT_DEACTIVATED"
    ADMIN_REQUIRED = "ADMIN_REQUIRED"
    FORBIDDEN = "FORBIDDEN"

    # Delivery and workflow errors
    RATE_LIMIT_EXCEEDED = "RATE_LIMIT_EXCEEDED"
    EMAIL_DELIVERY_FAILED = "EMAIL_DELIVERY_FAILED"
    PARTIAL_CASCADE_FAILURE = "PARTIAL_CASCADE_FAILURE"

    # System errors
    INTERNAL_SERVER_ERROR = "INTERNAL_SERVER_ERROR"


class ShopEasyError(Exception):
    """Base exception for all ShopEasy application errors."""

    status_code: int = 400
    default_code: ErrorCode = ErrorCode.INVALID_INPUT

    def __init__(
        self,
        user_message: str,
        code: Optional[ErrorCode] = None,
        technical_details: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        self.code = code or self.default_code
        self.user_message = user_message
        self.technical_details = technical_details
        self.context = context or {}

        logger.debug(
            f"ShopEasy Error: {self.code.value}",
            extra={
                "error_code": self.code.value,
                "user_message": user_message,
                "technical_details": technical_details,
            },
        )

        super().__init__(self.user_message)

    def to_response(self) -> Dict[str, Any]:
        """Convert to API response format."""
        return {
            "success": False,
            "error": {
                "code": self.code.value,
                "message": self.user_message,
                "context": self.context,
            },
        }


class InvalidInputError(ShopEasyError):
    """Malformed or missing input. Never worth retrying unchanged."""

    status_code = 400
    default_code = ErrorCode.INVALID_INPUT


class NotFoundError(ShopEasyError):
    status_code = 404
    default_code = ErrorCode.NOT_FOUND


class ConflictError(ShopEasyError):
    status_code = 409
    default_code = ErrorCode.CONFLICT


class UnauthorizedError(ShopEasyError):
    status_code = 401
    default_code = ErrorCode.TOKEN_INVALID


class ForbiddenError(ShopEasyError):
    status_code = 403
    default_code = ErrorCode.FORBIDDEN


class InternalError(ShopEasyError):
    status_code = 500
    default_code = ErrorCode.INTERNAL_SERVER_ERROR


class RateLimitedError(ShopEasyError):
    """Raised when a caller must wait before repeating a request."""

    status_code = 429
    default_code = ErrorCode.RATE_LIMIT_EXCEEDED

    def __init__(self, user_message: str, retry_after: int):
        self.retry_after = retry_after
        super().__init__(user_message, context={"retry_after": retry_after})

    def to_response(self) -> Dict[str, Any]:
        response = super().to_response()
        response["retry_after"] = self.retry_after
        return response


class EmailDeliveryError(ShopEasyError):
    status_code = 502
    default_code = ErrorCode.EMAIL_DELIVERY_FAILED


class InvalidOTPError(InvalidInputError):
    default_code = ErrorCode.INVALID_OTP

    def __init__(self, message: str = "Invalid OTP"):
        super().__init__(message)


class OTPExpiredError(InvalidInputError):
    default_code = ErrorCode.OTP_EXPIRED

    def __init__(self, message: str = "OTP has expired"):
        super().__init__(message)


class InvalidOrExpiredTokenError(InvalidInputError):
    default_code = ErrorCode.INVALID_OR_EXPIRED_TOKEN

    def __init__(self, message: str = "Invalid or expired reset token"):
        super().__init__(message)


class UserNotFoundError(NotFoundError):
    default_code = ErrorCode.USER_NOT_FOUND

    def __init__(self, message: str = "User not found"):
        super().__init__(message)


class ProductNotFoundError(NotFoundError):
    default_code = ErrorCode.PRODUCT_NOT_FOUND

    def __init__(self, product_id: Any, message: Optional[str] = None):
        super().__init__(
            message or f"Product {product_id} not found",
            context={"product_id": str(product_id)},
        )


class OrderNotFoundError(NotFoundError):
    default_code = ErrorCode.ORDER_NOT_FOUND

    def __init__(self, message: str = "Order not found"):
        super().__init__(message)


class InsufficientStockError(ConflictError):
    default_code = ErrorCode.INSUFFICIENT_STOCK

    def __init__(self, product_id: Any, title: str, requested: int, available: int):
        super().__init__(
            f"Insufficient stock for {title}",
            context={
                "product_id": str(product_id),
                "requested": requested,
                "available": available,
            },
        )


class PartialCascadeFailure(ShopEasyError):
    """A multi-step cascade stopped part way. The saga log records where."""

    status_code = 500
    default_code = ErrorCode.PARTIAL_CASCADE_FAILURE

    def __init__(self, saga_id: Any, completed_steps: List[str], failed_step: str, technical_details: Optional[str] = None):
        self.saga_id = saga_id
        self.completed_steps = list(completed_steps)
        self.failed_step = failed_step
        super().__init__(
            "The operation was only partially applied and can be resumed.",
            technical_details=technical_details,
            context={
                "saga_id": str(saga_id),
                "completed_steps": self.completed_steps,
                "failed_step": failed_step,
            },
        )


# Convenience functions for common errors
def raise_weak_password(message: str):
    """Raise a password policy error."""
    raise InvalidInputError(message, code=ErrorCode.WEAK_PASSWORD)


def raise_missing_fields(fields: List[str]):
    """Raise an error naming the missing required fields."""
    raise InvalidInputError(
        "All fields are required" if len(fields) > 1 else f"{fields[0]} is required",
        code=ErrorCode.MISSING_REQUIRED_FIELD,
        context={"missing_fields": fields},
    )
