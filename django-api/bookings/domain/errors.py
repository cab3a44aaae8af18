"""Domain error codes for the bookings module.

Every failure carries a specific ``ErrorCode`` and belongs to one broad
``ErrorKind``. Callers branch on the kind; the code and message are what gets
shown to the user.
"""

from dataclasses import dataclass
from enum import Enum


class ErrorKind(Enum):
    """Failure taxonomy exposed to callers."""

    VALIDATION_FAILURE = "ValidationFailure"
    CURRENCY_MISMATCH = "CurrencyMismatch"
    INVALID_OPERATION = "InvalidOperation"
    UNAUTHORIZED = "Unauthorized"
    CONVERSION_FAILED = "ConversionFailed"
    NOT_FOUND = "NotFound"
    SERVER_FAILURE = "ServerFailure"


class ErrorCode(Enum):
    """Domain error codes."""

    VALIDATION_FAILURE = "VALIDATION_FAILURE"
    INVALID_ID = "INVALID_ID"
    INVALID_PAYMENT = "INVALID_PAYMENT"
    INVALID_TRANSITION = "INVALID_TRANSITION"
    INVALID_STATUS_TRANSITION = "INVALID_STATUS_TRANSITION"
    OFFER_EXPIRED = "OFFER_EXPIRED"
    CURRENCY_MISMATCH = "CURRENCY_MISMATCH"
    INVALID_OPERATION = "INVALID_OPERATION"
    UNAUTHORIZED = "UNAUTHORIZED"
    CONVERSION_FAILED = "CONVERSION_FAILED"
    OFFER_NOT_FOUND = "OFFER_NOT_FOUND"
    BOOKING_NOT_FOUND = "BOOKING_NOT_FOUND"
    SERVER_FAILURE = "SERVER_FAILURE"

    @property
    def kind(self) -> ErrorKind:
        return _KIND_BY_CODE[self]


_KIND_BY_CODE = {
    ErrorCode.VALIDATION_FAILURE: ErrorKind.VALIDATION_FAILURE,
    ErrorCode.INVALID_ID: ErrorKind.VALIDATION_FAILURE,
    ErrorCode.INVALID_PAYMENT: ErrorKind.VALIDATION_FAILURE,
    ErrorCode.INVALID_TRANSITION: ErrorKind.VALIDATION_FAILURE,
    ErrorCode.INVALID_STATUS_TRANSITION: ErrorKind.VALIDATION_FAILURE,
    ErrorCode.OFFER_EXPIRED: ErrorKind.VALIDATION_FAILURE,
    ErrorCode.CURRENCY_MISMATCH: ErrorKind.CURRENCY_MISMATCH,
    ErrorCode.INVALID_OPERATION: ErrorKind.INVALID_OPERATION,
    ErrorCode.UNAUTHORIZED: ErrorKind.UNAUTHORIZED,
    ErrorCode.CONVERSION_FAILED: ErrorKind.CONVERSION_FAILED,
    ErrorCode.OFFER_NOT_FOUND: ErrorKind.NOT_FOUND,
    ErrorCode.BOOKING_NOT_FOUND: ErrorKind.NOT_FOUND,
    ErrorCode.SERVER_FAILURE: ErrorKind.SERVER_FAILURE,
}


@dataclass(frozen=True)
class DomainError(Exception):
    """Base domain error with code and user-safe message."""

    code: ErrorCode
    message: str

    @property
    def kind(self) -> ErrorKind:
        return self.code.kind

    def __str__(self) -> str:
        return f"{self.code.value}: {self.message}"


class ValidationError(DomainError):
    """Raised for malformed or out-of-range input."""

    def __init__(self, message: str) -> None:
        super().__init__(code=ErrorCode.VALIDATION_FAILURE, message=message)


class InvalidIdError(DomainError):
    """Raised when an identifier is not a valid UUID."""

    def __init__(self, what: str = "ID") -> None:
        super().__init__(
            code=ErrorCode.INVALID_ID,
            message=f"Invalid {what} format",
        )


class CurrencyMismatchError(DomainError):
    """Raised when two Money values of different currencies are combined."""

    def __init__(self, left: str, right: str) -> None:
        super().__init__(
            code=ErrorCode.CURRENCY_MISMATCH,
            message=f"Cannot combine different currencies: {left} and {right}",
        )


class InvalidOperationError(DomainError):
    """Raised for arithmetic that has no meaningful result."""

    def __init__(self, message: str) -> None:
        super().__init__(code=ErrorCode.INVALID_OPERATION, message=message)


class InvalidPaymentError(DomainError):
    """Raised when a payment cannot be recorded."""

    def __init__(self, message: str) -> None:
        super().__init__(code=ErrorCode.INVALID_PAYMENT, message=message)


class InvalidTransitionError(DomainError):
    """Raised when an offer is not in a state that allows the action."""

    def __init__(self, action: str, status: str) -> None:
        super().__init__(
            code=ErrorCode.INVALID_TRANSITION,
            message=f"Cannot {action} an offer that is {status}",
        )


class InvalidStatusTransitionError(DomainError):
    """Raised when a booking status change is not in the transition table."""

    def __init__(self, current: str, target: str, reason: str | None = None) -> None:
        message = f"Cannot change booking status from {current} to {target}"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(code=ErrorCode.INVALID_STATUS_TRANSITION, message=message)


class OfferExpiredError(DomainError):
    """Raised when accepting an offer whose validity window has passed."""

    def __init__(self) -> None:
        super().__init__(
            code=ErrorCode.OFFER_EXPIRED,
            message="This offer has expired",
        )


class UnauthorizedError(DomainError):
    """Raised when the wrong party attempts an action."""

    def __init__(self, message: str) -> None:
        super().__init__(code=ErrorCode.UNAUTHORIZED, message=message)


class ConversionFailedError(DomainError):
    """Raised when an accepted offer could not be converted into a booking."""

    def __init__(self) -> None:
        super().__init__(
            code=ErrorCode.CONVERSION_FAILED,
            message="Could not create the booking for this offer, please retry",
        )


class OfferNotFoundError(DomainError):
    """Raised when an offer is not found."""

    def __init__(self) -> None:
        super().__init__(
            code=ErrorCode.OFFER_NOT_FOUND,
            message="Offer not found",
        )


class BookingNotFoundError(DomainError):
    """Raised when a booking is not found."""

    def __init__(self) -> None:
        super().__init__(
            code=ErrorCode.BOOKING_NOT_FOUND,
            message="Booking not found",
        )


class StoreError(DomainError):
    """Raised by stores when the persistence collaborator fails."""

    def __init__(self, message: str = "Storage is unavailable") -> None:
        super().__init__(code=ErrorCode.SERVER_FAILURE, message=message)
