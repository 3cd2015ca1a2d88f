"""
Domain errors raised by the service layer.

Every error carries a stable `error` code (shown to API clients next to the
human-readable message) and the HTTP status the boundary should answer with.
Services raise them; `meditrack.main` turns them into the failure envelope.
"""
from fastapi import status


class PharmacyError(Exception):
    """Base class for recoverable, caller-facing failures."""

    error: str = "Error"
    status_code: int = status.HTTP_400_BAD_REQUEST
    default_message: str = "The request could not be completed."

    def __init__(self, message: str | None = None, **context):
        self.message = message or self.default_message
        self.context = context
        super().__init__(self.message)


class NotFoundError(PharmacyError):
    error = "NotFound"
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Resource not found."


class DuplicateCodeError(PharmacyError):
    error = "DuplicateCode"
    status_code = status.HTTP_409_CONFLICT
    default_message = "An active drug already uses this code."


class LockedError(PharmacyError):
    error = "Locked"
    status_code = status.HTTP_409_CONFLICT
    default_message = "The drug is locked and cannot be deleted. Ask an administrator to unlock it."


class ForbiddenError(PharmacyError):
    error = "Forbidden"
    status_code = status.HTTP_403_FORBIDDEN
    default_message = "Insufficient role permissions."


class EmptyCartError(PharmacyError):
    error = "EmptyCart"
    default_message = "The cart is empty."


class DrugNotFoundError(PharmacyError):
    error = "DrugNotFound"
    default_message = "A drug in the cart does not exist."


class InsufficientStockError(PharmacyError):
    error = "InsufficientStock"
    status_code = status.HTTP_409_CONFLICT
    default_message = "Not enough stock to complete the sale."


class NoMatchError(PharmacyError):
    error = "NoMatch"
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "No drugs match the selection."


class AllLockedError(PharmacyError):
    error = "AllLocked"
    status_code = status.HTTP_409_CONFLICT
    default_message = "Every selected drug is locked; nothing was deleted."


class ConfirmationRequiredError(PharmacyError):
    error = "ConfirmationRequired"
    default_message = "This operation is irreversible and must be explicitly confirmed."


class AuthenticationFailedError(PharmacyError):
    error = "AuthenticationFailed"
    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "Invalid username or password."


class UsernameTakenError(PharmacyError):
    error = "UsernameTaken"
    status_code = status.HTTP_409_CONFLICT
    default_message = "Username already exists."
