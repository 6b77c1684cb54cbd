from fastapi import HTTPException
from starlette.status import (
    HTTP_400_BAD_REQUEST,
    HTTP_401_UNAUTHORIZED,
    HTTP_403_FORBIDDEN,
    HTTP_404_NOT_FOUND,
    HTTP_500_INTERNAL_SERVER_ERROR,
)


class AccountError(HTTPException):
    """
    Base class for account lifecycle errors.

    The detail is always {"code": ..., "message": ...} so clients can branch
    on the machine-readable code instead of the message text.
    """

    status_code = HTTP_400_BAD_REQUEST
    code = "account_error"
    message = "Account operation failed"

    def __init__(self, message: str | None = None, headers: dict | None = None):
        super().__init__(
            status_code=self.status_code,
            detail={"code": self.code, "message": message or self.message},
            headers=headers,
        )


class ValidationConflict(AccountError):
    code = "conflict"
    message = "Account already exists"

    def __init__(self, field: str):
        self.field = field
        self.code = f"{field}_taken"
        label = "Email" if field == "email" else "Phone number"
        super().__init__(f"{label} already registered")


class InvalidCredentials(AccountError):
    status_code = HTTP_401_UNAUTHORIZED
    code = "invalid_credentials"
    message = "Invalid email or password"


class IncorrectPassword(AccountError):
    code = "incorrect_password"
    message = "Incorrect password"


class AccountDeleted(AccountError):
    status_code = HTTP_403_FORBIDDEN
    code = "account_deleted"
    message = "This account has been deleted"


class NotDeactivated(AccountError):
    code = "not_deactivated"
    message = "Account is not deactivated"


class InvalidOrExpiredCode(AccountError):
    code = "invalid_or_expired_code"
    message = "Invalid or expired verification code"


class InvalidTransition(AccountError):
    code = "invalid_transition"
    message = "Account status change not allowed"


class NotFound(AccountError):
    status_code = HTTP_404_NOT_FOUND
    code = "not_found"
    message = "User not found"


class NotAuthenticated(AccountError):
    status_code = HTTP_401_UNAUTHORIZED
    code = "not_authenticated"
    message = "Could not validate credentials"

    def __init__(self, message: str | None = None):
        super().__init__(message, headers={"WWW-Authenticate": "Bearer"})


class InternalError(AccountError):
    status_code = HTTP_500_INTERNAL_SERVER_ERROR
    code = "internal_error"
    message = "Internal server error"
