"""Error taxonomy for account operations.

Every error carries the HTTP status it maps to, a stable snake_case `detail`
code (what frontends branch on) and a human-readable `message`. The API layer
renders them as `{"detail": ..., "message": ...}`.
"""

from __future__ import annotations


class AccountError(Exception):
    status_code: int = 500
    detail: str = "internal_error"
    default_message: str = "An internal error occurred"

    def __init__(self, message: str | None = None, *, detail: str | None = None) -> None:
        self.message = message or self.default_message
        if detail:
            self.detail = detail
        super().__init__(self.message)


# -----------------------------
# Validation
# -----------------------------


class ValidationError(AccountError):
    status_code = 400
    detail = "validation_error"
    default_message = "Invalid request"


class DuplicateEmailError(ValidationError):
    status_code = 409
    detail = "email_exists"
    default_message = "User with this email already exists"


class DuplicateMobileError(ValidationError):
    status_code = 409
    detail = "mobile_exists"
    default_message = "Mobile number must be unique"


# -----------------------------
# Lookups
# -----------------------------


class NotFoundError(AccountError):
    status_code = 404
    detail = "not_found"
    default_message = "Not found"


class UserNotFoundError(NotFoundError):
    detail = "user_not_found"
    default_message = "User not found"


class InvalidResetTokenError(NotFoundError):
    detail = "reset_token_mismatch"
    default_message = "Reset token does not match"


# -----------------------------
# Authentication / authorization
# -----------------------------


class AuthenticationError(AccountError):
    status_code = 401
    detail = "token_invalid"
    default_message = "Invalid token"


class MissingCredentialError(AuthenticationError):
    status_code = 403
    detail = "missing_token"
    default_message = "Access denied"


class UnauthenticatedError(AuthenticationError):
    status_code = 400
    detail = "not_authenticated"
    default_message = "User not authenticated"


class ForbiddenError(AccountError):
    status_code = 401
    detail = "not_authorized"
    default_message = "You are not authorized."


class InvalidCredentialError(AccountError):
    status_code = 400
    detail = "invalid_password"
    default_message = "Invalid password"


# -----------------------------
# Primitives
# -----------------------------


class TokenError(AccountError):
    status_code = 401
    detail = "token_invalid"
    default_message = "Invalid token"


class InvalidTokenError(TokenError):
    pass


class ExpiredTokenError(TokenError):
    detail = "token_expired"
    default_message = "Token expired"


class HashingError(AccountError):
    detail = "hashing_failed"
    default_message = "Password hashing failed"
