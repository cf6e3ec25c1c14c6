"""
Typed failures raised by the identity kernel.

Every class here carries a user-facing message and a stable ``code``.
The API layer maps them to HTTP responses; nothing below the API layer
knows about status codes.
"""

from typing import Optional, Sequence


class VidtubeError(Exception):
    """Base class for all user-facing kernel failures."""

    code = "error"
    default_message = "Request failed"

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(VidtubeError):
    """Malformed or missing input."""

    code = "validation_error"
    default_message = "Invalid input"

    def __init__(self, message: Optional[str] = None, fields: Sequence[str] = ()):
        super().__init__(message)
        self.fields = list(fields)


class DuplicateAccount(VidtubeError):
    code = "duplicate_account"
    default_message = "User already exists with this email or username"


class InvalidCredentials(VidtubeError):
    code = "invalid_credentials"
    default_message = "Invalid credentials"


class InvalidToken(VidtubeError):
    """Bad signature, wrong token type, expired, or no longer the active session."""

    code = "invalid_token"
    default_message = "Invalid or expired token"


class TokenExpired(InvalidToken):
    code = "token_expired"
    default_message = "Token has expired"


class TokenReuseDetected(InvalidToken):
    """A refresh token that was already rotated out was presented again."""

    code = "token_reuse_detected"
    default_message = "Refresh token has already been used"


class Unauthenticated(VidtubeError):
    code = "unauthenticated"
    default_message = "Not authenticated"


class UpstreamFailure(VidtubeError):
    """Asset store, persistence backend, or crypto primitive failed."""

    code = "upstream_failure"
    default_message = "Upstream service unavailable"


class HashingFailure(UpstreamFailure):
    code = "hashing_failure"
    default_message = "Internal server error"


class Conflict(Exception):
    """Unique constraint violated on insert. Store-level only."""
