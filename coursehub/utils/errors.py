"""
Client error taxonomy.

- AuthError: invalid/expired credential or forbidden call. Invalidates the session.
- NotFoundError: entity absent. Rendered as an empty/placeholder state.
- NetworkError: transport failure, timeout or 5xx. Retryable by the user, never retried automatically.
- ValidationError: malformed input to a form/action. Reported inline.
- ResponseShapeError: the backend answered with a payload we cannot normalize.
"""

from typing import Optional


class ApiError(Exception):
    """Base class for every error surfaced by the client."""

    retryable = False

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code

    def __str__(self) -> str:
        return self.message


class AuthError(ApiError):
    def __init__(self, message: str = "Authentication required", status_code: Optional[int] = 401, deactivated: bool = False):
        super().__init__(message, status_code)
        self.deactivated = deactivated


class NotFoundError(ApiError):
    def __init__(self, message: str = "Not found", status_code: Optional[int] = 404):
        super().__init__(message, status_code)


class NetworkError(ApiError):
    retryable = True


class ValidationError(ApiError):
    def __init__(self, message: str, status_code: Optional[int] = None, field: Optional[str] = None):
        super().__init__(message, status_code)
        self.field = field


class ResponseShapeError(ApiError):
    pass


# Known backend messages and the canonical text shown for them. Anything not
# listed here is passed through verbatim.
_KNOWN_MESSAGES: list[tuple[str, str]] = [
    ("verify your email", "Please verify your email before logging in."),
    ("already verified", "Email is already verified. You can now log in."),
    ("link has expired", "This link has expired. Please request a new one."),
    ("jwt expired", "Your session has expired. Please log in again."),
    ("token expired", "Your session has expired. Please log in again."),
    ("account is not active", "Your account has been suspended."),
    ("token has been invalidated", "Your session has ended. Please log in again."),
    ("suspended", "Your account has been suspended."),
    ("incorrect email or password", "Incorrect email or password."),
    ("invalid credentials", "Incorrect email or password."),
]

_DEACTIVATION_MARKERS = ("account is not active", "token has been invalidated", "suspended", "inactive")


def friendly_message(raw: Optional[str], default: str = "Request failed") -> str:
    """Map a backend message onto a known canonical message, else return it unchanged."""
    if not raw:
        return default
    lowered = raw.lower()
    for needle, text in _KNOWN_MESSAGES:
        if needle in lowered:
            return text
    return raw


def is_deactivation_message(raw: Optional[str]) -> bool:
    if not raw:
        return False
    lowered = raw.lower()
    return any(marker in lowered for marker in _DEACTIVATION_MARKERS)


def error_for_status(status_code: int, message: Optional[str]) -> ApiError:
    """Build the taxonomy error for a non-2xx response."""
    text = friendly_message(message, default=f"HTTP error! status: {status_code}")
    if status_code in (401, 403):
        return AuthError(text, status_code=status_code, deactivated=is_deactivation_message(message))
    if status_code == 404:
        return NotFoundError(text, status_code=status_code)
    if status_code in (400, 409, 422):
        return ValidationError(text, status_code=status_code)
    return NetworkError(text, status_code=status_code)
