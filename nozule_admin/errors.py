"""Error taxonomy shared by the transport, loaders, dispatcher and forms.

    AdminError
      ├── NetworkError         request failed or timed out (inline panel + retry)
      ├── ApiError             backend answered with a non-2xx status
      │     └── ConflictError  duplicate / conflicting entity (error toast)
      └── FormValidationError  client-side form check, blocks submission
"""

from __future__ import annotations

# Backend error codes that mean "this already exists" even when the
# status code is a plain 400 (WordPress user APIs do this).
CONFLICT_CODES = frozenset({
    "existing_user_login",
    "existing_user_email",
    "duplicate_entry",
    "conflict",
})


class AdminError(Exception):
    """Base class for every error the admin screens know how to display."""

    default_message = "Something went wrong."

    def __init__(self, message: str = "") -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class NetworkError(AdminError):
    default_message = "Could not reach the server. Check your connection and try again."


class ApiError(AdminError):
    default_message = "Request failed"

    def __init__(
        self, message: str = "", status: int = 0, code: str = "UNKNOWN_ERROR"
    ) -> None:
        super().__init__(message)
        self.status = status
        self.code = code


class ConflictError(ApiError):
    default_message = "This record conflicts with an existing one."


class FormValidationError(AdminError):
    """One or more form fields are missing or malformed.

    ``errors`` maps field name to a message shown next to that field.
    """

    default_message = "Please fill in all required fields."

    def __init__(self, errors: dict[str, str], message: str = "") -> None:
        super().__init__(message)
        self.errors = dict(errors)


def is_conflict(status: int, code: str) -> bool:
    return status == 409 or code.lower() in CONFLICT_CODES
