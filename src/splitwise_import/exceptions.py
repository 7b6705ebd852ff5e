"""Custom exceptions for splitwise-import."""

from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from .models import ExpenseEntry


class SplitwiseImportError(Exception):
    """Base exception for all splitwise-import errors."""

    pass


class ConfigurationError(SplitwiseImportError):
    """Raised when configuration is invalid or missing."""

    pass


class ParseError(SplitwiseImportError):
    """Raised when the expense file cannot be read or is malformed."""

    pass


class AuthenticationFailedError(SplitwiseImportError):
    """Raised when the OAuth flow was aborted or the token exchange failed."""

    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(f"Authentication failed: {reason}")


class APIError(SplitwiseImportError):
    """Base class for API-related errors."""

    pass


class SplitwiseAPIError(APIError):
    """Raised when Splitwise API request fails."""

    pass


class ExpenseCreationError(SplitwiseAPIError):
    """Raised when Splitwise rejects a create_expense request.

    Carries everything needed to inspect the failing row after the run has
    stopped: its position in the file, the row itself, the form payload that
    was sent and the raw response.
    """

    def __init__(
        self,
        row_number: int,
        entry: "ExpenseEntry",
        payload: dict[str, str],
        status_code: int,
        response_body: str,
    ):
        self.row_number = row_number
        self.entry = entry
        self.payload = payload
        self.status_code = status_code
        self.response_body = response_body
        super().__init__(
            f"Failed to create expense for row {row_number} "
            f"({entry.amount} {entry.description!r}): "
            f"HTTP {status_code}: {response_body}"
        )

    def details(self) -> dict[str, Any]:
        """Structured context of the failing request."""
        return {
            "row": self.row_number,
            "amount": str(self.entry.amount),
            "description": self.entry.description,
            "date": str(self.entry.date),
            "payload": self.payload,
            "status_code": self.status_code,
            "response": self.response_body,
        }
