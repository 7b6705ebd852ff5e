"""Splitwise API client."""

import logging
from typing import Any

import httpx

from ..models import CreateExpenseRequest, SplitwiseApp

logger = logging.getLogger(__name__)


class SplitwiseClient:
    """Client for the Splitwise API v3, authorized with an OAuth bearer token."""

    BASE_URL = "https://secure.splitwise.com/api/v3.0"

    def __init__(
        self,
        app: SplitwiseApp,
        token: str | None,
        transport: httpx.BaseTransport | None = None,
    ):
        """Initialize the Splitwise client.

        A missing token is allowed; such a client simply fails
        ``is_authenticated()``.
        """
        self.app = app
        self.token = token
        self._current_user: httpx.Response | None = None
        self.client = httpx.Client(
            base_url=self.BASE_URL,
            headers={"Accept": "application/json"},
            timeout=None,
            transport=transport,
        )

    def close(self):
        """Close the HTTP client."""
        self.client.close()

    def __enter__(self):
        """Context manager entry."""
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Context manager exit."""
        self.close()

    def _headers(self, headers: dict[str, str] | None = None) -> dict[str, str]:
        """Per-call headers plus the bearer header, which replaces any Authorization passed in."""
        merged = {k: v for k, v in (headers or {}).items() if k.lower() != "authorization"}
        if self.token:
            merged["Authorization"] = f"Bearer {self.token}"
        return merged

    def get_current_user(self) -> httpx.Response:
        """Get the authenticated user. Only the first call hits the API."""
        if self._current_user is None:
            self._current_user = self.client.get(
                "/get_current_user", headers=self._headers()
            )
            logger.debug(
                f"get_current_user -> HTTP {self._current_user.status_code}"
            )
        return self._current_user

    def is_authenticated(self) -> bool:
        """Whether the token is accepted, i.e. get_current_user has no error."""
        try:
            data = self.get_current_user().json()
        except ValueError:
            return False
        return isinstance(data, dict) and "error" not in data

    def current_user(self) -> dict[str, Any]:
        """The authenticated user's profile, or {} if the token is not accepted."""
        if not self.is_authenticated():
            return {}
        user: dict[str, Any] = self.get_current_user().json().get("user") or {}
        return user

    def current_user_id(self) -> int | None:
        """The authenticated user's ID, or None if the token is not accepted."""
        return self.current_user().get("id")

    def create_expense(
        self,
        expense: CreateExpenseRequest | dict[str, Any],
        headers: dict[str, str] | None = None,
    ) -> httpx.Response:
        """
        Create an expense.

        Args:
            expense: The request, or raw form fields
            headers: Extra headers for this call

        Returns:
            The raw response; callers decide what a failure means
        """
        if isinstance(expense, CreateExpenseRequest):
            data = expense.to_form()
        else:
            data = {key: str(value) for key, value in expense.items()}

        return self.client.post(
            "/create_expense",
            data=data,
            headers=self._headers(headers),
        )

    def get_expenses(
        self,
        query: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
    ) -> httpx.Response:
        """
        List expenses.

        Args:
            query: Query parameters, e.g. ``group_id``, ``limit``, ``dated_after``
            headers: Extra headers for this call
        """
        return self.client.get(
            "/get_expenses",
            params=query or {},
            headers=self._headers(headers),
        )
