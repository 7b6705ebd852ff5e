"""Service layer that ties authentication, parsing and expense creation together."""

import logging
from collections.abc import Callable, Iterable
from pathlib import Path

from .auth import SplitwiseAuth
from .cache import TokenCache
from .clients.splitwise import SplitwiseClient
from .config import Settings
from .exceptions import AuthenticationFailedError, ExpenseCreationError
from .models import AuthFailure, CreateExpenseRequest, ExpenseEntry, SplitwiseApp
from .parser import parse_file

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[int, ExpenseEntry, CreateExpenseRequest], None]


class ImportService:
    """Imports expense rows into a Splitwise group."""

    def __init__(
        self,
        settings: Settings,
        token_cache: TokenCache | None = None,
        client_factory: Callable[[SplitwiseApp, str | None], SplitwiseClient] = SplitwiseClient,
        auth_factory: Callable[[SplitwiseApp], SplitwiseAuth] | None = None,
    ):
        """Initialize the import service."""
        self.settings = settings
        self.app = settings.app
        self.token_cache = token_cache or TokenCache(settings.token_cache_path)
        self.client_factory = client_factory
        self.auth_factory = auth_factory or (
            lambda app: SplitwiseAuth(app, port=settings.callback_port)
        )

    def authenticated_client(self) -> SplitwiseClient:
        """
        Get a client with a working token.

        Tries the cached token first. If Splitwise rejects it, runs the browser
        flow and caches the new token.

        Raises:
            AuthenticationFailedError: If the flow was aborted or failed
        """
        client = self.client_factory(self.app, self.token_cache.read())
        if client.is_authenticated():
            logger.debug("Cached bearer token is valid")
            return client

        client.close()
        logger.info("No valid bearer token, starting OAuth authorization")
        result = self.auth_factory(self.app).serve()
        if isinstance(result, AuthFailure):
            raise AuthenticationFailedError(result.reason)

        token = result.access_token
        self.token_cache.write(token)
        return self.client_factory(self.app, token)

    def build_request(self, entry: ExpenseEntry) -> CreateExpenseRequest:
        """Build the create_expense request for one row."""
        return CreateExpenseRequest.from_entry(
            entry,
            group_id=self.settings.group_id,
            my_user_id=self.settings.my_user_id,
            friend_user_id=self.settings.friend_user_id,
            currency_code=self.settings.currency_code,
        )

    def submit_expenses(
        self,
        client: SplitwiseClient,
        entries: Iterable[ExpenseEntry],
        on_progress: ProgressCallback | None = None,
    ) -> int:
        """
        Create one Splitwise expense per row, in order.

        Stops at the first rejected row. Rows before it stay created.

        Args:
            client: Authenticated Splitwise client
            entries: Expense rows
            on_progress: Called before each request with (row number, row, request)

        Returns:
            Number of expenses created

        Raises:
            ExpenseCreationError: If Splitwise returns a non-success status
        """
        created = 0
        for row_number, entry in enumerate(entries, start=1):
            request = self.build_request(entry)
            if on_progress:
                on_progress(row_number, entry, request)

            response = client.create_expense(request)
            if not response.is_success:
                logger.error(
                    f"Row {row_number} ({entry.description!r}) rejected: "
                    f"HTTP {response.status_code}"
                )
                raise ExpenseCreationError(
                    row_number=row_number,
                    entry=entry,
                    payload=request.to_form(),
                    status_code=response.status_code,
                    response_body=response.text,
                )
            created += 1

        logger.info(f"Created {created} expenses")
        return created

    def run(
        self,
        path: Path | None = None,
        on_progress: ProgressCallback | None = None,
        dry_run: bool = False,
    ) -> int:
        """
        Import the expense file.

        Args:
            path: File to import, defaults to the configured FILENAME
            on_progress: See submit_expenses
            dry_run: Only build and report the requests; no API calls

        Returns:
            Number of expenses created (or that would be created)
        """
        path = path or self.settings.filename

        if dry_run:
            entries = parse_file(path)
            for row_number, entry in enumerate(entries, start=1):
                request = self.build_request(entry)
                if on_progress:
                    on_progress(row_number, entry, request)
            return len(entries)

        with self.authenticated_client() as client:
            entries = parse_file(path)
            return self.submit_expenses(client, entries, on_progress)
