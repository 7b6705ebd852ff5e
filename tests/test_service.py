"""Tests for ImportService."""

from decimal import Decimal
from unittest.mock import MagicMock

import pytest

from splitwise_import.cache import TokenCache
from splitwise_import.clients.splitwise import SplitwiseClient
from splitwise_import.exceptions import (
    AuthenticationFailedError,
    ExpenseCreationError,
    ParseError,
)
from splitwise_import.models import AuthFailure, AuthSuccess
from splitwise_import.service import ImportService


@pytest.fixture
def token_cache(mock_settings):
    return TokenCache(mock_settings.token_cache_path)


def make_service(settings, fake, token_cache, auth_result=None):
    """Create an ImportService talking to a fake Splitwise."""
    auth = MagicMock()
    auth.serve.return_value = auth_result
    service = ImportService(
        settings,
        token_cache=token_cache,
        client_factory=lambda app, token: SplitwiseClient(
            app, token, transport=fake.transport
        ),
        auth_factory=lambda app: auth,
    )
    return service, auth


class TestAuthenticatedClient:
    def test_uses_cached_token(self, mock_settings, fake_splitwise, token_cache):
        token_cache.write("good-token")
        service, auth = make_service(mock_settings, fake_splitwise, token_cache)

        with service.authenticated_client() as client:
            assert client.token == "good-token"

        auth.serve.assert_not_called()

    def test_runs_oauth_when_token_rejected(
        self, mock_settings, make_fake_splitwise, token_cache
    ):
        fake = make_fake_splitwise(valid_tokens=["fresh-token"])
        token_cache.write("expired-token")
        service, auth = make_service(
            mock_settings,
            fake,
            token_cache,
            auth_result=AuthSuccess(token={"access_token": "fresh-token"}),
        )

        with service.authenticated_client() as client:
            assert client.token == "fresh-token"
            assert client.is_authenticated()

        auth.serve.assert_called_once()
        assert token_cache.read() == "fresh-token"

    def test_runs_oauth_without_cached_token(
        self, mock_settings, fake_splitwise, token_cache
    ):
        service, auth = make_service(
            mock_settings,
            fake_splitwise,
            token_cache,
            auth_result=AuthSuccess(token={"access_token": "good-token"}),
        )

        with service.authenticated_client() as client:
            assert client.token == "good-token"

        assert token_cache.read() == "good-token"

    def test_aborted_oauth_raises(self, mock_settings, fake_splitwise, token_cache):
        service, _ = make_service(
            mock_settings,
            fake_splitwise,
            token_cache,
            auth_result=AuthFailure(reason="Aborted"),
        )

        with pytest.raises(AuthenticationFailedError) as exc_info:
            service.authenticated_client()

        assert exc_info.value.reason == "Aborted"
        assert token_cache.read() is None


class TestRun:
    def test_imports_rows(self, mock_settings, fake_splitwise, token_cache, write_csv):
        """Equal split of 50.00 and unsplit 20.00 produce the expected requests."""
        write_csv(
            "50.00,Dinner,2024-01-01,,equal\n"
            "20.00,Coffee,2024-01-02,,n\n"
        )
        token_cache.write("good-token")
        service, _ = make_service(mock_settings, fake_splitwise, token_cache)

        count = service.run()

        assert count == 2
        first, second = fake_splitwise.created
        assert first["description"] == "Dinner"
        assert Decimal(first["users__0__paid_share"]) == Decimal("50.00")
        assert Decimal(first["users__0__owed_share"]) == Decimal("25.00")
        assert Decimal(first["users__1__owed_share"]) == Decimal("25.00")
        assert first["users__0__user_id"] == "111"
        assert first["users__1__user_id"] == "222"
        assert first["group_id"] == "999"
        assert first["currency_code"] == "CAD"
        assert first["creation_method"] == "equal"
        assert second["description"] == "Coffee"
        assert Decimal(second["users__0__owed_share"]) == 0
        assert Decimal(second["users__1__owed_share"]) == Decimal("20.00")
        assert Decimal(second["users__1__paid_share"]) == 0
        assert second["date"] == "2024-01-02"

    def test_stops_at_rejected_row(
        self, mock_settings, make_fake_splitwise, token_cache, write_csv
    ):
        fake = make_fake_splitwise(fail_on_call=2)
        write_csv(
            "10.00,Taxi,2024-01-01,,y\n"
            "15.00,Museum,2024-01-02,,y\n"
            "30.00,Hotel,2024-01-03,,y\n"
        )
        token_cache.write("good-token")
        service, _ = make_service(mock_settings, fake, token_cache)

        with pytest.raises(ExpenseCreationError) as exc_info:
            service.run()

        error = exc_info.value
        assert error.row_number == 2
        assert error.entry.description == "Museum"
        assert error.status_code == 400
        assert "Invalid cost" in error.response_body
        assert "Museum" in str(error)
        assert error.details()["amount"] == "15.00"
        assert [form["description"] for form in fake.created] == ["Taxi", "Museum"]

    def test_reports_progress_before_each_request(
        self, mock_settings, fake_splitwise, token_cache, write_csv
    ):
        write_csv("1.00,A,2024-01-01,,y\n2.00,B,2024-01-02,,n\n")
        token_cache.write("good-token")
        service, _ = make_service(mock_settings, fake_splitwise, token_cache)
        progress = []

        service.run(
            on_progress=lambda n, entry, request: progress.append(
                (n, entry.description, len(fake_splitwise.created))
            )
        )

        assert progress == [(1, "A", 0), (2, "B", 1)]

    def test_aborted_auth_creates_nothing(
        self, mock_settings, fake_splitwise, token_cache, write_csv
    ):
        write_csv("1.00,A,2024-01-01,,y\n")
        service, _ = make_service(
            mock_settings,
            fake_splitwise,
            token_cache,
            auth_result=AuthFailure(reason="Aborted"),
        )

        with pytest.raises(AuthenticationFailedError):
            service.run()

        assert fake_splitwise.created == []

    def test_parse_error_creates_nothing(
        self, mock_settings, fake_splitwise, token_cache, write_csv
    ):
        write_csv("1.00,A,2024-01-01,,y\n", header="amount,description\n")
        token_cache.write("good-token")
        service, _ = make_service(mock_settings, fake_splitwise, token_cache)

        with pytest.raises(ParseError):
            service.run()

        assert fake_splitwise.created == []

    def test_dry_run_makes_no_requests(
        self, mock_settings, fake_splitwise, token_cache, write_csv
    ):
        write_csv("1.00,A,2024-01-01,,y\n2.00,B,2024-01-02,,n\n")
        service, auth = make_service(mock_settings, fake_splitwise, token_cache)
        requests = []

        count = service.run(
            dry_run=True, on_progress=lambda n, entry, request: requests.append(request)
        )

        assert count == 2
        assert [r.description for r in requests] == ["A", "B"]
        assert fake_splitwise.requests == []
        auth.serve.assert_not_called()

    def test_explicit_path(self, mock_settings, fake_splitwise, token_cache, write_csv):
        path = write_csv("3.00,Other,2024-01-01,,y\n", name="other.csv")
        token_cache.write("good-token")
        service, _ = make_service(mock_settings, fake_splitwise, token_cache)

        assert service.run(path=path) == 1
        assert fake_splitwise.created[0]["description"] == "Other"
