"""Shared fixtures."""

import json
from pathlib import Path

import httpx
import pytest

from splitwise_import.config import Settings
from splitwise_import.models import SplitwiseApp

HEADER = "amount,description,date,comment,split\n"


@pytest.fixture
def app_credentials():
    """Create Splitwise app credentials."""
    return SplitwiseApp(key="test_key", secret="test_secret")


@pytest.fixture
def write_csv(tmp_path):
    """Write a CSV file into tmp_path and return its path."""

    def _write(body: str, header: str = HEADER, name: str = "expenses.csv") -> Path:
        path = tmp_path / name
        path.write_text(header + body, encoding="utf-8")
        return path

    return _write


@pytest.fixture
def mock_settings(tmp_path):
    """Create settings without touching the environment."""
    return Settings(
        _env_file=None,
        sw_key="test_key",
        sw_secret="test_secret",
        filename=tmp_path / "expenses.csv",
        my_user_id="111",
        group_id="999",
        friend_user_id="222",
        token_cache_path=tmp_path / "tmp" / "bearer_token",
    )


class FakeSplitwise:
    """Records requests and answers like the Splitwise API."""

    def __init__(self, valid_tokens=("good-token",), fail_on_call=None, fail_status=400):
        self.valid_tokens = set(valid_tokens)
        self.fail_on_call = fail_on_call
        self.fail_status = fail_status
        self.requests: list[httpx.Request] = []
        self.created: list[dict[str, str]] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        token = request.headers.get("Authorization", "").removeprefix("Bearer ")

        if token not in self.valid_tokens:
            return httpx.Response(401, json={"error": "Invalid API Request: you are not logged in"})

        if request.url.path.endswith("/get_current_user"):
            return httpx.Response(
                200, json={"user": {"id": 111, "first_name": "Ada", "email": "ada@example.com"}}
            )

        if request.url.path.endswith("/create_expense"):
            form = dict(httpx.QueryParams(request.content.decode()))
            self.created.append(form)
            if self.fail_on_call == len(self.created):
                return httpx.Response(
                    self.fail_status, json={"errors": {"base": ["Invalid cost"]}}
                )
            return httpx.Response(200, json={"expenses": [{"id": len(self.created)}], "errors": {}})

        if request.url.path.endswith("/get_expenses"):
            return httpx.Response(200, content=json.dumps({"expenses": []}))

        return httpx.Response(404, json={"error": "not found"})

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self)


@pytest.fixture
def fake_splitwise():
    return FakeSplitwise()


@pytest.fixture
def make_fake_splitwise():
    """Build a FakeSplitwise with custom behaviour."""
    return FakeSplitwise
