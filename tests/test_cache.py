"""Tests for the bearer token cache."""

from splitwise_import.cache import TokenCache


def test_read_empty_store(tmp_path):
    assert TokenCache(tmp_path / "tmp" / "bearer_token").read() is None


def test_write_then_read(tmp_path):
    cache = TokenCache(tmp_path / "tmp" / "bearer_token")

    cache.write("abc123")

    assert cache.read() == "abc123"


def test_write_creates_directories(tmp_path):
    path = tmp_path / "nested" / "dir" / "bearer_token"

    TokenCache(path).write("abc123")

    assert path.read_text() == "abc123"


def test_write_overwrites(tmp_path):
    cache = TokenCache(tmp_path / "bearer_token")

    cache.write("first")
    cache.write("second")

    assert cache.read() == "second"


def test_read_trims_trailing_whitespace(tmp_path):
    path = tmp_path / "bearer_token"
    path.write_text("abc123\n\n")

    assert TokenCache(path).read() == "abc123"


def test_clear(tmp_path):
    cache = TokenCache(tmp_path / "bearer_token")
    cache.write("abc123")

    assert cache.clear() is True
    assert cache.read() is None
    assert cache.clear() is False
