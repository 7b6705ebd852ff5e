"""Bearer token cache."""

import logging
from pathlib import Path

logger = logging.getLogger(__name__)

DEFAULT_CACHE_PATH = Path("tmp") / "bearer_token"


class TokenCache:
    """Stores a single bearer token as plain text in a file."""

    def __init__(self, path: Path = DEFAULT_CACHE_PATH):
        self.path = Path(path)

    def read(self) -> str | None:
        """Return the cached token, or None if nothing has been cached."""
        if not self.path.exists():
            return None
        return self.path.read_text(encoding="utf-8").rstrip()

    def write(self, token: str) -> None:
        """Cache a token, replacing any previous one."""
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(token, encoding="utf-8")
        logger.debug(f"Cached bearer token in {self.path}")

    def clear(self) -> bool:
        """Remove the cached token. Returns True if one was removed."""
        if not self.path.exists():
            return False
        self.path.unlink()
        return True
