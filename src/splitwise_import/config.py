"""Configuration management for splitwise-import."""

from pathlib import Path

from pydantic import ValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict

from .cache import DEFAULT_CACHE_PATH
from .exceptions import ConfigurationError
from .models import SplitwiseApp


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Splitwise app credentials (from the developer console)
    sw_key: str
    sw_secret: str

    # Import settings
    filename: Path
    my_user_id: str
    group_id: str
    friend_user_id: str
    currency_code: str = "CAD"

    # Bearer token cache, relative to the working directory
    token_cache_path: Path = DEFAULT_CACHE_PATH

    # Loopback port for the OAuth callback
    callback_port: int = 15131

    @property
    def app(self) -> SplitwiseApp:
        """Application credentials for the Splitwise client and OAuth flow."""
        return SplitwiseApp(key=self.sw_key, secret=self.sw_secret)


def load_settings(**overrides) -> Settings:
    """Load application settings from environment variables."""
    try:
        return Settings(**overrides)
    except ValidationError as e:
        missing = [
            str(err["loc"][0]).upper() for err in e.errors() if err["type"] == "missing"
        ]
        if missing:
            raise ConfigurationError(
                f"Missing required configuration: {', '.join(missing)}. "
                f"Set them in the environment or in a .env file."
            ) from e
        raise ConfigurationError(f"Invalid configuration.\nError: {e}") from e
