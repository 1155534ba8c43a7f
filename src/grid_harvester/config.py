"""Application settings loaded from environment variables and ``.env``.

Every variable is prefixed with ``HARVEST_``::

    HARVEST_CLIENT_ID=...
    HARVEST_CLIENT_SECRET=...
    HARVEST_TOKEN_URL=https://auth.example.com/oauth2/token
    HARVEST_CONCURRENCY=4

Credentials are never read from source files or job definitions.
"""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from pydantic import Field, SecretStr, ValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict

from grid_harvester.errors import AuthError
from grid_harvester.schemas import Credentials


class Settings(BaseSettings):
    """Process-wide configuration, loaded once at startup."""

    model_config = SettingsConfigDict(
        env_prefix="HARVEST_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    app_name: str = "grid-harvester"
    app_env: str = "development"
    debug: bool = False
    log_level: str = "INFO"

    # OAuth2 client-credentials
    client_id: str | None = None
    client_secret: SecretStr | None = None
    token_url: str | None = None
    scope: str | None = None
    token_refresh_margin: float = Field(default=60.0, ge=0, description="Seconds before expiry")

    # Harvest limits
    concurrency: int = Field(default=1, ge=1)
    timeout: float = Field(default=30.0, gt=0, description="Per-request timeout in seconds")

    data_dir: Path = Path("data")

    @property
    def has_credentials(self) -> bool:
        return bool(self.client_id and self.client_secret and self.client_secret.get_secret_value())

    def credentials(self) -> Credentials:
        """Build validated ``Credentials``.

        Raises:
            AuthError: Client id or secret is missing or blank.
        """
        if not self.has_credentials:
            msg = "HARVEST_CLIENT_ID and HARVEST_CLIENT_SECRET must be set"
            raise AuthError(msg)
        try:
            return Credentials(client_id=self.client_id, client_secret=self.client_secret)
        except ValidationError as exc:
            raise AuthError(f"Invalid client credentials: {exc.errors()[0]['msg']}") from exc


@lru_cache
def get_settings() -> Settings:
    """Return the cached settings instance."""
    return Settings()
