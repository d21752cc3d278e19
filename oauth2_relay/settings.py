from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Process-level settings.

    Notes:
    - Client credentials and endpoints come from ``OAuth2Config.from_environ``
      or from a provider preset file, not from here.
    - Override via ``OAUTH2_RELAY_*`` env vars.
    """

    model_config = SettingsConfigDict(env_prefix="OAUTH2_RELAY_", extra="ignore")

    log_level: str = "INFO"
    provider_config_path: str | None = None
    provider: str | None = None

    def resolved_provider_config_path(self) -> Path | None:
        if self.provider_config_path:
            return Path(self.provider_config_path)
        return None


@lru_cache
def get_settings() -> Settings:
    return Settings()
