from __future__ import annotations

import logging
from dataclasses import dataclass
from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


@dataclass(frozen=True)
class SessionContext:
    """Credentials a gateway is built with, instead of reading them from the process at call time."""

    scope: str = "admin"
    token: str | None = None

    @property
    def storage_key(self) -> str:
        return f"{self.scope}_token"

    def auth_headers(self) -> dict[str, str]:
        if not self.token:
            return {}
        return {"Authorization": f"Bearer {self.token}"}


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        env_ignore_empty=True,
    )

    api_base_url: str = Field(default="http://127.0.0.1:3000/api", alias="RANKR_API_BASE_URL")
    api_token: str | None = Field(default=None, alias="RANKR_API_TOKEN")
    session_scope: str = Field(default="admin", alias="RANKR_SESSION_SCOPE")
    request_timeout_seconds: float = Field(default=30.0, gt=0.0, alias="RANKR_REQUEST_TIMEOUT_SECONDS")
    default_page_size: int = Field(default=10, ge=1, alias="RANKR_DEFAULT_PAGE_SIZE")
    log_level: str = Field(default="INFO", alias="RANKR_LOG_LEVEL")

    sandbox_host: str = Field(default="127.0.0.1", alias="RANKR_SANDBOX_HOST")
    sandbox_port: int = Field(default=3000, alias="RANKR_SANDBOX_PORT")
    sandbox_seed_count: int = Field(default=25, ge=0, alias="RANKR_SANDBOX_SEED_COUNT")

    def session_context(self, token: str | None = None) -> SessionContext:
        return SessionContext(scope=self.session_scope, token=token or self.api_token)


def configure_logging(level: str = "INFO") -> None:
    root = logging.getLogger()
    if root.handlers:
        root.setLevel(level.upper())
        return
    logging.basicConfig(level=level.upper(), format=LOG_FORMAT)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
