"""Configuration via Pydantic Settings, loaded from .env file."""

import logging
import os
from functools import cached_property
from pathlib import Path

import httpx
from pydantic_settings import BaseSettings

_cfg_logger = logging.getLogger("config")

# Resolve .env path relative to the project root (parent of streamrelay/) so
# it works regardless of the working directory the process is launched from.
_PROJECT_ROOT = Path(__file__).resolve().parent.parent

_DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/91.0.4472.124 Safari/537.36"
)


def _resolve_env_file() -> Path:
    """Return an absolute path to the .env file.

    If ``STREAMRELAY_ENV_FILE`` is set, use it (resolved relative to the
    project root when not absolute).  Otherwise default to
    ``<project_root>/.env``.
    """
    raw = os.environ.get("STREAMRELAY_ENV_FILE", "")
    if raw:
        p = Path(raw)
        return p if p.is_absolute() else _PROJECT_ROOT / p
    return _PROJECT_ROOT / ".env"


def _timeout_or_none(value: float) -> float | None:
    return value if value > 0 else None


class Settings(BaseSettings):
    # Server
    host: str = "0.0.0.0"
    port: int = 3000
    log_level: str = "INFO"
    cors_allowed_origins: str = "*"
    # Built front-end assets; mounted at / when the directory exists.
    static_dir: str = "./dist"

    # -- Upstream requests ----------------------------------------------------

    upstream_user_agent: str = _DEFAULT_USER_AGENT
    upstream_accept_language: str = "en-US,en;q=0.9"
    upstream_max_redirects: int = 10

    # Values <= 0 disable the corresponding timeout.
    upstream_connect_timeout_s: float = 10.0
    upstream_read_timeout_s: float = 30.0
    upstream_write_timeout_s: float = 10.0
    upstream_pool_timeout_s: float = 10.0

    # -- Relay ----------------------------------------------------------------

    stream_chunk_bytes: int = 65536
    segment_cache_max_age_s: int = 3600

    model_config = {
        "env_file": str(_resolve_env_file()),
        "env_file_encoding": "utf-8",
        "extra": "ignore",
    }

    @cached_property
    def cors_origins(self) -> list[str]:
        origins = [origin.strip() for origin in self.cors_allowed_origins.split(",") if origin.strip()]
        return origins or ["*"]

    @property
    def upstream_timeout(self) -> httpx.Timeout:
        return httpx.Timeout(
            connect=_timeout_or_none(self.upstream_connect_timeout_s),
            read=_timeout_or_none(self.upstream_read_timeout_s),
            write=_timeout_or_none(self.upstream_write_timeout_s),
            pool=_timeout_or_none(self.upstream_pool_timeout_s),
        )

    def warn_unbounded_timeouts(self):
        """Log a warning for every disabled upstream timeout. Called once at startup."""
        for name in (
            "upstream_connect_timeout_s",
            "upstream_read_timeout_s",
            "upstream_write_timeout_s",
            "upstream_pool_timeout_s",
        ):
            if getattr(self, name) <= 0:
                _cfg_logger.warning(
                    "%s is disabled (%s). A stalled upstream can hold a "
                    "connection open indefinitely.",
                    name.upper(),
                    getattr(self, name),
                )


settings = Settings()
