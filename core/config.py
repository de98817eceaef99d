"""
core/config.py -- Bandstand settings, read once from the environment.

get_settings() is the only way in: it builds a pydantic-settings Settings
from environment variables (and .env when present) on first call and caches
it with lru_cache. Nothing else in the tree reads os.environ.

Auth-relevant knobs:
  ACCESS_TOKEN_EXPIRE_MINUTES  sliding window of the token allow-list; each
                               authorized request pushes expiry this far out.
  LOGIN_IDENTIFIER_KINDS       JSON list, the order in which a login
                               identifier is tried ("email", "phone_number").
  LOGIN_RATE_LIMIT             slowapi limit string for POST /login.
  TOKEN_PURGE_INTERVAL_SECONDS / TOKEN_RETENTION_SECONDS
                               how often, and after how long, revoked and
                               expired allow-list rows are deleted.

Signing key policy:
  [M6] SECRET_KEY under 32 characters is refused; HS256 strength is the key.
  [M7] Without DEBUG, SECRET_KEY must be set. With DEBUG a throwaway key is
       generated, and every token dies with the process.

Layer rule: core/ may not import from api/ or auth/.
"""

import logging
import secrets
from functools import lru_cache

from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger("bandstand.config")

# Order matters: login resolution tries each kind in the configured order.
LOGIN_IDENTIFIER_KINDS = ("email", "phone_number")


class Settings(BaseSettings):
    """Typed view of the Bandstand environment.

    Every field has a default, so tests can build Settings() without a .env
    file; the validators below stop an unsafe production start.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ------------------------------------------------------------------
    # Runtime
    # ------------------------------------------------------------------

    debug: bool = False
    # "" means unset; validate_secret_key() replaces or rejects it.
    secret_key: str = ""
    database_url: str = "sqlite:///bandstand.db"

    # ------------------------------------------------------------------
    # Auth
    # ------------------------------------------------------------------

    access_token_expire_minutes: int = 60
    login_identifier_kinds: list[str] = list(LOGIN_IDENTIFIER_KINDS)
    login_rate_limit: str = "10/minute"

    # Revoked and expired allow-list rows are kept for
    # token_retention_seconds, then removed by the purge task.
    token_purge_interval_seconds: int = 6 * 60 * 60
    token_retention_seconds: int = 30 * 24 * 60 * 60

    # ------------------------------------------------------------------
    # HTTP
    # ------------------------------------------------------------------

    allowed_hosts: list[str] = ["localhost", "127.0.0.1", "*.localhost"]
    cors_origins: list[str] = ["http://localhost:3000", "http://0.0.0.0:3000"]

    # ------------------------------------------------------------------
    # Validation
    # ------------------------------------------------------------------

    @field_validator("login_identifier_kinds")
    @classmethod
    def validate_identifier_kinds(cls, kinds: list[str]) -> list[str]:
        if not kinds:
            raise ValueError("LOGIN_IDENTIFIER_KINDS must name at least one identifier kind.")
        unknown = set(kinds) - set(LOGIN_IDENTIFIER_KINDS)
        if unknown:
            raise ValueError(f"Unknown login identifier kinds: {sorted(unknown)!r}")
        return kinds

    @field_validator("access_token_expire_minutes", "token_purge_interval_seconds", "token_retention_seconds")
    @classmethod
    def validate_positive(cls, value: int) -> int:
        if value <= 0:
            raise ValueError("Durations must be positive.")
        return value

    @model_validator(mode="after")
    def validate_secret_key(self) -> "Settings":
        """Apply the signing key policy [M6][M7]."""
        if not self.secret_key and self.debug:
            self.secret_key = secrets.token_hex(32)
            logger.warning("DEBUG is on and SECRET_KEY is unset; issued tokens will not survive a restart.")
        elif not self.secret_key:
            raise ValueError("SECRET_KEY is required unless DEBUG=true. Set it in the environment or .env.")
        if len(self.secret_key) < 32:
            raise ValueError("SECRET_KEY must be at least 32 characters.")
        return self


@lru_cache
def get_settings() -> Settings:
    """Return the process-wide Settings, built on first use.

    Tests that change the environment must call get_settings.cache_clear().
    """
    return Settings()
