"""
core/config.py -- Keeper settings, read once from the environment and .env.

get_settings() is the only way in: no other module reads os.environ. It is
lru_cached, so every caller shares one validated Settings instance; tests
build their own Settings(...) or call get_settings.cache_clear().

Field names map to upper-case env vars (token_expire_seconds ->
TOKEN_EXPIRE_SECONDS). Out-of-range values fail at construction, which
means at process start, never halfway through a request.

Signing key rules (validate_secret_key):
  [M6] Shorter than 32 characters: rejected in every mode. HMAC tokens are
       only as strong as the key.
  [M7] Missing with DEBUG=false: startup fails. Missing with DEBUG=true: a
       random key is generated and a warning logged; tokens then die with
       the process.

Layer rule: core/ is the kernel. This module may not import from api/,
auth/, or items/.
"""

import logging
import secrets
from functools import lru_cache
from pathlib import Path

from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger("keeper.config")

_DEFAULT_DB_URL = f"sqlite:///{Path(__file__).resolve().parent.parent / 'keeper.db'}"

# HMAC family only. The verifier shares the issuer's secret; asymmetric
# algorithms would need a key pair, which this service does not manage.
SUPPORTED_JWT_ALGORITHMS = ("HS256", "HS384", "HS512")


class Settings(BaseSettings):
    """Every tunable in Keeper. All fields default, so Settings() works without a .env."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ------------------------------------------------------------------
    # Core
    # ------------------------------------------------------------------

    debug: bool = False
    log_level: str = "INFO"
    # Empty string is the sentinel for "not configured". The model_validator
    # below either generates a dev key or raises, so callers never see "".
    secret_key: str = ""
    database_url: str = _DEFAULT_DB_URL

    # ------------------------------------------------------------------
    # Tokens and password hashing
    # ------------------------------------------------------------------

    jwt_algorithm: str = "HS256"
    # Default 1 hour.
    token_expire_seconds: int = 3600
    bcrypt_rounds: int = 12

    # ------------------------------------------------------------------
    # Credential policy
    # ------------------------------------------------------------------

    display_name_min_length: int = 2
    display_name_max_length: int = 100
    password_min_length: int = 6
    # bcrypt only looks at the first 72 bytes.
    password_max_length: int = 72

    # ------------------------------------------------------------------
    # HTTP surface
    # ------------------------------------------------------------------

    allowed_hosts: list[str] = ["localhost", "127.0.0.1", "*.localhost"]
    cors_origins: list[str] = ["http://localhost", "http://localhost:3000", "http://127.0.0.1"]

    # ------------------------------------------------------------------
    # Rate limiting
    # ------------------------------------------------------------------

    rate_limit_enabled: bool = True
    login_rate_limit: str = "10/minute"
    register_rate_limit: str = "5/minute"

    # ------------------------------------------------------------------
    # Validators
    # ------------------------------------------------------------------

    @field_validator("jwt_algorithm")
    @classmethod
    def validate_jwt_algorithm(cls, v: str) -> str:
        v = v.strip().upper()
        if v not in SUPPORTED_JWT_ALGORITHMS:
            raise ValueError(f"JWT_ALGORITHM must be one of: {', '.join(SUPPORTED_JWT_ALGORITHMS)}")
        return v

    @field_validator("token_expire_seconds")
    @classmethod
    def validate_token_expire_seconds(cls, v: int) -> int:
        if v < 60 or v > 604800:
            raise ValueError("TOKEN_EXPIRE_SECONDS must be between 60 and 604800 (1 min to 7 days)")
        return v

    @field_validator("bcrypt_rounds")
    @classmethod
    def validate_bcrypt_rounds(cls, v: int) -> int:
        if v < 4 or v > 31:
            raise ValueError("BCRYPT_ROUNDS must be between 4 and 31")
        return v

    @field_validator("database_url")
    @classmethod
    def validate_database_url(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("DATABASE_URL must be set and non-empty")
        return v.strip()

    @model_validator(mode="after")
    def validate_credential_policy(self) -> "Settings":
        """Length bounds must describe a non-empty range."""
        if self.display_name_min_length < 1 or self.display_name_min_length > self.display_name_max_length:
            raise ValueError("DISPLAY_NAME_MIN_LENGTH must be >= 1 and <= DISPLAY_NAME_MAX_LENGTH")
        if self.password_min_length < 1 or self.password_min_length > self.password_max_length:
            raise ValueError("PASSWORD_MIN_LENGTH must be >= 1 and <= PASSWORD_MAX_LENGTH")
        return self

    @model_validator(mode="after")
    def validate_secret_key(self) -> "Settings":
        """Enforce SECRET_KEY policy [M7].

        Dev mode (DEBUG=true): auto-generate a random key with a warning.
            Tokens will not survive restart -- acceptable for local dev.

        Production mode (DEBUG=false or not set): refuse to start if
            SECRET_KEY is missing.

        Both modes: reject keys shorter than 32 characters [M6].
        """
        if not self.secret_key:
            if self.debug:
                self.secret_key = secrets.token_hex(32)
                logger.warning("WARNING: Using auto-generated SECRET_KEY. Tokens will not survive a restart.")
            else:
                raise ValueError(
                    "SECRET_KEY is required in production mode. "
                    "Set SECRET_KEY in your environment or .env file. "
                    "To run in development mode, set DEBUG=true."
                )
        if len(self.secret_key) < 32:
            raise ValueError("SECRET_KEY must be at least 32 characters.")
        return self


@lru_cache
def get_settings() -> Settings:
    """Return the process-wide Settings, building it on first call."""
    return Settings()
