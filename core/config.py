"""
core/config.py -- Centralized application configuration via pydantic-settings.

All environment variable reads for SentinelOps happen here. No module should
call os.getenv() or os.environ.get() directly -- import get_settings() instead.

Design patterns used:
  Singleton via lru_cache: get_settings() instantiates Settings once at first
      call and returns the cached instance on every subsequent call. This is
      the official FastAPI dependency injection pattern for config.

  BaseSettings (pydantic-settings): Reads values from environment variables
      and an optional .env file automatically. Field names map to env var names
      (e.g. secret_key -> SECRET_KEY). Type coercion and validation are built in.

  @model_validator(mode="after"): Runs cross-field validation after all fields
      are resolved from environment. Dev mode (DEBUG=true) generates a signing
      key and a bootstrap admin password with a warning; production mode
      refuses to start without a SECRET_KEY.

Engines never call get_settings() themselves -- they take a Settings instance
in their constructor so tests can build one with explicit values.

Layer rule: core/ is the kernel. This module may not import from api/,
auth/, detection/, compliance/ or audit/.
"""

import logging
import secrets
from functools import lru_cache

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger("sentinelops.config")


class Settings(BaseSettings):
    """Application settings loaded from environment variables and .env file.

    All fields have defaults so Settings() can be instantiated in test
    environments without a real .env file. The model_validator enforces
    production-safety rules at startup.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        # Lets tests pass confidence_threshold=... despite the env alias below.
        populate_by_name=True,
    )

    # ------------------------------------------------------------------
    # Core
    # ------------------------------------------------------------------

    debug: bool = False
    # Empty string is the sentinel for "not configured". The model_validator
    # below either generates a dev key or raises, so callers never see "".
    secret_key: str = ""
    log_level: str = "INFO"
    # Comma-separated. Tests add "testserver" (the TestClient host).
    allowed_hosts: str = "localhost,127.0.0.1,*.localhost"
    cors_origins: str = "http://localhost,http://localhost:3000,http://127.0.0.1"

    # ------------------------------------------------------------------
    # Auth
    # ------------------------------------------------------------------

    secure_cookies: bool = False
    token_expire_seconds: int = 3600
    admin_username: str = "admin"
    # Empty means "no bootstrap admin" in production; DEBUG generates one.
    admin_password: str = ""
    login_rate_limit: str = "10/minute"

    # ------------------------------------------------------------------
    # Threat detection
    # ------------------------------------------------------------------

    # Kept under its historical env name so existing deployments keep working.
    confidence_threshold: float = Field(default=0.85, validation_alias="ML_CONFIDENCE_THRESHOLD")
    enable_auto_response: bool = False
    alert_webhook_url: str = ""
    max_buffer_size: int = 10000

    analysis_interval_seconds: float = 5.0
    baseline_prune_interval_seconds: float = 60 * 60
    threat_cleanup_interval_seconds: float = 15 * 60

    # ------------------------------------------------------------------
    # Compliance
    # ------------------------------------------------------------------

    auto_compliance_scan: bool = False
    # Comma-separated in the environment: COMPLIANCE_STANDARDS=PCI_DSS,GDPR,SOC2
    compliance_standards: str = "PCI_DSS,GDPR,SOC2"
    # 0 disables the per-check timeout.
    compliance_check_timeout_seconds: float = 0.0

    compliance_scan_interval_seconds: float = 6 * 60 * 60
    audit_cleanup_interval_seconds: float = 24 * 60 * 60

    # ------------------------------------------------------------------
    # Validators
    # ------------------------------------------------------------------

    @field_validator("confidence_threshold")
    @classmethod
    def validate_threshold(cls, value: float) -> float:
        if not 0.0 <= value <= 1.0:
            raise ValueError("ML_CONFIDENCE_THRESHOLD must be between 0 and 1.")
        return value

    @field_validator("max_buffer_size")
    @classmethod
    def validate_buffer_size(cls, value: int) -> int:
        if value < 10:
            raise ValueError("MAX_BUFFER_SIZE must be at least 10.")
        return value

    @model_validator(mode="after")
    def validate_secret_key(self) -> "Settings":
        """Enforce the SECRET_KEY policy.

        Dev mode (DEBUG=true): auto-generate a random key with a warning.
            Tokens will not survive restart -- acceptable for local dev.

        Production mode (DEBUG=false or not set): refuse to start if
            SECRET_KEY is missing.

        Both modes: reject keys shorter than 32 characters. Short keys have
            insufficient entropy for HMAC-SHA256 JWT signing.
        """
        if not self.secret_key:
            if self.debug:
                self.secret_key = secrets.token_hex(32)
                logger.warning("Using auto-generated SECRET_KEY. Tokens will not persist across restarts.")
            else:
                raise ValueError(
                    "SECRET_KEY is required in production mode. "
                    "Set SECRET_KEY in your environment or .env file. "
                    "To run in development mode, set DEBUG=true."
                )
        if len(self.secret_key) < 32:
            raise ValueError("SECRET_KEY must be at least 32 characters.")
        if not self.admin_password and self.debug:
            self.admin_password = secrets.token_urlsafe(12)
            logger.warning(
                "ADMIN_PASSWORD not set; generated a one-off password for '%s': %s",
                self.admin_username,
                self.admin_password,
            )
        return self

    @property
    def compliance_standard_ids(self) -> list[str]:
        """COMPLIANCE_STANDARDS split into a clean, ordered list of ids."""
        return _split_csv(self.compliance_standards)

    @property
    def allowed_host_list(self) -> list[str]:
        return _split_csv(self.allowed_hosts)

    @property
    def cors_origin_list(self) -> list[str]:
        return _split_csv(self.cors_origins)


def _split_csv(value: str) -> list[str]:
    return [part.strip() for part in value.split(",") if part.strip()]


@lru_cache
def get_settings() -> Settings:
    """Return the application Settings singleton.

    In tests: call get_settings.cache_clear() between test cases if you need
    to inject different environment variables.
    """
    return Settings()
