"""
Application configuration.

Reads every environment-driven setting once and exposes it through
`get_settings()`, which handlers receive via `Depends(get_settings)`.
"""
import os
import re
import secrets
from functools import lru_cache
from typing import List, Optional

DURATION_PATTERN = re.compile(r"^(\d+)([smhd]?)$")
DURATION_UNITS = {"": 1, "s": 1, "m": 60, "h": 3600, "d": 86400}


class ConfigurationError(RuntimeError):
    """Raised when the environment cannot produce a usable configuration."""


def parse_duration(value: str) -> int:
    """
    Convert a duration string such as "15m" or "7d" into seconds.

    Args:
        value: Duration string; a bare integer is read as seconds

    Returns:
        int: Number of seconds

    Raises:
        ConfigurationError: If the value is not a recognised duration
    """
    match = DURATION_PATTERN.match(value.strip().lower())
    if not match:
        raise ConfigurationError(f"Invalid duration: {value!r}")
    amount, unit = match.groups()
    return int(amount) * DURATION_UNITS[unit]


class Settings:
    """Runtime settings gathered from the environment."""

    def __init__(
        self,
        jwt_refresh_secret: str,
        jwt_secret: Optional[str] = None,
        jwt_expiration: str = "15m",
        jwt_refresh_expiration: str = "7d",
        database_url: str = "sqlite:///./agency.db",
        sql_echo: bool = False,
        bcrypt_rounds: int = 12,
        default_tenant_id: Optional[str] = None,
        n8n_webhook_url: Optional[str] = None,
        invoice_ninja_url: Optional[str] = None,
        invoice_ninja_api_key: Optional[str] = None,
        integration_timeout_seconds: float = 10.0,
        webhook_max_attempts: int = 1,
        allowed_origins: Optional[List[str]] = None,
    ):
        if not jwt_refresh_secret:
            raise ConfigurationError("JWT_REFRESH_SECRET environment variable is required")
        if webhook_max_attempts < 1:
            raise ConfigurationError("WEBHOOK_MAX_ATTEMPTS must be at least 1")

        self.jwt_secret = jwt_secret or secrets.token_urlsafe(32)
        self.jwt_refresh_secret = jwt_refresh_secret
        self.access_token_expire_seconds = parse_duration(jwt_expiration)
        self.refresh_token_expire_seconds = parse_duration(jwt_refresh_expiration)
        self.database_url = database_url
        self.sql_echo = sql_echo
        self.bcrypt_rounds = bcrypt_rounds
        self.default_tenant_id = default_tenant_id or None
        self.n8n_webhook_url = (n8n_webhook_url or "").rstrip("/")
        self.invoice_ninja_url = (invoice_ninja_url or "").rstrip("/")
        self.invoice_ninja_api_key = invoice_ninja_api_key or ""
        self.integration_timeout_seconds = integration_timeout_seconds
        self.webhook_max_attempts = webhook_max_attempts
        self.allowed_origins = allowed_origins or ["*"]

    @classmethod
    def from_env(cls) -> "Settings":
        """Build settings from environment variables."""
        return cls(
            jwt_refresh_secret=os.getenv("JWT_REFRESH_SECRET", ""),
            jwt_secret=os.getenv("JWT_SECRET"),
            jwt_expiration=os.getenv("JWT_EXPIRATION", "15m"),
            jwt_refresh_expiration=os.getenv("JWT_REFRESH_EXPIRATION", "7d"),
            database_url=os.getenv("DATABASE_URL", "sqlite:///./agency.db"),
            sql_echo=os.getenv("SQL_ECHO", "false").lower() == "true",
            bcrypt_rounds=int(os.getenv("BCRYPT_ROUNDS", "12")),
            default_tenant_id=os.getenv("DEFAULT_TENANT_ID"),
            n8n_webhook_url=os.getenv("N8N_WEBHOOK_URL"),
            invoice_ninja_url=os.getenv("INVOICE_NINJA_URL"),
            invoice_ninja_api_key=os.getenv("INVOICE_NINJA_API_KEY"),
            integration_timeout_seconds=float(os.getenv("INTEGRATION_TIMEOUT_SECONDS", "10")),
            webhook_max_attempts=int(os.getenv("WEBHOOK_MAX_ATTEMPTS", "1")),
            allowed_origins=os.getenv("ALLOWED_ORIGINS", "*").split(","),
        )


# PUBLIC_INTERFACE
@lru_cache()
def get_settings() -> Settings:
    """
    Get the process-wide settings.

    Returns:
        Settings: Settings built from the environment on first call
    """
    return Settings.from_env()
