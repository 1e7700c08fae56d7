"""Settings for the energy estimator, read from the environment and .env files."""

import os
from pathlib import Path
from typing import List
from urllib.parse import urlparse

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

LOCAL_HOSTS = ("localhost", "127.0.0.1")


def get_env_file() -> str:
    """Pick `.env.<APP_ENV>` next to the app when it exists, else `.env`."""
    backend_dir = Path(__file__).resolve().parents[2]
    app_env = os.getenv("APP_ENV", "development")

    scoped = backend_dir / f".env.{app_env}"
    if app_env in ("test", "production") and scoped.exists():
        return str(scoped)
    return str(backend_dir / ".env")


class Settings(BaseSettings):
    """Process-wide settings. Field names match environment variable names."""

    model_config = SettingsConfigDict(
        env_file=get_env_file(),
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    # App
    APP_NAME: str = "Cloud Energy Estimator"
    APP_ENV: str = "development"
    DEBUG: bool = True
    API_V1_PREFIX: str = "/api/v1"

    # Database (report history)
    DATABASE_URL: str = "sqlite+aiosqlite:///./energy_reports.db"

    # CORS
    ALLOWED_ORIGINS: List[str] = [
        "http://localhost:3000",
        "http://127.0.0.1:3000",
    ]
    CORS_ALLOW_CREDENTIALS: bool = True
    CORS_MAX_AGE: int = 600  # Preflight cache duration in seconds

    # Azure resource manager (empty subscription = offline mode with mock discovery)
    AZURE_SUBSCRIPTION_ID: str = ""
    AZURE_TENANT_ID: str = ""
    AZURE_CLIENT_ID: str = ""
    AZURE_CLIENT_SECRET: str = ""
    AZURE_AUTH_TYPE: str = "DefaultAzureCredential"  # or "ServicePrincipal"
    AZURE_LOOKUP_TIMEOUT_SECONDS: float = 10.0

    # Energy model
    CARBON_REGION: str = "West Europe"  # Grid intensity applied to every report
    DEFAULT_ANALYSIS_DAYS: int = 30  # Window used when start/end are missing
    SUBSCRIPTION_ANALYSIS_UTILIZATION: float = 45.0  # Fixed % for subscription-wide mode

    # Sentry (disabled while SENTRY_DSN is empty)
    SENTRY_DSN: str = ""
    SENTRY_ENVIRONMENT: str = "development"
    SENTRY_TRACES_SAMPLE_RATE: float = 0.1

    # slowapi limits, keyed per client address
    RATE_LIMIT_ENABLED: bool = True
    RATE_LIMIT_STORAGE_URI: str = "memory://"
    RATE_LIMIT_API_DEFAULT: str = "100/minute"
    RATE_LIMIT_ANALYSIS: str = "30/minute"  # Platform analysis (fans out to Azure)

    @property
    def azure_enabled(self) -> bool:
        """Whether a subscription is configured for live resource-manager calls."""
        return bool(self.AZURE_SUBSCRIPTION_ID)

    @field_validator("ALLOWED_ORIGINS", mode="before")
    @classmethod
    def parse_allowed_origins(cls, v: str | List[str]) -> List[str]:
        """Parse allowed origins from string or list."""
        if isinstance(v, str):
            return [origin.strip() for origin in v.split(",")]
        return v

    @field_validator("ALLOWED_ORIGINS", mode="after")
    @classmethod
    def validate_cors_origins(cls, origins: List[str], info) -> List[str]:
        """
        Reject wildcard, malformed and (in production) plain-HTTP origins.

        Localhost and 127.0.0.1 may use HTTP in every environment.
        """
        if not origins:
            raise ValueError("ALLOWED_ORIGINS cannot be empty. At least one origin must be specified.")

        is_production = info.data.get("APP_ENV", "development") == "production"
        return [_check_origin(origin, is_production) for origin in origins]

    @field_validator("CARBON_REGION")
    @classmethod
    def validate_carbon_region(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("CARBON_REGION cannot be empty")
        return v.strip()


def _check_origin(origin: str, is_production: bool) -> str:
    origin = origin.strip()
    if not origin:
        raise ValueError("CORS origin cannot be empty or whitespace-only")

    if "*" in origin:
        raise ValueError(f"CORS origin '{origin}' contains wildcard '*'. Specify exact domains instead.")

    parsed = urlparse(origin)
    if not parsed.scheme:
        raise ValueError(f"CORS origin '{origin}' must include scheme (http:// or https://).")
    if not parsed.netloc:
        raise ValueError(f"CORS origin '{origin}' must include hostname.")

    is_local = parsed.hostname in LOCAL_HOSTS
    if is_production and parsed.scheme != "https" and not is_local:
        raise ValueError(
            f"CORS origin '{origin}' must use HTTPS in production. "
            f"Change to: https://{parsed.netloc}"
        )
    return origin


settings = Settings()
