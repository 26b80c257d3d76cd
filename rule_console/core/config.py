"""
Application configuration settings.

Central configuration module using Pydantic BaseSettings with environment variable support.
Loads from .env file and environment variables.
"""
import json
from functools import lru_cache
from pathlib import Path
from typing import List, Optional, Union

from dotenv import load_dotenv
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# Load .env file if it exists (python-dotenv)
env_path = Path(".env")
if env_path.exists():
    load_dotenv(dotenv_path=env_path)


class Settings(BaseSettings):
    """Application settings with environment variable support."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    # App settings
    APP_NAME: str = "Rule Console"
    APP_ENV: str = Field(default="local")
    DEBUG: bool = Field(default=False)

    # Upstream rule-collection service
    RULE_SERVICE_URL: str = Field(
        default="http://localhost:8081/api",
        description="Base URL of the rule-collection service (collections are resolved relative to it)",
    )
    RULE_SERVICE_API_KEY: Optional[str] = Field(
        default=None,
        description="Sent as X-API-Key on every upstream request when set",
    )
    REQUEST_TIMEOUT_SECONDS: float = Field(default=10.0, gt=0)

    # List synchronization
    SEARCH_DEBOUNCE_MS: int = Field(
        default=500,
        ge=300,
        le=500,
        description="Quiet period before a typed search term is applied",
    )
    DEFAULT_PAGE_SIZE: int = Field(default=10, ge=1, le=500)
    INFINITE_PAGE_SIZE: int = Field(default=50, ge=1, le=500)

    # Conflict resolution
    RESOLVE_LOOKUP_LIMIT: int = Field(
        default=1000,
        ge=1,
        le=1000,
        description="Rows listed per address when resolving conflicting addresses to identifiers",
    )

    # Screen sessions held by the API
    MAX_SCREENS: int = Field(default=256, ge=1)

    # CORS settings
    CORS_ORIGINS: Union[str, List[str]] = Field(
        default='["http://localhost:3000", "http://localhost:8000"]',
    )

    @field_validator("CORS_ORIGINS")
    @classmethod
    def parse_cors_origins(cls, v):
        """Parse CORS_ORIGINS from string or list."""
        if isinstance(v, str):
            try:
                return json.loads(v)
            except json.JSONDecodeError:
                # If not JSON, treat as comma-separated
                return [origin.strip() for origin in v.split(",") if origin.strip()]
        return v

    @field_validator("RULE_SERVICE_URL")
    @classmethod
    def normalize_service_url(cls, v: str) -> str:
        """
        Normalize the upstream URL.

        - Full URL (http:// or https://) -> use as-is without trailing slash
        - Bare hostname -> prepend https://
        """
        raw = (v or "").strip().rstrip("/")
        if not raw:
            raise ValueError("RULE_SERVICE_URL must not be empty")
        if raw.startswith("http://") or raw.startswith("https://"):
            return raw
        return f"https://{raw}"

    # Logging
    LOG_LEVEL: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)",
    )
    LOG_DIR: str = Field(default="logs")
    LOG_TO_FILE: bool = Field(default=True)

    @property
    def search_debounce_seconds(self) -> float:
        return self.SEARCH_DEBOUNCE_MS / 1000.0

    def upstream_headers(self) -> dict:
        """Headers attached to every upstream request."""
        headers = {"Accept": "application/json"}
        if self.RULE_SERVICE_API_KEY and self.RULE_SERVICE_API_KEY.strip():
            headers["X-API-Key"] = self.RULE_SERVICE_API_KEY.strip()
        return headers


# Create global settings instance
@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()

# Backward compatibility: keep global settings instance
settings = get_settings()
