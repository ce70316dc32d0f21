"""
Application configuration settings.

Central configuration module using Pydantic BaseSettings with environment variable support.
Loads from .env file and environment variables.
"""
import json
from functools import lru_cache
from pathlib import Path
from typing import List, Optional, Union
from urllib.parse import quote_plus

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
    APP_NAME: str = "Gateway Admin"
    APP_ENV: str = Field(default="local")
    DEBUG: bool = Field(default=False)

    # Administrative store (source of truth)
    DATABASE_URL: Optional[str] = Field(
        default=None,
        description="Administrative store connection URL",
    )

    # Railway Postgres plugin raw vars (PG*)
    PGUSER: Optional[str] = Field(default=None)
    PGPASSWORD: Optional[str] = Field(default=None)
    PGHOST: Optional[str] = Field(default=None)
    PGPORT: Optional[str] = Field(default=None)
    PGDATABASE: Optional[str] = Field(default=None)

    # Live store read by the traffic router
    LIVE_DATABASE_URL: Optional[str] = Field(
        default=None,
        description="Live store connection URL (written only by the replication engine)",
    )

    # Replication schedule
    SYNC_ENABLED: bool = Field(default=True, description="Run the periodic sync timer")
    SYNC_INTERVAL_SECONDS: float = Field(
        default=30.0,
        gt=0,
        description="Seconds between scheduled syncs",
    )
    SYNC_ON_STARTUP: bool = Field(default=True, description="Run one sync as soon as the app starts")

    # Seed the two sample routes into an empty admin store
    SEED_SAMPLE_DATA: bool = Field(default=False)

    @property
    def sqlalchemy_database_uri(self) -> str:
        """
        Build the administrative store URI with priority:
        1. DATABASE_URL (full connection string)
        2. PG* vars
        3. SQLite (local development)
        """
        if self.DATABASE_URL:
            return self.DATABASE_URL

        if self.PGUSER and self.PGHOST and self.PGDATABASE:
            password = quote_plus(self.PGPASSWORD or "")
            port = self.PGPORT or "5432"
            return f"postgresql+psycopg2://{self.PGUSER}:{password}@{self.PGHOST}:{port}/{self.PGDATABASE}"

        return "sqlite:///./gateway_admin.db"

    @property
    def live_database_uri(self) -> str:
        """Live store URI, falling back to a local SQLite file."""
        if self.LIVE_DATABASE_URL:
            return self.LIVE_DATABASE_URL
        return "sqlite:///./gateway_live.db"

    # CORS settings
    CORS_ORIGINS: Union[str, List[str]] = Field(
        default='["http://localhost:5173", "http://localhost:8000"]',
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

    # Logging
    LOG_LEVEL: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)",
    )

    # API Authentication
    API_KEY: Optional[str] = Field(
        default=None,
        description="API key required for write operations. Leave empty to disable authentication.",
    )


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


settings = get_settings()
