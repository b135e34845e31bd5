"""
Application configuration loaded from environment variables.

Uses Pydantic Settings to:
1. Read from .env file automatically
2. Validate values at startup
3. Provide type-safe access throughout the app

Usage:
    from dorlog.config import settings
    print(settings.DIARY_COLLECTION)

Note: the validator below prefers .env values over empty shell environment
variables, so an exported-but-empty FIREBASE_CREDENTIALS_PATH doesn't
shadow the real path in .env.
"""

from typing import Literal

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """All application configuration in one place."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    @model_validator(mode="before")
    @classmethod
    def prefer_dotenv_over_empty_env(cls, data):
        """If an env var is empty but .env has a value, use the .env value."""
        from dotenv import dotenv_values

        dotenv_vals = dotenv_values(".env")
        for key, dotenv_value in dotenv_vals.items():
            if dotenv_value and (key not in data or not data.get(key)):
                data[key] = dotenv_value
        return data

    # --- Firebase ---
    FIREBASE_CREDENTIALS_PATH: str = ""  # Empty: use application-default credentials
    FIREBASE_PROJECT_ID: str = ""
    FIREBASE_STORAGE_BUCKET: str = ""

    # --- Firestore collections ---
    DIARY_COLLECTION: str = "report_diario"
    DOCTORS_COLLECTION: str = "medicos"
    MEDICATIONS_COLLECTION: str = "medicamentos"

    # --- Aggregation ---
    REPORT_WINDOW_DAYS: int = 30
    PAIN_POINTS_TOP_N: int = 8

    # --- Report generation ---
    REPORT_FORMAT: Literal["html", "pdf"] = "html"
    REPORT_STORAGE: Literal["local", "firebase"] = "local"
    REPORTS_DIR: str = "reports"
    PUBLIC_BASE_URL: str = "http://localhost:8000"

    # --- Application ---
    APP_ENV: str = "development"
    DEBUG: bool = True
    LOG_LEVEL: str = "INFO"
    CORS_ORIGINS: str = "http://localhost:5173"

    @property
    def cors_origins_list(self) -> list[str]:
        """Parse comma-separated CORS origins into a list."""
        return [origin.strip() for origin in self.CORS_ORIGINS.split(",")]


# Singleton instance, import this everywhere
settings = Settings()
