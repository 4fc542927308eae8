"""
Application configuration for the clinic pharmacy backend.

Values come from environment variables; a local .env file is loaded first so
development setups do not need to export anything by hand.
"""

import os
from typing import List

from dotenv import load_dotenv

load_dotenv()


def _split_origins(value: str) -> List[str]:
    return [origin.strip() for origin in value.split(",") if origin.strip()]


class Settings:
    # Database connection settings
    POSTGRES_USER: str = os.getenv("POSTGRES_USER", "postgres")
    POSTGRES_PASSWORD: str = os.getenv("POSTGRES_PASSWORD", "postgres")
    POSTGRES_SERVER: str = os.getenv("POSTGRES_SERVER", "localhost")
    POSTGRES_PORT: str = os.getenv("POSTGRES_PORT", "5432")
    POSTGRES_DB: str = os.getenv("POSTGRES_DB", "clinic_db")

    # DATABASE_URL wins over the POSTGRES_* parts when set (tests use SQLite)
    DATABASE_URL: str = os.getenv(
        "DATABASE_URL",
        f"postgresql+psycopg2://{POSTGRES_USER}:{POSTGRES_PASSWORD}@{POSTGRES_SERVER}:{POSTGRES_PORT}/{POSTGRES_DB}",
    )

    # Bearer token validation
    JWT_SECRET_KEY: str = os.getenv("JWT_SECRET_KEY", "")
    JWT_ALGORITHM: str = os.getenv("JWT_ALGORITHM", "HS256")
    JWT_AUDIENCE: str = os.getenv("JWT_AUDIENCE", "")

    CORS_ALLOWED_ORIGINS: List[str] = _split_origins(
        os.getenv("CORS_ALLOWED_ORIGINS", "http://localhost:3000,http://127.0.0.1:3000")
    )

    # All timestamps and daily report boundaries use the clinic's local time
    CLINIC_TIMEZONE: str = os.getenv("CLINIC_TIMEZONE", "Asia/Ho_Chi_Minh")

    # Attempts for one checkout before a version conflict is surfaced to the caller
    ALLOCATION_MAX_RETRIES: int = int(os.getenv("ALLOCATION_MAX_RETRIES", "3"))

    DEFAULT_MIN_STOCK_LEVEL: int = int(os.getenv("DEFAULT_MIN_STOCK_LEVEL", "10"))

    LOG_DIR: str = os.getenv("LOG_DIR", "logs")
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")


settings = Settings()
