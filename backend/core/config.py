"""
Configuration Management - All configurable values in one place
Loads from environment (.env) and the store settings document
"""
from pydantic_settings import BaseSettings
from pydantic import Field, field_validator
from functools import lru_cache
from pathlib import Path
from dotenv import load_dotenv
import pytz

ROOT_DIR = Path(__file__).parent.parent
load_dotenv(ROOT_DIR / '.env')


class Settings(BaseSettings):
    """Application settings loaded from environment"""

    # Database - MONGO_URL must be set in .env
    MONGO_URL: str = Field(...)
    DB_NAME: str = Field(default="storecore")

    # CORS
    CORS_ORIGINS: str = "*"

    # App
    APP_NAME: str = "StoreCore"
    LOG_LEVEL: str = "INFO"

    # Store defaults (overridden by the store_settings document)
    DEFAULT_STORE_TIMEZONE: str = "Asia/Taipei"
    DEFAULT_STORE_CURRENCY: str = "twd"

    # RSVP import limits
    RSVP_IMPORT_MAX_TEXT_LENGTH: int = 200_000
    RSVP_IMPORT_MAX_ROWS: int = 2000

    @field_validator('DEFAULT_STORE_TIMEZONE')
    @classmethod
    def validate_default_timezone(cls, v: str) -> str:
        """The configured store timezone must be a known IANA identifier"""
        if v not in pytz.all_timezones_set:
            raise ValueError(f"Unknown timezone: {v}")
        return v

    @field_validator('DEFAULT_STORE_CURRENCY')
    @classmethod
    def normalize_currency(cls, v: str) -> str:
        return v.strip().lower()

    @field_validator('LOG_LEVEL')
    @classmethod
    def normalize_log_level(cls, v: str) -> str:
        return v.strip().upper()

    class Config:
        env_file = ".env"
        extra = "ignore"


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance"""
    return Settings()


settings = get_settings()
