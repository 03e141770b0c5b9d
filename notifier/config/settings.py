"""
Application settings and configuration.
All secrets are loaded from environment variables.
"""

from functools import lru_cache
from typing import Optional

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""
    
    # Twilio Configuration
    twilio_account_sid: str = ""
    twilio_auth_token: str = ""
    twilio_whatsapp_number: str = ""  # Format: whatsapp:+14155238886
    
    # Database
    data_dir: str = "."
    database_url_override: Optional[str] = None
    
    @property
    def database_url(self) -> str:
        """Database URL, defaulting to a SQLite file inside DATA_DIR."""
        if self.database_url_override:
            return self.database_url_override
        return f"sqlite+aiosqlite:///{self.data_dir}/notifier.db"
    
    # Application Settings
    debug: bool = False
    
    # Clinic locale
    timezone: str = "Asia/Riyadh"
    default_country_code: str = "966"
    
    # Dispatch tuning
    batch_size: int = 10
    max_retries: int = 3
    stale_timeout_minutes: int = 5
    welcome_interval_seconds: float = 1.0
    confirmation_interval_seconds: float = 30.0
    reminder_interval_seconds: float = 30.0
    reclaim_interval_minutes: int = 10
    
    # Appointments dated before (today - lookback) are never queued
    ingest_lookback_days: int = 0
    
    reminder_settings_file: str = ".appointment-reminder-settings.json"
    
    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = False


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
