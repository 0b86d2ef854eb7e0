from typing import Literal, Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Client defaults with environment variable support (NTP_SYNC_*)"""

    # Connection defaults
    DEFAULT_PORT: int = 123
    DEFAULT_TIMEOUT: int = 5  # seconds

    # Output
    DISPLAY_FORMAT: Literal["iso", "ctime"] = "iso"

    # Logging
    LOG_LEVEL: str = "WARNING"
    LOG_PATH: Optional[str] = None

    model_config = SettingsConfigDict(
        env_prefix="NTP_SYNC_",
        env_file=".env",
        case_sensitive=True,
        extra="ignore",
    )


# Global settings instance
settings = Settings()
