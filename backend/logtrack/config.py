from typing import Optional
from pydantic_settings import BaseSettings, SettingsConfigDict

class Settings(BaseSettings):
    """Application settings loaded from environment or .env file."""
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    APP_NAME: str = "LogTrack"
    VERSION: str = "1.0.0"

    # Server configuration
    HOST: str = "0.0.0.0"
    PORT: int = 8000
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"

    # High request volume (multiples of the per-source average)
    HIGH_VOLUME_MULTIPLIER: float = 5
    HIGH_VOLUME_CRITICAL_MULTIPLIER: float = 10

    # Failed attempts per source
    FAILED_ATTEMPTS_THRESHOLD: int = 5
    FAILED_ATTEMPTS_CRITICAL: int = 10

    # Off-hours window (inclusive hours) and per-hour volume
    OFF_HOURS_START: int = 1
    OFF_HOURS_END: int = 5
    OFF_HOURS_THRESHOLD: int = 50
    OFF_HOURS_CRITICAL: int = 100

    # Large transfer: single-request transfer size in bytes
    LARGE_TRANSFER_THRESHOLD: int = 10_000_000  # 10 MB
    LARGE_TRANSFER_CRITICAL: int = 50_000_000  # 50 MB

    # Rapid requests: burst of requests inside a time window
    RAPID_REQUEST_THRESHOLD: int = 10
    RAPID_REQUEST_WINDOW_SECONDS: float = 10
    RAPID_REQUEST_CRITICAL: int = 20

    # Sampling
    DETECTION_SAMPLE_LINES: int = 5
    EXTERNAL_SAMPLE_LINES: int = 20

    # Text-understanding collaborator used for unknown formats and summaries
    OPENAI_API_KEY: Optional[str] = None
    OPENAI_API_URL: str = "https://api.openai.com/v1/chat/completions"
    OPENAI_MODEL: str = "gpt-3.5-turbo"
    EXTERNAL_PARSER_TIMEOUT: float = 5.0

    # Result cache; bump CACHE_VERSION whenever the result schema changes
    CACHE_VERSION: str = "2"
    CACHE_SIZE: int = 128

settings = Settings()
