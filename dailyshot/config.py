import os
from pydantic_settings import BaseSettings

class Settings(BaseSettings):
    """Application settings."""
    # Base settings
    DEBUG: bool = False

    # Storage settings
    STORAGE_BACKEND: str = os.getenv("STORAGE_BACKEND", "redis")  # redis | memory
    STORAGE_KEY_PREFIX: str = os.getenv("STORAGE_KEY_PREFIX", "@DailyShot")

    # Redis settings
    REDIS_HOST: str = os.getenv("REDIS_HOST", "localhost")
    REDIS_PORT: int = int(os.getenv("REDIS_PORT", "6379"))
    REDIS_DB: int = int(os.getenv("REDIS_DB", "0"))
    REDIS_SOCKET_TIMEOUT: int = 5

    # Per-key write locks
    LOCK_TIMEOUT_SECONDS: float = 10
    LOCK_BLOCKING_TIMEOUT_SECONDS: float = 5

    # Calendar day used by the daily post gate
    TIMEZONE: str = os.getenv("TIMEZONE", "UTC")

    # Feed settings
    DISCOVERY_LIMIT: int = 50
    FRIEND_SUGGESTION_LIMIT: int = 10
    DEFAULT_POST_VISIBILITY: str = "friends"

    class Config:
        env_file = ".env"
        case_sensitive = True

# Create settings instance
settings = Settings()
