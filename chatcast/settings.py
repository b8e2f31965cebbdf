from enum import Enum

from pydantic_settings import BaseSettings, SettingsConfigDict


class Environment(str, Enum):
    """Application environment types."""

    DEV = "dev"
    STAGING = "staging"
    PRODUCTION = "production"


class Settings(BaseSettings):  # type: ignore[misc]
    model_config = SettingsConfigDict(case_sensitive=True)

    ENVIRONMENT: Environment = Environment.DEV

    # Server binding
    HOST: str = "0.0.0.0"
    PORT: int = 8000

    # Static assets (mounted only when a directory is configured)
    STATIC_DIR: str | None = None
    STATIC_URL: str = "/static"

    # Logging settings
    LOG_LEVEL: str = "INFO"
    LOG_FILE_PATH: str = "logs/logging_errors.log"
    LOG_EXCLUDED_PATHS: list[str] = ["/metrics", "/health"]

    # Loki settings
    LOKI_ENABLED: bool = False
    LOKI_URL: str = "http://loki:3100"
    LOKI_VERSION: str = "1"

    # WebSocket delivery settings
    WS_SEND_QUEUE_SIZE: int = 256
    WS_CLOSE_TIMEOUT_SECONDS: float = 5.0


app_settings = Settings()
