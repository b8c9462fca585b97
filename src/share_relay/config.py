from __future__ import annotations

from typing import Literal

from pydantic import ConfigDict
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    QUEUE_URL: str = "redis://redis:6379/0"
    QUEUE_NAME: str = "shared_items"
    QUEUE_GROUP: str = "realtime"
    QUEUE_CONSUMER: str = "relay"

    QUEUE_RETRY_COUNT: int = 30
    QUEUE_RETRY_DELAY_MS: int = 1000
    QUEUE_RETRY_MAX_DELAY_MS: int = 30000
    QUEUE_RETRY_JITTER_MS: int = 300

    QUEUE_BATCH_SIZE: int = 10
    QUEUE_BLOCK_MS: int = 5000
    QUEUE_ERROR_BACKOFF_SECONDS: float = 5.0
    QUEUE_MAX_LENGTH: int = 10000
    QUEUE_DEAD_LETTER_STREAM: str | None = None

    WS_HOST: str = "0.0.0.0"
    WS_PORT: int = 3000
    WS_HEARTBEAT_SECONDS: int = 30
    WS_SEND_TIMEOUT_SECONDS: float = 5.0
    # "protocol": rely on server-side WebSocket ping frames; "frame": in-band JSON ping.
    WS_KEEPALIVE: Literal["protocol", "frame"] = "protocol"

    CORS_ORIGINS: list[str] = ["*"]

    LOG_LEVEL: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"

    model_config = ConfigDict(
        env_file=".env",
        extra="ignore",
    )


settings = Settings()
