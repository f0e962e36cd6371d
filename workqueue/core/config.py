from pydantic import validator
from pydantic_settings import BaseSettings

# Each scripted chunk unpacks up to 2 * batch size values; Lua refuses to unpack ~8000.
MAX_PROMOTION_BATCH_SIZE = 1000


class Settings(BaseSettings):
    # Application
    APP_NAME: str = "Work Queue"
    VERSION: str = "1.0.0"
    ENVIRONMENT: str = "development"

    # Redis
    REDIS_URL: str = "redis://localhost:6379/0"
    REDIS_MAX_CONNECTIONS: int = 50

    # Queue Settings
    QUEUE_ACK_TIMEOUT: float = 30.0           # seconds before an unacknowledged message is redelivered
    QUEUE_PROMOTION_BATCH_SIZE: int = 100     # max members per scripted RPUSH/ZADD/HSET

    # Consumer Settings
    CONSUMER_BATCH_SIZE: int = 10
    CONSUMER_IDLE_BACKOFF: float = 0.1
    CONSUMER_MAX_IDLE_BACKOFF: float = 5.0

    # Sweeper Settings
    SWEEP_INTERVAL: float = 1.0

    # Logging
    LOG_LEVEL: str = "INFO"

    @validator("QUEUE_ACK_TIMEOUT", "SWEEP_INTERVAL", "CONSUMER_IDLE_BACKOFF", "CONSUMER_MAX_IDLE_BACKOFF")
    def validate_positive_seconds(cls, v):
        if v <= 0:
            raise ValueError("must be greater than zero")
        return v

    @validator("QUEUE_PROMOTION_BATCH_SIZE", "CONSUMER_BATCH_SIZE", "REDIS_MAX_CONNECTIONS")
    def validate_positive_count(cls, v):
        if v < 1:
            raise ValueError("must be at least 1")
        return v

    @validator("QUEUE_PROMOTION_BATCH_SIZE")
    def validate_promotion_batch_size(cls, v):
        if v > MAX_PROMOTION_BATCH_SIZE:
            raise ValueError(f"must be at most {MAX_PROMOTION_BATCH_SIZE}")
        return v

    @validator("LOG_LEVEL")
    def validate_log_level(cls, v):
        allowed_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if v.upper() not in allowed_levels:
            raise ValueError(f"Log level must be one of: {allowed_levels}")
        return v.upper()

    class Config:
        env_file = ".env"
        case_sensitive = True


# Global settings instance
settings = Settings()
