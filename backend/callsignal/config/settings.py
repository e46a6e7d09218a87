from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field


class Settings(BaseSettings):
    # App
    API_HOST: str = Field("0.0.0.0")
    API_PORT: int = Field(3001)
    DEBUG: bool = Field(True)
    LOG_LEVEL: str = Field("INFO")
    CORS_ORIGIN_REGEX: str = Field(r".*")

    # Redis
    REDIS_URL: str | None = Field(None)
    REDIS_HOST: str = Field("redis")
    REDIS_PORT: int = Field(6379)
    REDIS_PASSWORD: str | None = Field(None)
    REDIS_DB: int = Field(0)

    # Media relay (null | http | redis)
    MEDIA_RELAY_BACKEND: str = Field("null")
    MEDIA_RELAY_URL: str = Field("http://localhost:4000")
    MEDIA_RELAY_TIMEOUT_SEC: float = Field(5.0)
    MEDIA_CONTROL_STREAM: str = Field("stream:media:control")

    # Session housekeeping
    CALLING_TIMEOUT_SEC: float = Field(120.0)
    SWEEP_INTERVAL_SEC: float = Field(30.0)

    # Metrics
    METRICS_ENABLED: bool = Field(False)
    METRICS_PORT: int = Field(8001)

    model_config = SettingsConfigDict(
        env_file=".env",
        extra="ignore",
        env_file_encoding="utf-8"
    )


settings = Settings()
