from functools import lru_cache
from typing import Literal, Optional
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # Application
    APP_NAME: str = "windowlimiter"
    APP_ENV: Literal["dev", "prod"] = "dev"
    APP_VERSION: str = "0.1.0"

    # Counting store
    REDIS_URL: str = "redis://localhost:6379/0"
    KEY_PREFIX: str = "rate-limit"
    DEFAULT_WINDOW_SECONDS: int = 60

    # Ops
    LOG_LEVEL: str = "INFO"

    # Observability
    OTEL_EXPORTER_OTLP_ENDPOINT: Optional[str] = None
    METRICS_NAMESPACE: str = "windowlimiter"

    model_config = SettingsConfigDict(env_file=".env", env_prefix="")

    @property
    def OTEL_SERVICE_NAME(self) -> str:  # type: ignore
        return self.APP_NAME


@lru_cache()
def get_settings() -> Settings:
    return Settings()


settings = get_settings()
