from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    SERVICE_NAME: str = "order-service"
    USER_SERVICE_URL: str = "http://user-service:8003"
    USER_SERVICE_TIMEOUT: float = 5.0
    CB_USER_SERVICE_FAIL_MAX: int = 5
    CB_USER_SERVICE_RESET_TIMEOUT: int = 60
    SEED_CATALOG: bool = True
    LOG_LEVEL: str = "INFO"
    HOST: str = "0.0.0.0"
    PORT: int = 8002
    CORS_ALLOW_ORIGINS: list[str] = ["*"]

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )


@lru_cache
def get_settings() -> Settings:
    return Settings()
