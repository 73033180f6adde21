# drivebroker/core/config.py
from functools import lru_cache
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    aws_access_key_id: str
    aws_secret_access_key: str
    aws_region: str
    aws_s3_bucket_name: str
    aws_s3_endpoint_url: str | None = None  # MinIO / R2

    # Every signed URL expires after this many seconds
    signed_url_expiry: int = 3600

    database_url: str = "sqlite:///./drivebroker.db"

    jwt_secret: str
    jwt_algorithm: str = "HS256"
    access_token_ttl_minutes: int = 60

    share_link_default_days: int = 7

    cors_origins: list[str] = ["*"]
    log_level: str = "INFO"

    # Tell pydantic-settings to load from .env at project root
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",  # ignore any extra stuff in .env
    )


@lru_cache
def get_settings() -> Settings:
    return Settings()
