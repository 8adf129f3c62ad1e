from pydantic_settings import BaseSettings, SettingsConfigDict
from functools import lru_cache


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="TYPED_PUBSUB_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Logging
    log_level: str = "INFO"  # Level for the typed_pubsub logger namespace
    structured_logging: bool = False  # JSON lines on stdout instead of plain records

    # Dispatch
    log_preview_chars: int = 200  # Max chars of a malformed raw message copied into the error log


@lru_cache()
def get_settings() -> Settings:
    return Settings()


settings = get_settings()
