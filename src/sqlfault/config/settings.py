from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field, field_validator
from pathlib import Path
from typing import Literal
from functools import lru_cache

DEFAULT_MAX_CHAIN_DEPTH = 100


class Settings(BaseSettings):
    """
    Library settings loaded from the environment (prefix ``SQLFAULT_``).

    Every field has a default so importing the package never requires an
    environment to be prepared first.
    """

    # Environment
    ENV: Literal["development", "testing", "staging", "production"] = "development"

    # Logging
    LOG_LEVEL: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"
    LOG_FORMAT: Literal["json", "text"] = "json"
    LOG_TO_STDOUT: bool = True
    LOG_DIR: Path = Path("/var/log/sqlfault")
    LOG_MAX_BYTES: int = 10_000_000  # 10 MB
    LOG_BACKUP_COUNT: int = 5
    ENABLE_SQL_LOGGING: bool = False

    # Annotation
    # Upper bound on how many links of an exception chain are inspected
    # when looking for annotations.
    MAX_CHAIN_DEPTH: int = Field(default=DEFAULT_MAX_CHAIN_DEPTH, ge=1)

    # --- Validators ---
    @field_validator("LOG_LEVEL", mode="before")
    @classmethod
    def normalize_log_level(cls, v: str | None) -> str | None:
        """
        Normalize LOG_LEVEL to uppercase before the Literal check runs,
        so ``SQLFAULT_LOG_LEVEL=debug`` is accepted.
        """
        return v.upper() if isinstance(v, str) else v

    @field_validator("LOG_FORMAT", mode="before")
    @classmethod
    def normalize_log_format(cls, v: str | None) -> str | None:
        return v.lower() if isinstance(v, str) else v

    model_config = SettingsConfigDict(
        env_prefix="SQLFAULT_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )


# Settings are read once per process; tests call get_settings.cache_clear()
# after changing the environment.
@lru_cache()
def get_settings() -> Settings:
    return Settings()
