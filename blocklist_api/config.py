"""
Application settings.

Loads configuration from environment variables (prefix ``BLOCKLIST_``)
using pydantic-settings.
"""

from functools import lru_cache

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from blocklist_api.blocklist.errors import InvalidAddressError
from blocklist_api.utils.validation import canonicalize_ip


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="BLOCKLIST_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    app_name: str = "Blocklist Control Service"

    # Server
    host: str = "127.0.0.1"
    port: int = Field(default=8000, gt=0, lt=65536)

    # Logging
    log_level: str = "INFO"
    log_file: str | None = None

    # Timeouts (seconds)
    lock_timeout: float = Field(default=1.0, gt=0)
    request_timeout: float = Field(default=5.0, gt=0)

    # Addresses blocked at startup, e.g. BLOCKLIST_INITIAL_BLOCKLIST='["10.0.0.1"]'
    initial_blocklist: list[str] = Field(default_factory=list)

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        level = v.upper()
        if level not in {"TRACE", "DEBUG", "INFO", "SUCCESS", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Unknown log level: {v}")
        return level

    @field_validator("initial_blocklist")
    @classmethod
    def validate_initial_blocklist(cls, v: list[str]) -> list[str]:
        result = []
        for ip in v:
            try:
                result.append(canonicalize_ip(ip))
            except InvalidAddressError as e:
                raise ValueError(str(e)) from e
        return result


@lru_cache
def get_settings() -> Settings:
    return Settings()
