"""Environment-driven configuration with Pydantic v2."""

from typing import Literal, Optional
from pathlib import Path
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings driven entirely by environment variables."""

    # Server Configuration
    host: str = Field(default="0.0.0.0")
    port: int = Field(default=3000, ge=1, le=65535)
    debug: bool = Field(default=False)

    # In-process cache (L1)
    cache_max: int = Field(default=100, ge=1)
    cache_ttl: int = Field(default=300000, gt=0)  # milliseconds

    # Shared cache (L2) - disabled when REDIS_URL is unset
    redis_url: Optional[str] = Field(default=None)
    redis_socket_timeout: float = Field(default=2.0, gt=0, le=60)
    redis_connect_timeout: float = Field(default=2.0, gt=0, le=60)

    # Database Configuration
    database_url: Optional[str] = Field(default=None)
    database_fallback_enabled: bool = Field(default=True)
    database_fallback_url: str = Field(default="sqlite+aiosqlite:///:memory:")
    database_connect_timeout: float = Field(default=5.0, gt=0, le=120)
    database_echo: bool = Field(default=False)
    database_pool_size: int = Field(default=10, ge=1, le=100)
    database_max_overflow: int = Field(default=20, ge=0, le=100)

    # Logging
    log_level: str = Field(default="INFO")
    log_format: Literal["json", "console"] = Field(default="json")
    log_file: Optional[str] = Field(default=None)

    @field_validator("database_url", "database_fallback_url")
    @classmethod
    def validate_database_url(cls, v):
        """Ensure database directory exists for file-backed SQLite."""
        if v and v.startswith("sqlite") and ":///" in v:
            db_path = v.split("///")[1]
            if db_path and db_path != ":memory:":
                Path(db_path).parent.mkdir(parents=True, exist_ok=True)
        return v

    @field_validator("redis_url", "database_url", mode="before")
    @classmethod
    def blank_as_unset(cls, v):
        if isinstance(v, str) and not v.strip():
            return None
        return v

    @property
    def cache_ttl_seconds(self) -> float:
        """L1 time-to-live in seconds."""
        return self.cache_ttl / 1000

    @property
    def shared_cache_ttl_seconds(self) -> int:
        """L2 expiry in whole seconds (SETEX needs at least 1)."""
        return max(1, self.cache_ttl // 1000)

    @property
    def shared_cache_enabled(self) -> bool:
        return self.redis_url is not None

    @property
    def is_development(self) -> bool:
        """Check if running in development mode."""
        return self.debug

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": False,
        "extra": "ignore",
        "env_parse_none_str": "none",
    }
