"""Runtime configuration, read once from the environment."""

import os
from functools import lru_cache

from pydantic import BaseModel, Field, field_validator

ENV_PREFIX = "CHESSBOT_"


class Settings(BaseModel):
    database_url: str = "sqlite:///database.sqlite3"
    echo_sql: bool = False
    join_command: str = "/start"
    resign_command: str = "/resign"
    log_level: str = "INFO"
    workers: int = Field(default=1, ge=1)
    sqlite_busy_timeout: float = Field(default=30.0, gt=0)

    @field_validator("join_command", "resign_command")
    @classmethod
    def validate_command(cls, value: str) -> str:
        value = value.strip()
        if not value or " " in value:
            raise ValueError(f"Command must be a single non-empty word, got {value!r}.")
        return value

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, value: str) -> str:
        return value.upper()

    @classmethod
    def from_env(cls, environ: dict[str, str] | None = None) -> "Settings":
        """Pick up every CHESSBOT_<FIELD> variable that is set; pydantic does the type coercion."""
        environ = os.environ if environ is None else environ
        values = {
            name: environ[ENV_PREFIX + name.upper()]
            for name in cls.model_fields
            if ENV_PREFIX + name.upper() in environ
        }
        return cls(**values)


@lru_cache
def get_settings() -> Settings:
    return Settings.from_env()
