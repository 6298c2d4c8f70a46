from typing import Literal, Optional
from dotenv import load_dotenv
from pydantic import Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
import os

# Load environment variables from a .env file
load_dotenv()


class ConfigError(Exception):
    pass


class Settings(BaseSettings):
    telegram_bot_token: str = Field(min_length=1)
    database_path: str = "./data/bot.db"
    log_level: Literal["debug", "info", "warn", "warning", "error"] = "info"
    health_port: Optional[int] = Field(default=None, ge=1, le=65535)
    super_admin_id: int = 0

    # Notifier tuning
    notify_queue_size: int = Field(default=1000, ge=1)
    notify_workers: int = Field(default=2, ge=1)

    # Long-poll timeout in seconds
    poll_timeout: int = Field(default=10, ge=0)

    # empty variables count as unset, so an empty HEALTH_PORT leaves the health server off
    model_config = SettingsConfigDict(case_sensitive=False, extra="ignore", env_ignore_empty=True)

    @field_validator("log_level", mode="before")
    @classmethod
    def _normalise_level(cls, value):
        if isinstance(value, str):
            return value.strip().lower()
        return value

    @property
    def database_url(self) -> str:
        return f"sqlite:///{self.database_path}"


def load_settings() -> Settings:
    """Validate the environment and build the process settings."""
    try:
        return Settings()
    except ValidationError as e:
        names = ", ".join(sorted({str(error["loc"][0]).upper() for error in e.errors()}))
        raise ConfigError(f"invalid or missing settings: {names}") from e


def ensure_database_dir(path: str) -> None:
    directory = os.path.dirname(path)
    if directory:
        os.makedirs(directory, mode=0o755, exist_ok=True)
