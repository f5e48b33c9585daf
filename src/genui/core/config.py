"""Configuration Management."""

from functools import lru_cache
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict
from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()


class Settings(BaseSettings):
    """Runtime settings from environment."""

    model_config = SettingsConfigDict(
        env_prefix="GENUI_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",  # Ignore extra environment variables
    )

    # Logging
    log_level: str = Field(default="INFO", description="Log level")
    json_logs: bool = Field(default=False, description="Use JSON log format")

    # Streaming
    max_stream_buffer: int = Field(
        default=512 * 1024, gt=0, description="Max undecoded bytes buffered from a stream"
    )
    max_json_depth: int = Field(default=20, gt=0, description="Max nesting depth of a record")

    # Actions
    max_effect_depth: int = Field(
        default=4, ge=0, description="Max chained action effects per dispatch"
    )
    error_token: str = Field(
        default="$error.message", description="Placeholder replaced by the error message in on_error"
    )


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
