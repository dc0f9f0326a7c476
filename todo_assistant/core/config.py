"""
Configuration management with Pydantic Settings.

Uses pydantic-settings for environment variable loading with type validation.
"""

from functools import lru_cache
from pathlib import Path
from typing import List, Literal, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class LLMSettings(BaseSettings):
    """LLM API configuration."""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    api_key: str = Field(default="EMPTY", validation_alias="OPENAI_API_KEY")
    base_url: Optional[str] = Field(default=None, validation_alias="OPENAI_BASE_URL")
    model: str = Field(default="gpt-4o-mini", validation_alias="OPENAI_MODEL")
    temperature: float = Field(default=0.2, ge=0.0, le=2.0, validation_alias="LLM_TEMPERATURE")
    timeout_seconds: float = Field(default=60.0, gt=0, le=600, validation_alias="LLM_TIMEOUT_SECONDS")

    @field_validator("api_key")
    @classmethod
    def validate_api_key(cls, v: str) -> str:
        if not v or (v.strip() == "" and v != "EMPTY"):
            raise ValueError("LLM API key is required (use 'EMPTY' for local OpenAI-compatible servers)")
        return v


class DatabaseSettings(BaseSettings):
    """Database configuration."""

    model_config = SettingsConfigDict(env_prefix="DB_")

    app_db_name: str = Field(default="app.db", alias="APP_DB_NAME")
    # Base dir relative to project root
    base_dir: Path = Field(
        default=Path(__file__).resolve().parent.parent.parent / "db",
        alias="DB_BASE_DIR",
    )

    @property
    def app_db_path(self) -> str:
        """Full path to the application database."""
        return str(self.base_dir / self.app_db_name)


class AuthSettings(BaseSettings):
    """Authentication configuration."""

    model_config = SettingsConfigDict(env_prefix="AUTH_")

    secret_key: str = Field(
        default="your-secret-key-change-in-production",
        alias="AUTH_SECRET_KEY",
    )
    algorithm: str = Field(default="HS256", alias="AUTH_ALGORITHM")
    access_token_expire_minutes: int = Field(default=1440, alias="AUTH_TOKEN_EXPIRE_MINUTES")  # 24 hours


class AssistantSettings(BaseSettings):
    """Assistant orchestration configuration."""

    model_config = SettingsConfigDict(env_prefix="ASSISTANT_")

    history_window: int = Field(default=30, ge=2, le=500, alias="ASSISTANT_HISTORY_WINDOW")
    max_tool_rounds: int = Field(default=5, ge=1, le=20, alias="ASSISTANT_MAX_TOOL_ROUNDS")
    resume_after_resolution: bool = Field(default=True, alias="ASSISTANT_RESUME_AFTER_RESOLUTION")
    storage: Literal["sqlite", "memory"] = Field(default="sqlite", alias="ASSISTANT_STORAGE")


class Settings(BaseSettings):
    """Main application settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # App info
    app_name: str = Field(default="To-do Assistant", alias="APP_NAME")
    debug: bool = Field(default=False, alias="DEBUG")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")
    log_file: Optional[str] = Field(default=None, alias="LOG_FILE")
    cors_origins: List[str] = Field(
        default=[
            "http://localhost:5173",  # Vite dev server
            "http://localhost:3000",
            "http://127.0.0.1:5173",
            "http://127.0.0.1:3000",
        ],
        alias="CORS_ORIGINS",
    )

    # Nested settings
    llm: LLMSettings = Field(default_factory=LLMSettings)
    database: DatabaseSettings = Field(default_factory=DatabaseSettings)
    auth: AuthSettings = Field(default_factory=AuthSettings)
    assistant: AssistantSettings = Field(default_factory=AssistantSettings)

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        v_upper = v.upper()
        if v_upper not in valid_levels:
            raise ValueError(f"log_level must be one of: {', '.join(valid_levels)}")
        return v_upper


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


# Global config instance
config = get_settings()
