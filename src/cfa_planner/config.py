"""Runtime configuration loaded from the environment or a .env file."""
from functools import lru_cache
from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from cfa_planner.db import DEFAULT_DB_PATH


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    gemini_api_key: str | None = Field(
        default=None, validation_alias=AliasChoices("GEMINI_API_KEY", "API_KEY")
    )
    gemini_model: str = Field(default="gemini-1.5-flash")
    planner_db_path: str = Field(default=DEFAULT_DB_PATH)
    planner_state_key: str = Field(default="cfa_progress")
    planner_log_level: str = Field(default="WARNING")


@lru_cache
def get_settings() -> Settings:
    return Settings()
