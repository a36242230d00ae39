from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

BASE_DIR = Path(__file__).resolve().parents[3]

DEFAULT_HOME_DIR = Path.home() / ".llm-limits"
DEFAULT_STORE_PATH = DEFAULT_HOME_DIR / "config.json"
DEFAULT_CODEX_HOME = Path.home() / ".codex"

BROWSER_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="LLM_LIMITS_",
        env_file=(BASE_DIR / ".env", BASE_DIR / ".env.local"),
        env_file_encoding="utf-8",
        extra="ignore",
    )

    store_path: Path = DEFAULT_STORE_PATH
    codex_home: Path = DEFAULT_CODEX_HOME
    openai_api_base_url: str = "https://api.openai.com"
    chatgpt_base_url: str = "https://chatgpt.com"
    claude_base_url: str = "https://claude.ai"
    browser_user_agent: str = BROWSER_USER_AGENT
    usage_fetch_timeout_seconds: float = Field(default=10.0, gt=0)
    gcloud_command: str = "gcloud"
    gcloud_timeout_seconds: float = Field(default=5.0, gt=0)
    demo_placeholder_enabled: bool = False
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"

    @field_validator("store_path", "codex_home", mode="before")
    @classmethod
    def _expand_path(cls, value: str | Path) -> Path:
        if isinstance(value, Path):
            return value.expanduser()
        if isinstance(value, str):
            return Path(value.strip()).expanduser()
        raise TypeError("value must be a path")

    @field_validator("log_level", mode="before")
    @classmethod
    def _upper_log_level(cls, value: object) -> object:
        if isinstance(value, str):
            return value.strip().upper()
        return value


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
