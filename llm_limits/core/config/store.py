from __future__ import annotations

import json
import logging
import math
import os
import tempfile
from pathlib import Path
from typing import Any, Literal, Mapping, Protocol

from pydantic import BaseModel, ConfigDict, field_validator
from pydantic.alias_generators import to_camel

from llm_limits.core.config.settings import get_settings

logger = logging.getLogger(__name__)

DEFAULT_UPDATE_FREQUENCY_MINUTES = 5


class ConfigStore(Protocol):
    def get(self, key: str, default: Any = None) -> Any: ...

    def set(self, key: str, value: Any) -> None: ...

    def update(self, values: Mapping[str, Any]) -> None: ...

    def as_dict(self) -> dict[str, Any]: ...


class MemoryConfigStore:
    def __init__(self, values: Mapping[str, Any] | None = None) -> None:
        self._values: dict[str, Any] = dict(values or {})

    def get(self, key: str, default: Any = None) -> Any:
        return self._values.get(key, default)

    def set(self, key: str, value: Any) -> None:
        self._values[key] = value

    def update(self, values: Mapping[str, Any]) -> None:
        self._values.update(values)

    def as_dict(self) -> dict[str, Any]:
        return dict(self._values)


class JsonConfigStore:
    """Key-value store backed by a single JSON object on disk.

    The file is reread on every access so edits made by another process show
    up on the next poll. Writes go through a temp file and ``os.replace``.
    """

    def __init__(self, path: Path) -> None:
        self._path = path

    @property
    def path(self) -> Path:
        return self._path

    def get(self, key: str, default: Any = None) -> Any:
        return self._load().get(key, default)

    def set(self, key: str, value: Any) -> None:
        self.update({key: value})

    def update(self, values: Mapping[str, Any]) -> None:
        data = self._load()
        data.update(values)
        self._write(data)

    def as_dict(self) -> dict[str, Any]:
        return self._load()

    def _load(self) -> dict[str, Any]:
        try:
            raw = self._path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return {}
        except OSError:
            logger.warning("config_store_read_failed path=%s", self._path, exc_info=True)
            return {}
        try:
            data = json.loads(raw)
        except json.JSONDecodeError:
            logger.warning("config_store_invalid_json path=%s", self._path)
            return {}
        return data if isinstance(data, dict) else {}

    def _write(self, data: dict[str, Any]) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(prefix=".config-", suffix=".json", dir=self._path.parent)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                json.dump(data, handle, indent=2, sort_keys=True)
            os.replace(tmp_name, self._path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise


class StoreSettings(BaseModel):
    """User-editable values read from the store at the start of every pass."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")

    openai_key: str = ""
    gemini_key: str = ""
    anthropic_key: str = ""
    anthropic_mode: Literal["api", "web"] = "api"
    anthropic_web_cookie: str = ""
    anthropic_org_id: str = ""
    update_frequency: int = DEFAULT_UPDATE_FREQUENCY_MINUTES
    debug_mode: bool = False
    has_completed_setup: bool = False

    @field_validator(
        "openai_key",
        "gemini_key",
        "anthropic_key",
        "anthropic_web_cookie",
        "anthropic_org_id",
        mode="before",
    )
    @classmethod
    def _normalize_secret(cls, value: object) -> str:
        if isinstance(value, str):
            return value.strip()
        return ""

    @field_validator("anthropic_mode", mode="before")
    @classmethod
    def _normalize_mode(cls, value: object) -> str:
        if isinstance(value, str) and value.strip().lower() == "web":
            return "web"
        return "api"

    @field_validator("update_frequency", mode="before")
    @classmethod
    def _normalize_update_frequency(cls, value: object) -> int:
        return resolve_update_frequency(value)

    @field_validator("debug_mode", "has_completed_setup", mode="before")
    @classmethod
    def _normalize_debug_mode(cls, value: object) -> bool:
        if isinstance(value, str):
            return value.strip().lower() in {"1", "true", "yes", "on"}
        return bool(value)


def resolve_update_frequency(value: object) -> int:
    if isinstance(value, bool) or value is None:
        return DEFAULT_UPDATE_FREQUENCY_MINUTES
    try:
        parsed = float(value)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return DEFAULT_UPDATE_FREQUENCY_MINUTES
    if not math.isfinite(parsed) or parsed < 1:
        return DEFAULT_UPDATE_FREQUENCY_MINUTES
    return int(parsed)


def read_store_settings(store: ConfigStore) -> StoreSettings:
    return StoreSettings.model_validate(store.as_dict())


def build_config_store(path: Path | None = None) -> JsonConfigStore:
    return JsonConfigStore(path or get_settings().store_path)
