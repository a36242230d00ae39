from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from llm_limits.core.config.settings import get_settings

logger = logging.getLogger(__name__)

AUTH_FILE = "auth.json"
CONFIG_FILES = ("config.toml", "config.json", "session.json", "credentials.json")

# Token locations inside auth.json, checked in order.
_AUTH_TOKEN_PATHS: tuple[tuple[str, ...], ...] = (
    ("access_token",),
    ("session_token",),
    ("tokens", "access_token"),
    ("default", "access_token"),
)
_CONFIG_JSON_KEYS = ("accessToken", "sessionToken", "apiKey", "token")
_TOML_KEY_PATTERNS = (
    re.compile(r"""api_key\s*=\s*["']([^"']+)["']"""),
    re.compile(r"""access_token\s*=\s*["']([^"']+)["']"""),
)


@dataclass(frozen=True, slots=True)
class CodexCliToken:
    token: str
    source_path: Path


def read_codex_token(codex_home: Path | None = None) -> CodexCliToken | None:
    home = codex_home or get_settings().codex_home
    if not home.is_dir():
        return None

    auth_path = home / AUTH_FILE
    if auth_path.is_file():
        token = _extract_from_auth_json(_load_json_file(auth_path))
        if token is not None:
            return CodexCliToken(token=token, source_path=auth_path)

    for name in CONFIG_FILES:
        path = home / name
        if not path.is_file():
            continue
        token = _extract_from_config_file(path)
        if token is not None:
            return CodexCliToken(token=token, source_path=path)
    return None


def _extract_from_auth_json(payload: Any) -> str | None:
    if not isinstance(payload, dict):
        return None
    for path in _AUTH_TOKEN_PATHS:
        token = _normalize_secret(_read_nested_string(payload, path))
        if token is not None:
            return token
    return None


def _extract_from_config_file(path: Path) -> str | None:
    if path.suffix == ".toml":
        raw = _read_text(path)
        return _extract_from_toml_text(raw) if raw is not None else None
    payload = _load_json_file(path)
    if not isinstance(payload, dict):
        return None
    for key in _CONFIG_JSON_KEYS:
        token = _normalize_secret(_read_string(payload, key))
        if token is not None:
            return token
    return None


def _extract_from_toml_text(raw: str) -> str | None:
    """Pull a token out of config.toml with a narrow regex.

    This is a lossy heuristic: it only recognises ``api_key`` and
    ``access_token`` assignments with quoted values, ignores TOML tables and
    returns the first match anywhere in the file.
    """
    for pattern in _TOML_KEY_PATTERNS:
        match = pattern.search(raw)
        if match:
            token = _normalize_secret(match.group(1))
            if token is not None:
                return token
    return None


def _read_text(path: Path) -> str | None:
    try:
        return path.read_text(encoding="utf-8")
    except OSError:
        logger.debug("codex_credentials_read_failed path=%s", path, exc_info=True)
        return None


def _load_json_file(path: Path) -> Any | None:
    raw = _read_text(path)
    if raw is None:
        return None
    try:
        return json.loads(raw)
    except json.JSONDecodeError:
        logger.debug("codex_credentials_invalid_json path=%s", path)
        return None


def _read_nested_string(payload: dict[str, Any], path: tuple[str, ...]) -> str | None:
    current: Any = payload
    for key in path:
        if not isinstance(current, dict):
            return None
        current = current.get(key)
    return current if isinstance(current, str) else None


def _read_string(payload: dict[str, Any], key: str) -> str | None:
    value = payload.get(key)
    if isinstance(value, str):
        return value
    return None


def _normalize_secret(value: str | None) -> str | None:
    if value is None:
        return None
    stripped = value.strip()
    if not stripped:
        return None
    return stripped
