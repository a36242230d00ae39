from __future__ import annotations

from contextvars import ContextVar, Token
from uuid import uuid4

_PASS_ID: ContextVar[str | None] = ContextVar("pass_id", default=None)


def get_pass_id() -> str | None:
    return _PASS_ID.get()


def set_pass_id(value: str | None) -> Token[str | None]:
    return _PASS_ID.set(value)


def reset_pass_id(token: Token[str | None]) -> None:
    _PASS_ID.reset(token)


def new_pass_id() -> str:
    return uuid4().hex[:12]
