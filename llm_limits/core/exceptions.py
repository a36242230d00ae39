from __future__ import annotations


class UsageError(Exception):
    """Base exception for every failure inside a usage pass."""

    kind: str = "usage_error"
    message: str = "Usage fetch failed"

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.__class__.message
        super().__init__(self.message)


class CredentialAbsent(UsageError):
    kind = "credential_absent"
    message = "No usable credential"


class NetworkFailure(UsageError):
    kind = "network_failure"
    message = "Network request failed"


class AuthRejected(UsageError):
    kind = "auth_rejected"
    message = "Provider rejected the request"

    def __init__(self, status_code: int, body: str = "", message: str | None = None) -> None:
        self.status_code = status_code
        self.body = body
        super().__init__(message or f"Usage fetch failed ({status_code})")


class ParseFailure(UsageError):
    kind = "parse_failure"
    message = "Response body could not be parsed"


class ToolUnavailable(UsageError):
    kind = "tool_unavailable"
    message = "Local CLI tool unavailable"
