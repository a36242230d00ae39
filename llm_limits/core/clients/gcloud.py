from __future__ import annotations

import asyncio
import contextlib
import json
import logging
import os
import shlex
import shutil

from llm_limits.core.config.settings import get_settings
from llm_limits.core.exceptions import ParseFailure, ToolUnavailable
from llm_limits.core.types import JsonValue

logger = logging.getLogger(__name__)

GEMINI_SERVICES = ("cloudaicompanion.googleapis.com", "aiplatform.googleapis.com")


def split_command(command: str, *, posix: bool | None = None) -> list[str]:
    """Split a configured command line the way the host shell would.

    Windows paths keep their backslashes, and a bare path to an existing
    executable is one argument even when it contains spaces.
    """
    if posix is None:
        posix = os.name != "nt"
    stripped = command.strip()
    if os.path.isfile(stripped.strip('"')):
        return [stripped.strip('"')]
    parts = shlex.split(stripped, posix=posix)
    if not posix:
        parts = [part[1:-1] if len(part) >= 2 and part[0] == part[-1] == '"' else part for part in parts]
    return parts


def services_list_args(command: str, *, posix: bool | None = None) -> list[str]:
    service_filter = " OR ".join(GEMINI_SERVICES)
    args = split_command(command, posix=posix)
    if not args:
        raise ToolUnavailable("No gcloud command configured")
    # PATHEXT lookup so a bare "gcloud" finds gcloud.cmd on Windows.
    executable = shutil.which(args[0])
    if executable:
        args[0] = executable
    return [
        *args,
        "services",
        "list",
        "--enabled",
        f"--filter=config.name:({service_filter})",
        "--format=json",
    ]


async def list_enabled_gemini_services(
    *,
    command: str | None = None,
    timeout_seconds: float | None = None,
) -> list[JsonValue]:
    """Return the enabled Gemini-related services of the active gcloud project.

    Raises ``ToolUnavailable`` when gcloud is missing, exits non-zero or
    exceeds the timeout, and ``ParseFailure`` on output that is not a JSON list.
    """
    settings = get_settings()
    args = services_list_args(command or settings.gcloud_command)
    timeout = timeout_seconds or settings.gcloud_timeout_seconds
    try:
        process = await asyncio.create_subprocess_exec(
            *args,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
    except OSError as exc:
        raise ToolUnavailable(f"Unable to run {args[0]}: {exc}") from exc

    try:
        stdout, stderr = await asyncio.wait_for(process.communicate(), timeout=timeout)
    except asyncio.TimeoutError as exc:
        with contextlib.suppress(ProcessLookupError):
            process.kill()
        await process.wait()
        raise ToolUnavailable(f"{args[0]} timed out after {timeout}s") from exc

    if process.returncode != 0:
        raise ToolUnavailable(
            f"{args[0]} exited with {process.returncode}: {stderr.decode(errors='replace').strip()}"
        )

    output = stdout.decode(errors="replace").strip()
    if not output:
        return []
    try:
        services = json.loads(output)
    except json.JSONDecodeError as exc:
        raise ParseFailure("gcloud returned invalid JSON") from exc
    if not isinstance(services, list):
        raise ParseFailure("gcloud returned an unexpected payload")
    return services
