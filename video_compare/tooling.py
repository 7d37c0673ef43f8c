from __future__ import annotations

import logging
import shutil
import subprocess
from dataclasses import dataclass
from pathlib import Path

from video_compare.config import ToolSettings

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class ToolAvailable:
    name: str
    path: str


@dataclass(frozen=True, slots=True)
class ToolNotFound:
    name: str


ToolStatus = ToolAvailable | ToolNotFound


@dataclass(frozen=True, slots=True)
class Toolchain:
    """Resolved external binaries shared by every pipeline stage."""

    ffmpeg: str
    ffprobe: str
    timeout_seconds: float = 600.0


@dataclass(frozen=True, slots=True)
class ToolResult:
    command: list[str]
    returncode: int
    stdout: str
    stderr: str

    @property
    def output(self) -> str:
        """Combined stdout and stderr; ffmpeg filters report on stderr."""

        return self.stdout + self.stderr

    @property
    def ok(self) -> bool:
        return self.returncode == 0


def check_tool(name: str) -> ToolStatus:
    """Look up an executable on PATH without running it."""

    resolved = shutil.which(name)
    if resolved is None:
        return ToolNotFound(name=name)
    return ToolAvailable(name=name, path=resolved)


def resolve_toolchain(settings: ToolSettings) -> Toolchain:
    """Resolve ffmpeg/ffprobe once at startup, failing if either is missing."""

    found: dict[str, str] = {}
    missing: list[str] = []
    for name in (settings.ffmpeg, settings.ffprobe):
        status = check_tool(name)
        if isinstance(status, ToolAvailable):
            logger.info("%s detected at path: %s", status.name, status.path)
            found[name] = status.path
        else:
            missing.append(status.name)

    if missing:
        raise RuntimeError(
            f"Required tool(s) not found on PATH: {', '.join(missing)}. "
            "Install FFmpeg so ffmpeg and ffprobe are available."
        )

    return Toolchain(
        ffmpeg=found[settings.ffmpeg],
        ffprobe=found[settings.ffprobe],
        timeout_seconds=float(settings.timeout_seconds),
    )


def run_tool(command: list[str], *, timeout_seconds: float | None = None) -> ToolResult:
    """Run an external tool to completion and capture its output.

    A non-zero exit status is returned, not raised; callers decide whether it is fatal.
    """

    tool_name = Path(command[0]).name
    logger.debug("Running: %s", " ".join(command))

    try:
        completed = subprocess.run(
            command,
            check=False,
            capture_output=True,
            text=True,
            timeout=timeout_seconds,
        )
    except FileNotFoundError as exc:
        raise RuntimeError(
            f"{tool_name} executable was not found. Install FFmpeg so {tool_name} is available on PATH."
        ) from exc
    except subprocess.TimeoutExpired as exc:
        raise RuntimeError(f"{tool_name} timed out after {timeout_seconds:g} seconds.") from exc

    return ToolResult(
        command=list(command),
        returncode=completed.returncode,
        stdout=completed.stdout or "",
        stderr=completed.stderr or "",
    )


def stderr_tail(result: ToolResult, lines: int = 5) -> str:
    tail = [line for line in result.stderr.strip().splitlines() if line.strip()][-lines:]
    return "\n".join(tail)
