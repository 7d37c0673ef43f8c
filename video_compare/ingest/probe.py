from __future__ import annotations

import logging
import math
import re
from pathlib import Path

from video_compare.models import MediaDescriptor
from video_compare.tooling import Toolchain, run_tool, stderr_tail

logger = logging.getLogger(__name__)

_RESOLUTION_PATTERN = re.compile(r"^\s*(\d+)\s*x\s*(\d+)")


def describe(path: str | Path, toolchain: Toolchain) -> MediaDescriptor:
    """Collect duration, resolution, codec and size for one video file."""

    source_path = Path(path).expanduser().resolve()
    if not source_path.exists():
        raise FileNotFoundError(f"Video file not found: {source_path}")

    width, height = probe_resolution(source_path, toolchain)
    descriptor = MediaDescriptor(
        path=source_path,
        duration_seconds=probe_duration(source_path, toolchain),
        width=width,
        height=height,
        codec=probe_codec(source_path, toolchain),
        size_bytes=source_path.stat().st_size,
    )
    logger.debug("Described %s: %s", source_path, descriptor)
    return descriptor


def probe_resolution(path: Path, toolchain: Toolchain) -> tuple[int, int]:
    output = _run_ffprobe(
        toolchain,
        [
            "-select_streams",
            "v:0",
            "-show_entries",
            "stream=width,height",
            "-of",
            "csv=p=0:s=x",
        ],
        path,
    )
    return parse_resolution(output, path)


def probe_duration(path: Path, toolchain: Toolchain) -> float:
    output = _run_ffprobe(
        toolchain,
        [
            "-show_entries",
            "format=duration",
            "-of",
            "default=noprint_wrappers=1:nokey=1",
        ],
        path,
    )
    return parse_duration(output, path)


def probe_codec(path: Path, toolchain: Toolchain) -> str:
    output = _run_ffprobe(
        toolchain,
        [
            "-select_streams",
            "v:0",
            "-show_entries",
            "stream=codec_name",
            "-of",
            "default=nk=1:nw=1",
        ],
        path,
    )
    codec = output.strip()
    if not codec:
        logger.warning("No video codec reported for %s; treating it as unknown.", path)
    return codec


def parse_resolution(output: str, path: str | Path = "<input>") -> tuple[int, int]:
    """Parse ffprobe's ``WxH`` line. Anything else is fatal for the run."""

    match = _RESOLUTION_PATTERN.match(output.strip())
    if match is None:
        raise ValueError(
            f"Could not read video resolution of {path}: unexpected ffprobe output {output.strip()!r}."
        )

    width, height = int(match.group(1)), int(match.group(2))
    if width <= 0 or height <= 0:
        raise ValueError(f"Invalid video resolution {width}x{height} reported for {path}.")
    return width, height


def parse_duration(output: str, path: str | Path = "<input>") -> float:
    """Parse a container duration, falling back to 0.0 when it is unreadable."""

    raw_value = output.strip()
    try:
        duration = float(raw_value)
    except ValueError:
        logger.warning("Unreadable duration %r for %s; using 0.0.", raw_value, path)
        return 0.0

    if not math.isfinite(duration) or duration < 0:
        logger.warning("Invalid duration %r for %s; using 0.0.", raw_value, path)
        return 0.0
    return duration


def _run_ffprobe(toolchain: Toolchain, query: list[str], path: Path) -> str:
    command = [toolchain.ffprobe, "-v", "error", *query, str(path)]
    result = run_tool(command, timeout_seconds=toolchain.timeout_seconds)
    if not result.ok:
        details = stderr_tail(result)
        logger.warning(
            "ffprobe exited with status %s for %s.%s",
            result.returncode,
            path,
            f" ffprobe stderr: {details}" if details else "",
        )
    return result.stdout
