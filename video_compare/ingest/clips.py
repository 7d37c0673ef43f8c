from __future__ import annotations

import logging
import os
import tempfile
from collections.abc import Iterator
from contextlib import ExitStack, contextmanager
from pathlib import Path

from video_compare.config import ComparisonSettings, TranscodeSettings
from video_compare.models import ComparisonClip, ComparisonWindow, MediaDescriptor
from video_compare.tooling import Toolchain, run_tool, stderr_tail

logger = logging.getLogger(__name__)

CLIP_SUFFIX = ".mp4"


def compute_window(
    descriptor1: MediaDescriptor,
    descriptor2: MediaDescriptor,
    *,
    lead_in_seconds: float = 2.0,
    margin_seconds: float = 4.0,
) -> ComparisonWindow:
    """Derive the shared trimming window from both durations.

    A window that would be empty or negative is an error and is never clamped.
    """

    shortest = min(descriptor1.duration_seconds, descriptor2.duration_seconds)
    length_seconds = shortest - margin_seconds
    if length_seconds <= 0:
        raise ValueError(
            f"Videos are too short to compare: shortest duration is {shortest:.2f}s, "
            f"which leaves no frames after a {margin_seconds:g}s margin."
        )
    return ComparisonWindow(start_seconds=lead_in_seconds, length_seconds=length_seconds)


def window_from_settings(
    descriptor1: MediaDescriptor,
    descriptor2: MediaDescriptor,
    settings: ComparisonSettings,
) -> ComparisonWindow:
    return compute_window(
        descriptor1,
        descriptor2,
        lead_in_seconds=settings.lead_in_seconds,
        margin_seconds=settings.margin_seconds,
    )


@contextmanager
def extract_pair(
    descriptor1: MediaDescriptor,
    descriptor2: MediaDescriptor,
    window: ComparisonWindow,
    toolchain: Toolchain,
    transcode: TranscodeSettings | None = None,
    temp_dir: str | Path | None = None,
) -> Iterator[tuple[ComparisonClip, ComparisonClip]]:
    """Cut both inputs over the same window into temporary comparison clips.

    Each clip's deletion is registered as soon as its file exists, so the clips
    are removed exactly once however the ``with`` block exits.
    """

    transcode = transcode or TranscodeSettings()

    with ExitStack() as stack:
        work_dir = Path(tempfile.mkdtemp(prefix="video_compare_", dir=temp_dir))
        stack.callback(_remove_dir, work_dir)

        clips: list[ComparisonClip] = []
        for descriptor in (descriptor1, descriptor2):
            clip_path = _reserve_clip_path(work_dir)
            stack.callback(_remove_clip, clip_path)
            _transcode_clip(descriptor.path, clip_path, window, toolchain, transcode)
            clips.append(ComparisonClip(path=clip_path, source_path=descriptor.path))

        yield clips[0], clips[1]


def build_transcode_command(
    toolchain: Toolchain,
    source_path: Path,
    clip_path: Path,
    window: ComparisonWindow,
    transcode: TranscodeSettings,
) -> list[str]:
    return [
        toolchain.ffmpeg,
        "-v",
        "error",
        "-y",
        "-ss",
        f"{window.start_seconds:.3f}",
        "-t",
        f"{window.length_seconds:.3f}",
        "-i",
        str(source_path),
        "-an",
        "-c:v",
        transcode.video_codec,
        "-preset",
        transcode.preset,
        "-crf",
        str(transcode.crf),
        str(clip_path),
    ]


def _transcode_clip(
    source_path: Path,
    clip_path: Path,
    window: ComparisonWindow,
    toolchain: Toolchain,
    transcode: TranscodeSettings,
) -> None:
    command = build_transcode_command(toolchain, source_path, clip_path, window, transcode)
    result = run_tool(command, timeout_seconds=toolchain.timeout_seconds)
    if not result.ok:
        details = stderr_tail(result)
        raise RuntimeError(
            f"ffmpeg failed to cut comparison clip from {source_path} (exit status {result.returncode})."
            + (f" ffmpeg stderr: {details}" if details else "")
        )
    logger.debug("Cut comparison clip %s from %s", clip_path, source_path)


def _reserve_clip_path(work_dir: Path) -> Path:
    fd, raw_path = tempfile.mkstemp(prefix="clip_", suffix=CLIP_SUFFIX, dir=work_dir)
    os.close(fd)
    return Path(raw_path)


def _remove_clip(clip_path: Path) -> None:
    try:
        clip_path.unlink()
    except FileNotFoundError:
        return
    logger.debug("Removed comparison clip %s", clip_path)


def _remove_dir(work_dir: Path) -> None:
    try:
        work_dir.rmdir()
    except OSError as exc:
        logger.warning("Could not remove temporary directory %s: %s", work_dir, exc)
