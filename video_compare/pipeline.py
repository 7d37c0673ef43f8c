from __future__ import annotations

import logging
from contextlib import ExitStack
from pathlib import Path
from typing import Callable, TypeVar

from video_compare.config import Settings
from video_compare.features.similarity import measure
from video_compare.ingest.clips import extract_pair, window_from_settings
from video_compare.ingest.probe import describe
from video_compare.models import ComparisonOutcome
from video_compare.scoring.decision import decide, decide_by_resolution, resolutions_match
from video_compare.tooling import Toolchain

logger = logging.getLogger(__name__)

T = TypeVar("T")

StepRunner = Callable[[int, int, str, Callable[[], T]], T]

TOTAL_STEPS = 4


def _run_step(step_index: int, total_steps: int, label: str, work: Callable[[], T]) -> T:
    return work()


def compare_videos(
    file1: str | Path,
    file2: str | Path,
    *,
    toolchain: Toolchain,
    settings: Settings,
    step: StepRunner | None = None,
) -> ComparisonOutcome:
    """Compare two encodes and return the preferred one.

    Differing resolutions short-circuit the run before any clip is cut.
    Comparison clips only live inside the extraction block.
    """

    run_step = step or _run_step
    path1 = Path(file1).expanduser().resolve()
    path2 = Path(file2).expanduser().resolve()
    for path in (path1, path2):
        if not path.is_file():
            raise FileNotFoundError(f"Video file not found: {path}")

    descriptor1, descriptor2 = run_step(
        1,
        TOTAL_STEPS,
        "Read metadata",
        lambda: (describe(path1, toolchain), describe(path2, toolchain)),
    )

    if not resolutions_match(descriptor1, descriptor2):
        logger.info(
            "Resolution mismatch (%s vs %s); skipping similarity measurement.",
            descriptor1.resolution,
            descriptor2.resolution,
        )
        return ComparisonOutcome(
            file1=path1,
            file2=path2,
            descriptor1=descriptor1,
            descriptor2=descriptor2,
            verdict=decide_by_resolution(descriptor1, descriptor2),
        )

    window = window_from_settings(descriptor1, descriptor2, settings.comparison)
    logger.debug("Comparison window: %s", window)

    with ExitStack() as stack:
        clip1, clip2 = run_step(
            2,
            TOTAL_STEPS,
            "Cut comparison clips",
            lambda: stack.enter_context(
                extract_pair(
                    descriptor1,
                    descriptor2,
                    window,
                    toolchain,
                    transcode=settings.transcode,
                    temp_dir=settings.comparison.temp_dir,
                )
            ),
        )
        score = run_step(3, TOTAL_STEPS, "Measure similarity", lambda: measure(clip1, clip2, toolchain))

    verdict = run_step(4, TOTAL_STEPS, "Decide", lambda: decide(descriptor1, descriptor2, score))
    return ComparisonOutcome(
        file1=path1,
        file2=path2,
        descriptor1=descriptor1,
        descriptor2=descriptor2,
        verdict=verdict,
    )
