from __future__ import annotations

import logging
import re
from typing import Literal

from video_compare.models import ComparisonClip, SimilarityScore
from video_compare.tooling import Toolchain, run_tool

logger = logging.getLogger(__name__)

MetricKind = Literal["ssim", "psnr"]

SSIM_LABEL = "All"
PSNR_LABEL = "average"


def extract_labeled_float(text: str, label: str) -> float | None:
    """Return the first ``<label>:<number>`` value found in free-form text.

    ``inf`` is accepted because ffmpeg prints it for PSNR of identical clips.
    """

    pattern = re.compile(rf"\b{re.escape(label)}:\s*(inf|\d+(?:\.\d+)?)")
    match = pattern.search(text)
    if match is None:
        return None
    return float(match.group(1))


def parse_ssim(text: str) -> float | None:
    return extract_labeled_float(text, SSIM_LABEL)


def parse_psnr(text: str) -> float | None:
    return extract_labeled_float(text, PSNR_LABEL)


def measure(clip1: ComparisonClip, clip2: ComparisonClip, toolchain: Toolchain) -> SimilarityScore:
    """Run SSIM and PSNR over a clip pair.

    A metric whose value cannot be found in ffmpeg's output scores 0.0 and is
    marked as unmeasured rather than aborting the comparison.
    """

    ssim = parse_ssim(run_metric(clip1, clip2, "ssim", toolchain))
    psnr = parse_psnr(run_metric(clip1, clip2, "psnr", toolchain))

    if ssim is None:
        logger.warning("SSIM value not found in ffmpeg output; scoring it as 0.0.")
    if psnr is None:
        logger.warning("PSNR value not found in ffmpeg output; scoring it as 0.0.")

    return SimilarityScore(
        ssim=ssim if ssim is not None else 0.0,
        psnr_db=psnr if psnr is not None else 0.0,
        ssim_measured=ssim is not None,
        psnr_measured=psnr is not None,
    )


def run_metric(
    clip1: ComparisonClip,
    clip2: ComparisonClip,
    metric: MetricKind,
    toolchain: Toolchain,
) -> str:
    command = [
        toolchain.ffmpeg,
        "-hide_banner",
        "-i",
        str(clip1.path),
        "-i",
        str(clip2.path),
        "-lavfi",
        f"[0:v][1:v]{metric}",
        "-f",
        "null",
        "-",
    ]
    result = run_tool(command, timeout_seconds=toolchain.timeout_seconds)
    if not result.ok:
        logger.warning("ffmpeg %s run exited with status %s.", metric, result.returncode)
    return result.output
