from __future__ import annotations

import math
from typing import Any

from video_compare.models import ComparisonOutcome, MediaDescriptor, ResolutionVerdict, Verdict

BYTES_PER_MB = 1e6


def format_report(outcome: ComparisonOutcome) -> str:
    """Render the human-readable comparison report."""

    if isinstance(outcome.verdict, ResolutionVerdict):
        return format_resolution_report(outcome.verdict)
    return format_quality_report(outcome.verdict)


def format_resolution_report(verdict: ResolutionVerdict) -> str:
    return "\n".join(
        [
            f"Detected resolutions: {verdict.descriptor1.resolution} vs {verdict.descriptor2.resolution}",
            "",
            f"Advise: Video file '{verdict.preferred_path.name}' contains major resolution",
        ]
    )


def format_quality_report(verdict: Verdict) -> str:
    lines = [
        "=== RESULTS ===",
        f"SSIM: {verdict.ssim:.4f}",
        f"PSNR: {verdict.psnr_db:.2f} dB",
        f"Size: {verdict.path1.name} = {verdict.size1 / BYTES_PER_MB:.2f} MB",
        f"Size: {verdict.path2.name} = {verdict.size2 / BYTES_PER_MB:.2f} MB",
        f"Codec: {verdict.codec1 or 'unknown'} vs {verdict.codec2 or 'unknown'}",
    ]
    for metric in verdict.score.fallback_metrics:
        lines.append(
            f"Warning: {metric.upper()} could not be measured and was scored as 0.0; "
            "the advice below has reduced confidence."
        )
    lines.extend(
        [
            "",
            f'Advise: Video file "{verdict.preferred_path.name}" has the better quality-to-size tradeoff',
            f"Reason: {verdict.reason}",
        ]
    )
    return "\n".join(lines)


def outcome_payload(outcome: ComparisonOutcome) -> dict[str, Any]:
    """Build a JSON-serializable view of a comparison outcome."""

    payload: dict[str, Any] = {
        "status": "ok",
        "files": [descriptor_payload(outcome.descriptor1), descriptor_payload(outcome.descriptor2)],
        "preferred_path": str(outcome.verdict.preferred_path),
    }

    if isinstance(outcome.verdict, ResolutionVerdict):
        payload["decision"] = "resolution"
        return payload

    verdict = outcome.verdict
    payload["decision"] = "quality"
    payload["reason"] = verdict.reason
    payload["metrics"] = {
        "ssim": round(verdict.ssim, 6),
        # JSON has no infinity; identical clips report a null PSNR instead.
        "psnr_db": round(verdict.psnr_db, 4) if math.isfinite(verdict.psnr_db) else None,
        "psnr_infinite": math.isinf(verdict.psnr_db),
        "fallback_metrics": verdict.score.fallback_metrics,
    }
    return payload


def descriptor_payload(descriptor: MediaDescriptor) -> dict[str, Any]:
    return {
        "path": str(descriptor.path),
        "duration_seconds": round(descriptor.duration_seconds, 3),
        "width": descriptor.width,
        "height": descriptor.height,
        "resolution": descriptor.resolution,
        "codec": descriptor.codec,
        "size_bytes": descriptor.size_bytes,
    }
