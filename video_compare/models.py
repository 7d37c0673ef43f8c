from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path


@dataclass(frozen=True, slots=True)
class MediaDescriptor:
    """Comparable metadata for one input video."""

    path: Path
    duration_seconds: float
    width: int
    height: int
    codec: str
    size_bytes: int

    @property
    def pixel_area(self) -> int:
        return self.width * self.height

    @property
    def resolution(self) -> str:
        return f"{self.width}x{self.height}"


@dataclass(frozen=True, slots=True)
class ComparisonWindow:
    """Shared trimming window applied to both inputs."""

    start_seconds: float
    length_seconds: float


@dataclass(frozen=True, slots=True)
class ComparisonClip:
    """Temporary re-encoded clip cut from a source file."""

    path: Path
    source_path: Path


@dataclass(frozen=True, slots=True)
class SimilarityScore:
    """SSIM/PSNR pair measured between two comparison clips."""

    ssim: float
    psnr_db: float
    ssim_measured: bool = True
    psnr_measured: bool = True

    @property
    def fallback_metrics(self) -> list[str]:
        missing: list[str] = []
        if not self.ssim_measured:
            missing.append("ssim")
        if not self.psnr_measured:
            missing.append("psnr")
        return missing


@dataclass(frozen=True, slots=True)
class Verdict:
    """Outcome of the quality/size decision policy."""

    preferred_path: Path
    reason: str
    path1: Path
    path2: Path
    ssim: float
    psnr_db: float
    codec1: str
    codec2: str
    size1: int
    size2: int
    score: SimilarityScore


@dataclass(frozen=True, slots=True)
class ResolutionVerdict:
    """Short-circuit outcome when the inputs differ in resolution."""

    preferred_path: Path
    descriptor1: MediaDescriptor
    descriptor2: MediaDescriptor


@dataclass(frozen=True, slots=True)
class ComparisonOutcome:
    file1: Path
    file2: Path
    descriptor1: MediaDescriptor
    descriptor2: MediaDescriptor
    verdict: Verdict | ResolutionVerdict
