from __future__ import annotations

from video_compare.models import MediaDescriptor, ResolutionVerdict, SimilarityScore, Verdict

QUALITY_SSIM_THRESHOLD = 0.98
QUALITY_PSNR_THRESHOLD = 35.0
FALLBACK_SSIM_THRESHOLD = 0.99

CODEC_PRIORITY = {
    "av1": 4,
    "hevc": 3,
    "vp9": 3,
    "h264": 2,
}
UNKNOWN_CODEC_PRIORITY = 1


def codec_priority(codec: str) -> int:
    """Rank a codec identifier; higher means more modern/efficient."""

    return CODEC_PRIORITY.get(codec, UNKNOWN_CODEC_PRIORITY)


def resolutions_match(descriptor1: MediaDescriptor, descriptor2: MediaDescriptor) -> bool:
    return (descriptor1.width, descriptor1.height) == (descriptor2.width, descriptor2.height)


def decide_by_resolution(descriptor1: MediaDescriptor, descriptor2: MediaDescriptor) -> ResolutionVerdict:
    """Prefer the file with the larger pixel area; equal areas go to the second file."""

    preferred = descriptor1 if descriptor1.pixel_area > descriptor2.pixel_area else descriptor2
    return ResolutionVerdict(
        preferred_path=preferred.path,
        descriptor1=descriptor1,
        descriptor2=descriptor2,
    )


def passes_quality_gate(score: SimilarityScore) -> bool:
    return score.ssim > QUALITY_SSIM_THRESHOLD and score.psnr_db > QUALITY_PSNR_THRESHOLD


def decide(descriptor1: MediaDescriptor, descriptor2: MediaDescriptor, score: SimilarityScore) -> Verdict:
    """Pick the preferred file from similarity, codec and size.

    When both metrics say the encodes look the same, efficiency decides: the
    smaller file for equal codecs, otherwise the higher-priority codec. Ties go
    to the first file. Below that band only raw SSIM is consulted.
    """

    if passes_quality_gate(score):
        if descriptor1.codec == descriptor2.codec:
            first_wins = descriptor1.size_bytes <= descriptor2.size_bytes
            reason = "equivalent quality and codec; smaller file preferred"
        else:
            first_wins = codec_priority(descriptor1.codec) >= codec_priority(descriptor2.codec)
            reason = "equivalent quality; more efficient codec preferred"
    else:
        first_wins = score.ssim >= FALLBACK_SSIM_THRESHOLD
        reason = (
            f"quality not equivalent; SSIM {'>=' if first_wins else '<'} "
            f"{FALLBACK_SSIM_THRESHOLD} decides"
        )

    preferred = descriptor1 if first_wins else descriptor2
    return Verdict(
        preferred_path=preferred.path,
        reason=reason,
        path1=descriptor1.path,
        path2=descriptor2.path,
        ssim=score.ssim,
        psnr_db=score.psnr_db,
        codec1=descriptor1.codec,
        codec2=descriptor2.codec,
        size1=descriptor1.size_bytes,
        size2=descriptor2.size_bytes,
        score=score,
    )
