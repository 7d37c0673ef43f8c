from __future__ import annotations

import math
from pathlib import Path

import pytest

from factories import tool_result
from video_compare.features import similarity
from video_compare.features.similarity import extract_labeled_float, measure, parse_psnr, parse_ssim
from video_compare.models import ComparisonClip

SSIM_STDERR = (
    "[Parsed_ssim_0 @ 0x5581] SSIM Y:0.993401 (21.808) U:0.989120 (19.634) "
    "V:0.990007 (20.003) All:0.991200 (20.555)\n"
)
PSNR_STDERR = (
    "[Parsed_psnr_0 @ 0x5581] PSNR y:39.655321 u:43.632549 v:46.817613 "
    "average:38.27 min:27.646195 max:47.225387\n"
)


def _clips(tmp_path: Path) -> tuple[ComparisonClip, ComparisonClip]:
    return (
        ComparisonClip(path=tmp_path / "c1.mp4", source_path=tmp_path / "a.mp4"),
        ComparisonClip(path=tmp_path / "c2.mp4", source_path=tmp_path / "b.mp4"),
    )


def test_parse_ssim_takes_aggregate_all_value() -> None:
    assert parse_ssim("noise ... All:0.9912 ...") == pytest.approx(0.9912)
    assert parse_ssim(SSIM_STDERR) == pytest.approx(0.9912)


def test_parse_psnr_takes_average_value() -> None:
    assert parse_psnr("... average:38.27 dB ...") == pytest.approx(38.27)
    assert parse_psnr(PSNR_STDERR) == pytest.approx(38.27)


def test_parse_psnr_accepts_infinity_for_identical_clips() -> None:
    assert math.isinf(parse_psnr("PSNR y:inf u:inf v:inf average:inf min:inf max:inf"))


def test_extract_labeled_float_returns_first_match() -> None:
    text = "frame 1 All:0.5000\nframe 2 All:0.7000\n"
    assert extract_labeled_float(text, "All") == pytest.approx(0.5)


def test_extract_labeled_float_ignores_longer_labels() -> None:
    assert extract_labeled_float("moving_average:12.5", "average") is None


def test_extract_labeled_float_returns_none_without_token() -> None:
    assert extract_labeled_float("Conversion failed!", "All") is None
    assert parse_ssim("") is None


def test_measure_runs_both_filters_over_same_clips(tmp_path: Path, monkeypatch, toolchain) -> None:
    clip1, clip2 = _clips(tmp_path)
    commands: list[list[str]] = []

    def _fake_run_tool(command: list[str], **_: object):
        commands.append(command)
        if "[0:v][1:v]ssim" in command:
            return tool_result(command, stderr=SSIM_STDERR)
        return tool_result(command, stderr=PSNR_STDERR)

    monkeypatch.setattr(similarity, "run_tool", _fake_run_tool)

    score = measure(clip1, clip2, toolchain)

    assert score.ssim == pytest.approx(0.9912)
    assert score.psnr_db == pytest.approx(38.27)
    assert score.fallback_metrics == []
    assert len(commands) == 2
    for command in commands:
        assert command[command.index("-i") + 1] == str(clip1.path)
        assert str(clip2.path) in command
        assert command[-3:] == ["-f", "null", "-"]


def test_measure_scores_missing_metric_as_zero_and_flags_it(tmp_path: Path, monkeypatch, toolchain) -> None:
    clip1, clip2 = _clips(tmp_path)

    def _fake_run_tool(command: list[str], **_: object):
        if "[0:v][1:v]ssim" in command:
            return tool_result(command, stderr=SSIM_STDERR)
        return tool_result(command, stderr="Error initializing filter 'psnr'", returncode=1)

    monkeypatch.setattr(similarity, "run_tool", _fake_run_tool)

    score = measure(clip1, clip2, toolchain)

    assert score.ssim == pytest.approx(0.9912)
    assert score.psnr_db == 0.0
    assert score.psnr_measured is False
    assert score.fallback_metrics == ["psnr"]


def test_measure_reads_metrics_from_stdout_too(tmp_path: Path, monkeypatch, toolchain) -> None:
    clip1, clip2 = _clips(tmp_path)

    def _fake_run_tool(command: list[str], **_: object):
        if "[0:v][1:v]ssim" in command:
            return tool_result(command, stdout=SSIM_STDERR)
        return tool_result(command, stdout=PSNR_STDERR)

    monkeypatch.setattr(similarity, "run_tool", _fake_run_tool)

    score = measure(clip1, clip2, toolchain)

    assert score.fallback_metrics == []
