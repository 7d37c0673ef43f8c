from __future__ import annotations

from pathlib import Path

import pytest

from factories import make_descriptor, tool_result
from video_compare.config import TranscodeSettings
from video_compare.ingest import clips
from video_compare.ingest.clips import compute_window, extract_pair
from video_compare.models import ComparisonWindow


def test_compute_window_uses_shortest_duration_minus_margin() -> None:
    window = compute_window(
        make_descriptor("a.mp4", duration_seconds=30.0),
        make_descriptor("b.mp4", duration_seconds=25.0),
        lead_in_seconds=2.0,
        margin_seconds=4.0,
    )

    assert window == ComparisonWindow(start_seconds=2.0, length_seconds=21.0)


@pytest.mark.parametrize(("duration1", "duration2"), [(4.0, 4.0), (3.0, 60.0), (0.0, 0.0)])
def test_compute_window_rejects_non_positive_length(duration1: float, duration2: float) -> None:
    with pytest.raises(ValueError, match="too short to compare"):
        compute_window(
            make_descriptor("a.mp4", duration_seconds=duration1),
            make_descriptor("b.mp4", duration_seconds=duration2),
        )


def _writing_transcoder(commands: list[list[str]], fail_on: int | None = None):
    def _run(command: list[str], **_: object):
        commands.append(command)
        if fail_on is not None and len(commands) == fail_on:
            return tool_result(command, stderr="Error while opening encoder\n", returncode=1)
        Path(command[-1]).write_bytes(b"clip")
        return tool_result(command)

    return _run


def test_extract_pair_cuts_both_files_over_same_window(tmp_path: Path, monkeypatch, toolchain) -> None:
    first = make_descriptor("a.mp4", directory=tmp_path)
    second = make_descriptor("b.mkv", directory=tmp_path)
    window = ComparisonWindow(start_seconds=2.0, length_seconds=21.0)
    commands: list[list[str]] = []
    monkeypatch.setattr(clips, "run_tool", _writing_transcoder(commands))

    with extract_pair(first, second, window, toolchain, TranscodeSettings(crf=12), temp_dir=tmp_path) as (clip1, clip2):
        assert clip1.source_path == first.path
        assert clip2.source_path == second.path
        assert clip1.path.exists() and clip2.path.exists()
        assert clip1.path != clip2.path
        assert clip1.path.suffix == ".mp4"

    assert not clip1.path.exists()
    assert not clip2.path.exists()
    assert list(tmp_path.iterdir()) == []

    assert len(commands) == 2
    for command, descriptor in zip(commands, (first, second)):
        assert command[command.index("-ss") + 1] == "2.000"
        assert command[command.index("-t") + 1] == "21.000"
        assert command[command.index("-i") + 1] == str(descriptor.path)
        assert "-an" in command
        assert command[command.index("-c:v") + 1] == "libx264"
        assert command[command.index("-crf") + 1] == "12"


def test_extract_pair_removes_each_clip_exactly_once_on_error(tmp_path: Path, monkeypatch, toolchain) -> None:
    window = ComparisonWindow(start_seconds=2.0, length_seconds=10.0)
    commands: list[list[str]] = []
    removed: list[Path] = []
    original_remove = clips._remove_clip

    def _counting_remove(path: Path) -> None:
        removed.append(path)
        original_remove(path)

    monkeypatch.setattr(clips, "run_tool", _writing_transcoder(commands))
    monkeypatch.setattr(clips, "_remove_clip", _counting_remove)

    with pytest.raises(RuntimeError, match="measurement blew up"):
        with extract_pair(make_descriptor("a.mp4"), make_descriptor("b.mp4"), window, toolchain, temp_dir=tmp_path):
            raise RuntimeError("measurement blew up")

    assert len(removed) == 2
    assert len(set(removed)) == 2
    assert list(tmp_path.iterdir()) == []


def test_extract_pair_surfaces_transcode_failure_and_cleans_up(tmp_path: Path, monkeypatch, toolchain) -> None:
    window = ComparisonWindow(start_seconds=2.0, length_seconds=10.0)
    commands: list[list[str]] = []
    removed: list[Path] = []
    original_remove = clips._remove_clip

    def _counting_remove(path: Path) -> None:
        removed.append(path)
        original_remove(path)

    monkeypatch.setattr(clips, "run_tool", _writing_transcoder(commands, fail_on=2))
    monkeypatch.setattr(clips, "_remove_clip", _counting_remove)

    with pytest.raises(RuntimeError, match="ffmpeg failed to cut comparison clip.*Error while opening encoder"):
        with extract_pair(make_descriptor("a.mp4"), make_descriptor("b.mp4"), window, toolchain, temp_dir=tmp_path):
            pytest.fail("block must not run when a clip cannot be cut")

    assert len(commands) == 2
    assert len(removed) == 2
    assert list(tmp_path.iterdir()) == []
