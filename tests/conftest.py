from __future__ import annotations

import pytest

from video_compare.tooling import Toolchain


@pytest.fixture
def toolchain() -> Toolchain:
    return Toolchain(ffmpeg="ffmpeg", ffprobe="ffprobe", timeout_seconds=5)
