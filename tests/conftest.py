"""
Pytest fixtures for ayah-shorts tests.

Most tests run without ffmpeg: the executor is exercised against a small
Python script that speaks ffmpeg's ``-progress`` protocol.

CI/CD Note:
Tests that need real ffmpeg/ffprobe binaries are marked with
@requires_ffmpeg and skipped when the binaries are not on PATH.
"""

import shutil
import sys
import textwrap
from pathlib import Path

import pytest

from ayah_shorts.config import get_settings
from ayah_shorts.render.executor import FFmpegExecutor
from ayah_shorts.render.plan import RenderPlan


def pytest_configure(config):
    """Register custom markers for CI/CD test filtering."""
    config.addinivalue_line(
        "markers",
        "requires_ffmpeg: mark test as requiring ffmpeg/ffprobe binaries (skipped when missing)"
    )


requires_ffmpeg = pytest.mark.skipif(
    shutil.which("ffmpeg") is None or shutil.which("ffprobe") is None,
    reason="ffmpeg/ffprobe not available"
)


@pytest.fixture(autouse=True)
def isolated_settings(tmp_path: Path, monkeypatch):
    """Point output/work directories at tmp_path and reset the settings cache."""
    monkeypatch.setenv("RENDER_OUTPUT_DIR", str(tmp_path / "output"))
    monkeypatch.setenv("RENDER_WORK_DIR", str(tmp_path / "work"))
    get_settings.cache_clear()
    yield get_settings()
    get_settings.cache_clear()


@pytest.fixture
def temp_output_dir(tmp_path: Path) -> Path:
    """Directory for rendered files (created lazily by the executor)."""
    return tmp_path / "output"


@pytest.fixture
def source_files(tmp_path: Path) -> dict:
    """Placeholder background video and three ayah clips on disk."""
    src = tmp_path / "sources"
    src.mkdir()
    video = src / "background.mp4"
    video.write_bytes(b"video")
    audio = []
    for i in range(1, 4):
        path = src / f"001{i:03d}.mp3"
        path.write_bytes(b"audio")
        audio.append(str(path))
    return {"video": str(video), "audio": audio}


FAKE_FFMPEG_SCRIPT = textwrap.dedent(
    """
    import pathlib
    import sys
    import time

    mode, output, total_ms = sys.argv[1], sys.argv[2], int(sys.argv[3])

    def emit(line):
        sys.stdout.write(line + "\\n")
        sys.stdout.flush()

    if mode == "hang":
        pathlib.Path(output).write_bytes(b"partial")
        emit("out_time_us=0")
        emit("progress=continue")
        time.sleep(30)
        sys.exit(0)

    for ms in (0, total_ms // 4, total_ms // 2, total_ms // 2, 3 * total_ms // 4, total_ms):
        emit("frame=1")
        emit(f"out_time_us={ms * 1000}")
        emit("out_time=N/A")
        emit("progress=continue")

    if mode == "fail":
        pathlib.Path(output).write_bytes(b"partial")
        sys.stderr.write("x" * 2000 + "\\n")
        sys.stderr.write("Error while decoding stream #1:0: Invalid data found\\n")
        sys.stderr.flush()
        sys.exit(1)

    if mode != "no_output":
        pathlib.Path(output).write_bytes(b"fake mp4")
    emit("progress=end")
    """
)


class FakeFFmpegExecutor(FFmpegExecutor):
    """Executor that runs the fake ffmpeg script instead of ffmpeg."""

    def __init__(self, script: Path, mode: str = "ok", **kwargs):
        super().__init__(**kwargs)
        self.script = script
        self.mode = mode
        self.commands: list[list[str]] = []

    def build_command(self, plan: RenderPlan) -> list[str]:
        self.commands.append(super().build_command(plan))
        return [
            sys.executable,
            str(self.script),
            self.mode,
            plan.output_path,
            str(plan.expected_total_duration_ms),
        ]


@pytest.fixture
def fake_ffmpeg(tmp_path: Path):
    """Factory for FakeFFmpegExecutor: fake_ffmpeg("ok" | "fail" | "no_output" | "hang", **kwargs)."""
    script = tmp_path / "fake_ffmpeg.py"
    script.write_text(FAKE_FFMPEG_SCRIPT, encoding="utf-8")

    def make(mode: str = "ok", **kwargs) -> FakeFFmpegExecutor:
        return FakeFFmpegExecutor(script, mode, **kwargs)

    return make
