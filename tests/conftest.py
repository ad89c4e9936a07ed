"""Shared pytest fixtures and configuration."""

from pathlib import Path

import ffmpeg
import pytest

from scene_composer.core.config import Settings
from scene_composer.core.errors import EncoderCancelled, EncoderError, ProbeFailed
from scene_composer.core.logging_config import get_logger
from scene_composer.services.ffmpeg_runner import FFmpegRunner


class FakeEngine:
    """
    Stands in for ffmpeg/ffprobe.

    ``run`` compiles the graph, records the command line, touches the output
    file and remembers the duration that ffmpeg would have produced, so later
    probes of that output return it. A set ``cancel_event`` aborts the call.
    ``probe_duration`` answers from ``durations`` (keyed by path string).
    """

    def __init__(self):
        self.durations: dict[str, float] = {}
        self.commands: list[tuple[str, list[str]]] = []
        self.fail_on: set[str] = set()

    def run(self, stream_spec, description, cancel_event=None):
        if cancel_event is not None and cancel_event.is_set():
            raise EncoderCancelled(f"{description} cancelled before start")
        args = ffmpeg.compile(stream_spec, overwrite_output=True)
        self.commands.append((description, args))
        if any(marker in description for marker in self.fail_on):
            raise EncoderError(f"{description} failed (ffmpeg exit code 1)", command=args, stderr="boom")

        output = Path(args[-2])
        output.write_bytes(b"fake media")

        if "-t" in args:
            self.durations[str(output)] = float(args[args.index("-t") + 1])
        elif "concat" in args:
            manifest = Path(args[args.index("-i") + 1]).read_text(encoding="utf-8")
            self.durations[str(output)] = sum(
                float(line.split()[1]) for line in manifest.splitlines() if line.startswith("duration ")
            )
        else:
            source = args[args.index("-i") + 1]
            self.durations[str(output)] = self.durations.get(source, 0.0)

    def probe_duration(self, path):
        try:
            return self.durations[str(path)]
        except KeyError:
            raise ProbeFailed(f"ffprobe failed for {path}") from None

    def commands_for(self, marker: str) -> list[list[str]]:
        return [args for description, args in self.commands if marker in description]


@pytest.fixture
def settings(tmp_path):
    """Create test settings instance with temp/output directories under tmp_path."""
    return Settings(
        temp_dir=str(tmp_path / "temp"),
        output_dir=str(tmp_path / "output"),
        max_parallel_scenes=2,
    )


@pytest.fixture
def logger():
    """Create test logger instance."""
    return get_logger(__name__)


@pytest.fixture
def engine():
    """Create a fake ffmpeg/ffprobe engine."""
    return FakeEngine()


@pytest.fixture
def runner(settings, logger, engine):
    """FFmpegRunner whose run/probe go to the fake engine (compile stays real)."""
    ffmpeg_runner = FFmpegRunner(settings, logger)
    ffmpeg_runner.run = engine.run
    ffmpeg_runner.probe_duration = engine.probe_duration
    return ffmpeg_runner


@pytest.fixture
def work_dir(tmp_path):
    """Job working directory."""
    directory = tmp_path / "work"
    directory.mkdir()
    return directory


@pytest.fixture
def media_dir(tmp_path):
    """Directory holding fake source media."""
    directory = tmp_path / "media"
    directory.mkdir()
    return directory


@pytest.fixture
def make_file(media_dir):
    """Create a placeholder media file and return its path."""

    def _make(name: str) -> Path:
        path = media_dir / name
        path.write_bytes(b"placeholder")
        return path

    return _make
