"""FFmpeg Runner - blocking, cancellable ffmpeg/ffprobe invocations built with ffmpeg-python."""

import math
import subprocess
import threading
import time
from pathlib import Path
from typing import Any, Optional

import ffmpeg

from scene_composer.core.config import Settings
from scene_composer.core.errors import EncoderCancelled, EncoderError, ProbeFailed


class FFmpegRunner:
    """
    Runs ffmpeg graphs to completion from the calling thread.

    Each call either returns (exit code 0), raises ``EncoderError`` (non-zero
    exit or missing binary), or raises ``EncoderCancelled`` (cancel event set or
    per-invocation timeout elapsed; the process is killed first).
    """

    POLL_INTERVAL_SECONDS = 0.25

    def __init__(self, settings: Settings, logger: Any, cancel_event: Optional[threading.Event] = None):
        """
        Initialize the runner.

        Args:
            settings: Application settings
            logger: Logger instance
            cancel_event: Process-wide shutdown event; once set, every invocation is aborted
        """
        self.settings = settings
        self.logger = logger
        self.cancel_event = cancel_event or threading.Event()

    @staticmethod
    def _detach_stdin(stream_spec: Any) -> Any:
        # ffmpeg otherwise reads the parent's stdin for interactive commands
        return stream_spec.global_args("-nostdin")

    def compile(self, stream_spec: Any) -> list[str]:
        """Return the full ffmpeg command line for a stream spec (outputs always overwritten)."""
        return ffmpeg.compile(
            self._detach_stdin(stream_spec), cmd=self.settings.ffmpeg_binary, overwrite_output=True
        )

    def is_cancelled(self, cancel_event: Optional[threading.Event] = None) -> bool:
        """True when the runner-wide event or the caller's job event is set."""
        return self.cancel_event.is_set() or (cancel_event is not None and cancel_event.is_set())

    def run(self, stream_spec: Any, description: str, cancel_event: Optional[threading.Event] = None) -> None:
        """
        Run an ffmpeg graph and wait for it.

        Args:
            stream_spec: ffmpeg-python output node
            description: Human-readable label used in logs and errors
            cancel_event: Job-scoped event; when set, this invocation is aborted

        Raises:
            EncoderCancelled: Cancelled or timed out
            EncoderError: ffmpeg missing or exited non-zero
        """
        command = self.compile(stream_spec)
        self.logger.debug(f"🎞️ {description}: {' '.join(command)}")

        if self.is_cancelled(cancel_event):
            raise EncoderCancelled(f"{description} cancelled before start", command=command)

        try:
            process = ffmpeg.run_async(
                self._detach_stdin(stream_spec),
                cmd=self.settings.ffmpeg_binary,
                pipe_stdout=True,
                pipe_stderr=True,
                overwrite_output=True,
            )
        except OSError as e:
            raise EncoderError(f"{description}: could not start ffmpeg ({e})", command=command) from e

        timeout = self.settings.ffmpeg_timeout_seconds
        start_time = time.monotonic()

        while True:
            try:
                _, stderr = process.communicate(timeout=self.POLL_INTERVAL_SECONDS)
                break
            except subprocess.TimeoutExpired:
                if self.is_cancelled(cancel_event):
                    reason = "cancelled"
                elif timeout and time.monotonic() - start_time > timeout:
                    reason = f"timed out after {timeout:.0f}s"
                else:
                    continue
                process.kill()
                _, stderr = process.communicate()
                self.logger.warning(f"⏹️ {description} {reason}")
                raise EncoderCancelled(
                    f"{description} {reason}", command=command, stderr=_decode(stderr)
                )

        elapsed = time.monotonic() - start_time
        if process.returncode != 0:
            error = EncoderError(
                f"{description} failed (ffmpeg exit code {process.returncode})",
                command=command,
                stderr=_decode(stderr),
            )
            self.logger.error(f"❌ {error}\n{error.stderr_tail}")
            raise error

        self.logger.debug(f"✅ {description} finished in {elapsed:.2f}s")

    def probe_duration(self, path: Path) -> float:
        """
        Probe a media file's duration in seconds.

        Uses the container duration, falling back to the longest stream.

        Raises:
            ProbeFailed: ffprobe failed or no numeric duration was reported
        """
        try:
            info = ffmpeg.probe(str(path), cmd=self.settings.ffprobe_binary)
        except ffmpeg.Error as e:
            raise ProbeFailed(
                f"ffprobe failed for {path}",
                command=[self.settings.ffprobe_binary, str(path)],
                stderr=_decode(e.stderr),
            ) from e
        except OSError as e:
            raise ProbeFailed(f"could not start ffprobe for {path} ({e})") from e

        duration = _to_seconds(info.get("format", {}).get("duration"))
        if duration is None:
            stream_durations = [_to_seconds(stream.get("duration")) for stream in info.get("streams", [])]
            stream_durations = [d for d in stream_durations if d is not None]
            duration = max(stream_durations) if stream_durations else None

        if duration is None:
            raise ProbeFailed(f"no duration reported for {path}")

        self.logger.debug(f"📏 {Path(path).name}: {duration:.3f}s")
        return duration


def _to_seconds(value: Any) -> Optional[float]:
    try:
        seconds = float(value)
    except (TypeError, ValueError):
        return None
    return seconds if math.isfinite(seconds) else None


def _decode(data: Optional[bytes]) -> str:
    if not data:
        return ""
    return data.decode("utf-8", errors="replace")
