"""Duration Verifier - compares probed output durations against expectations (diagnostic only)."""

from pathlib import Path
from typing import Any, Optional

from scene_composer.core.config import Settings
from scene_composer.core.errors import ProbeFailed
from scene_composer.models.schemas import DurationCheck
from scene_composer.services.ffmpeg_runner import FFmpegRunner


class DurationVerifier:
    """Probes produced files and warns on duration drift. Never raises."""

    def __init__(self, settings: Settings, logger: Any, runner: FFmpegRunner):
        """
        Initialize the verifier.

        Args:
            settings: Application settings
            logger: Logger instance
            runner: FFmpeg runner used for probing
        """
        self.settings = settings
        self.logger = logger
        self.runner = runner

    def verify(self, path: Path, expected: float, tolerance: Optional[float] = None) -> DurationCheck:
        """
        Probe ``path`` and compare with ``expected``.

        Args:
            path: File to probe
            expected: Expected duration in seconds
            tolerance: Allowed deviation (defaults to the per-scene tolerance)

        Returns:
            DurationCheck (``actual`` is None when probing failed)
        """
        if tolerance is None:
            tolerance = self.settings.scene_duration_tolerance

        try:
            actual: Optional[float] = self.runner.probe_duration(path)
        except ProbeFailed as e:
            self.logger.warning(f"⚠️ Could not verify duration of {path}: {e.message}")
            actual = None

        check = DurationCheck(path=Path(path), expected=expected, actual=actual, tolerance=tolerance)

        if actual is not None:
            self.logger.info(f"📊 Duration check - Expected: {expected:.2f}s, Actual: {actual:.2f}s")
            warning = self.warning_for(check)
            if warning:
                self.logger.warning(f"⚠️ {warning}")

        return check

    def verify_scene(self, path: Path, expected: float) -> DurationCheck:
        return self.verify(path, expected, self.settings.scene_duration_tolerance)

    def verify_timeline(self, path: Path, expected: float) -> DurationCheck:
        return self.verify(path, expected, self.settings.timeline_duration_tolerance)

    @staticmethod
    def warning_for(check: DurationCheck) -> Optional[str]:
        """Describe a mismatch, or return None when the check passed or could not run."""
        if check.actual is None or check.within_tolerance:
            return None
        return (
            f"Duration mismatch for {check.path.name}: expected {check.expected:.2f}s, "
            f"got {check.actual:.2f}s (tolerance {check.tolerance:.2f}s)"
        )
