"""Duration Resolver - decides how long each scene's clip must be."""

import math
from typing import Any, Optional

from scene_composer.core.config import Settings
from scene_composer.core.errors import InvalidMediaDuration, ProbeFailed
from scene_composer.core.logging_config import scene_logger
from scene_composer.models.schemas import MediaType, ResolvedDurations, Scene
from scene_composer.services.ffmpeg_runner import FFmpegRunner


class DurationResolver:
    """
    Reconciles the three duration sources of a scene.

    Narration wins when present; otherwise the visual decides (a video's own
    length, or an image's declared/default display time).
    """

    def __init__(self, settings: Settings, logger: Any, runner: FFmpegRunner):
        """
        Initialize the duration resolver.

        Args:
            settings: Application settings
            logger: Logger instance
            runner: FFmpeg runner used for probing
        """
        self.settings = settings
        self.logger = logger
        self.runner = runner

    def resolve(self, scene: Scene) -> ResolvedDurations:
        """
        Resolve video, audio and final durations for a scene.

        Args:
            scene: Scene to resolve

        Returns:
            Resolved durations (final_duration is always > 0)

        Raises:
            InvalidMediaDuration: A required duration is unresolvable or not positive
        """
        log = scene_logger(self.logger, scene.scene_number)

        video_duration = self._resolve_video_duration(scene)
        audio_duration: Optional[float] = None

        if scene.has_audio:
            audio_duration = self._resolve_audio_duration(scene)
            final_duration = audio_duration
        else:
            final_duration = video_duration

        log.info(
            f"📏 Video: {video_duration:.2f}s | Audio: "
            f"{f'{audio_duration:.2f}s' if audio_duration is not None else 'none'} | Final: {final_duration:.2f}s"
        )

        return ResolvedDurations(
            video_duration=video_duration,
            audio_duration=audio_duration,
            final_duration=final_duration,
        )

    def _resolve_video_duration(self, scene: Scene) -> float:
        media = scene.media

        if media.type == MediaType.IMAGE:
            if _is_positive(media.duration):
                return float(media.duration)
            return self.settings.default_image_duration

        return self._probe(scene, media.path, "media")

    def _resolve_audio_duration(self, scene: Scene) -> float:
        # Multi-track narration plays back to back
        return sum(self._probe(scene, path, "audio") for path in scene.audio.paths)

    def _probe(self, scene: Scene, path: Any, kind: str) -> float:
        try:
            duration = self.runner.probe_duration(path)
        except ProbeFailed as e:
            raise InvalidMediaDuration(
                f"Could not determine {kind} duration of {path}: {e.message}",
                scene_number=scene.scene_number,
            ) from e

        if not _is_positive(duration):
            raise InvalidMediaDuration(
                f"Invalid {kind} duration {duration!r} for {path}", scene_number=scene.scene_number
            )
        return duration


def _is_positive(value: Any) -> bool:
    """True for finite numbers greater than zero."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return math.isfinite(value) and value > 0
