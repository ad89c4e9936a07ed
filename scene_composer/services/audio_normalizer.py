"""Audio Normalizer - loudness-normalizes and pads a scene's narration."""

import math
import threading
from pathlib import Path
from typing import Any, Optional, Sequence

import ffmpeg

from scene_composer.core.config import Settings
from scene_composer.core.errors import AudioNormalizationFailed, EncoderError
from scene_composer.core.logging_config import scene_logger
from scene_composer.services.ffmpeg_runner import FFmpegRunner
from scene_composer.utils.io_utils import unique_artifact_path


class AudioNormalizer:
    """Produces one loudness-normalized narration file at least as long as the scene."""

    def __init__(self, settings: Settings, logger: Any, runner: FFmpegRunner):
        """
        Initialize the audio normalizer.

        Args:
            settings: Application settings
            logger: Logger instance
            runner: FFmpeg runner
        """
        self.settings = settings
        self.logger = logger
        self.runner = runner

    def build_command(self, audio_paths: Sequence[Path], target_duration: float, output_path: Path) -> Any:
        """
        Build the normalization graph.

        Tracks are decoded as separate inputs, resampled to the canonical
        format, joined in order, normalized with ``loudnorm`` and padded with
        silence (``apad``); the output is capped at the target duration.

        Args:
            audio_paths: Narration tracks in playback order
            target_duration: Scene duration in seconds
            output_path: Where to write the normalized track

        Returns:
            ffmpeg-python output node
        """
        tracks = [
            ffmpeg.input(str(path)).audio.filter(
                "aformat",
                sample_rates=self.settings.audio_sample_rate,
                channel_layouts=self.settings.audio_channel_layout,
            )
            for path in audio_paths
        ]
        audio = tracks[0] if len(tracks) == 1 else ffmpeg.concat(*tracks, v=0, a=1)

        audio = audio.filter(
            "loudnorm",
            I=self.settings.loudness_integrated,
            LRA=self.settings.loudness_range,
            TP=self.settings.loudness_true_peak,
        ).filter("apad")

        return ffmpeg.output(
            audio,
            str(output_path),
            t=f"{target_duration:.3f}",
            acodec=self.settings.audio_codec,
            audio_bitrate=self.settings.audio_bitrate,
            ar=self.settings.audio_sample_rate,
        )

    def normalize(
        self,
        audio_paths: Sequence[Path],
        target_duration: Any,
        work_dir: Path,
        scene_number: Optional[int] = None,
        cancel_event: Optional[threading.Event] = None,
    ) -> Path:
        """
        Normalize and pad narration for one scene.

        Args:
            audio_paths: Narration tracks in playback order
            target_duration: Scene duration in seconds (must be finite and > 0)
            work_dir: Job working directory
            scene_number: Owning scene, for naming and logs
            cancel_event: Job-scoped cancellation event

        Returns:
            Path to the normalized audio file

        Raises:
            AudioNormalizationFailed: Invalid target duration, no tracks, or ffmpeg failure
        """
        log = scene_logger(self.logger, scene_number if scene_number is not None else "-")

        try:
            target = float(target_duration)
        except (TypeError, ValueError):
            target = math.nan
        if not math.isfinite(target) or target <= 0:
            raise AudioNormalizationFailed(
                f"Invalid target duration for audio normalization: {target_duration!r}",
                scene_number=scene_number,
            )
        if not audio_paths:
            raise AudioNormalizationFailed("No audio tracks to normalize", scene_number=scene_number)

        output_path = unique_artifact_path(work_dir, scene_number or 0, "normalized_audio", "m4a")
        log.info(f"🎵 Normalizing {len(audio_paths)} audio track(s) to {target:.2f}s")

        try:
            self.runner.run(
                self.build_command(audio_paths, target, output_path),
                f"Audio normalization (scene {scene_number})",
                cancel_event=cancel_event,
            )
        except EncoderError as e:
            raise AudioNormalizationFailed(
                f"Audio normalization failed: {e.message}", scene_number=scene_number
            ) from e

        log.info("✅ Audio normalization complete")
        return output_path
