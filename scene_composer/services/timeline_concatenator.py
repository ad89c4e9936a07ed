"""Timeline Concatenator - joins rendered scene clips into the final video."""

import threading
from pathlib import Path
from typing import Any, Optional, Sequence

import ffmpeg

from scene_composer.core.config import Settings
from scene_composer.core.errors import ConcatenationFailed, EncoderError, NoRenderableScenes, ProbeFailed
from scene_composer.models.schemas import DurationCheck, RenderedScene
from scene_composer.services.duration_verifier import DurationVerifier
from scene_composer.services.ffmpeg_runner import FFmpegRunner
from scene_composer.utils.io_utils import ensure_dir, quote_concat_path


class TimelineConcatenator:
    """Builds a concat manifest from probed clip durations and re-encodes it into one file."""

    MANIFEST_NAME = "concat.txt"

    def __init__(self, settings: Settings, logger: Any, runner: FFmpegRunner, verifier: DurationVerifier):
        """
        Initialize the concatenator.

        Args:
            settings: Application settings
            logger: Logger instance
            runner: FFmpeg runner
            verifier: Verifier run against the final video
        """
        self.settings = settings
        self.logger = logger
        self.runner = runner
        self.verifier = verifier

    @staticmethod
    def build_manifest(entries: Sequence[tuple[Path, float]]) -> str:
        """
        Render a concat-demuxer manifest.

        Args:
            entries: (clip path, probed duration) pairs in timeline order

        Returns:
            Manifest text with one ``file``/``duration`` pair per clip
        """
        lines = []
        for path, duration in entries:
            lines.append(f"file {quote_concat_path(path)}")
            lines.append(f"duration {duration:.6f}")
        return "\n".join(lines) + "\n"

    def build_command(self, manifest_path: Path, output_path: Path) -> Any:
        """Build the re-encoding concat graph with the canonical codec profile."""
        settings = self.settings
        return ffmpeg.input(str(manifest_path), f="concat", safe=0).output(
            str(output_path),
            vcodec=settings.video_codec,
            preset=settings.video_preset,
            crf=settings.video_crf,
            pix_fmt=settings.pixel_format,
            r=settings.frame_rate,
            movflags="+faststart",
            acodec=settings.audio_codec,
            audio_bitrate=settings.audio_bitrate,
            ar=settings.audio_sample_rate,
        )

    def concatenate(
        self,
        rendered_scenes: Sequence[RenderedScene],
        work_dir: Path,
        output_path: Path,
        cancel_event: Optional[threading.Event] = None,
    ) -> tuple[Path, DurationCheck]:
        """
        Join scene clips in scene-number order.

        Args:
            rendered_scenes: Successful scene clips (any order)
            work_dir: Job working directory (receives the manifest)
            output_path: Final video destination
            cancel_event: Job-scoped cancellation event

        Returns:
            (final video path, verifier result against the sum of clip durations)

        Raises:
            NoRenderableScenes: Nothing to join
            ConcatenationFailed: Probing a clip or encoding the timeline failed
        """
        if not rendered_scenes:
            raise NoRenderableScenes("No rendered scenes to concatenate")

        ordered = sorted(rendered_scenes, key=lambda scene: scene.scene_number)
        self.logger.info(f"🔄 Combining {len(ordered)} scenes into final video")

        entries = []
        for scene in ordered:
            try:
                entries.append((scene.path, self.runner.probe_duration(scene.path)))
            except ProbeFailed as e:
                raise ConcatenationFailed(f"Could not probe scene {scene.scene_number} clip: {e.message}") from e

        manifest_path = work_dir / self.MANIFEST_NAME
        manifest_path.write_text(self.build_manifest(entries), encoding="utf-8")
        self.logger.debug(f"📝 Concat manifest: {manifest_path}")

        expected_duration = sum(duration for _, duration in entries)
        ensure_dir(output_path.parent)

        try:
            self.runner.run(
                self.build_command(manifest_path, output_path),
                "Timeline concatenation",
                cancel_event=cancel_event,
            )
        except EncoderError as e:
            raise ConcatenationFailed(f"Timeline concatenation failed: {e.message}") from e

        self.logger.info(f"✅ Final video created: {output_path}")
        check = self.verifier.verify_timeline(output_path, expected_duration)
        return output_path, check
