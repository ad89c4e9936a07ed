"""Scene Renderer - turns one scene into a fixed-geometry clip of the resolved duration."""

import os
import threading
from pathlib import Path
from typing import Any, Optional

import ffmpeg

from scene_composer.core.config import Settings
from scene_composer.core.errors import EncoderError, MediaFileMissing, SceneRenderFailed
from scene_composer.core.logging_config import scene_logger
from scene_composer.models.schemas import MediaType, RenderedScene, ResolvedDurations, Scene
from scene_composer.services.ffmpeg_runner import FFmpegRunner
from scene_composer.utils.io_utils import unique_artifact_path


class SceneRenderer:
    """
    Renders scene clips.

    Every clip is letterboxed to the canonical frame size, encoded with the
    canonical video/audio profile at a fixed frame rate, carries exactly one
    audio stream (narration or generated silence) and is cut at the scene's
    final duration by the encoder itself.
    """

    def __init__(self, settings: Settings, logger: Any, runner: FFmpegRunner):
        """
        Initialize the scene renderer.

        Args:
            settings: Application settings
            logger: Logger instance
            runner: FFmpeg runner
        """
        self.settings = settings
        self.logger = logger
        self.runner = runner

    # ------------------------------------------------------------------
    # Preconditions
    # ------------------------------------------------------------------

    def verify_inputs(self, scene: Scene) -> None:
        """
        Check that the scene's media and declared audio files are readable.

        Raises:
            MediaFileMissing: A file is absent or unreadable
        """
        log = scene_logger(self.logger, scene.scene_number)
        declared = [("media", scene.media.path)]
        if scene.has_audio:
            declared += [("audio", path) for path in scene.audio.paths]

        for kind, path in declared:
            path = Path(path)
            if not path.is_file() or not os.access(path, os.R_OK):
                log.warning(f"⚠️ File verification failed - {kind}: {path}")
                raise MediaFileMissing(f"{kind.capitalize()} file missing: {path}", scene_number=scene.scene_number)
            log.debug(f"✅ File verified - {kind}: {path} ({path.stat().st_size} bytes)")

    # ------------------------------------------------------------------
    # Graph construction
    # ------------------------------------------------------------------

    def build_strip_audio_command(self, video_path: Path, output_path: Path) -> Any:
        """Copy the video stream only, dropping any embedded audio."""
        return ffmpeg.input(str(video_path)).output(str(output_path), vcodec="copy", an=None)

    def build_command(
        self,
        scene: Scene,
        durations: ResolvedDurations,
        visual_path: Path,
        audio_path: Optional[Path],
        output_path: Path,
    ) -> Any:
        """
        Build the scene render graph.

        Args:
            scene: Scene being rendered
            durations: Resolved durations for the scene
            visual_path: Image or (audio-stripped) video to use as the picture
            audio_path: Normalized narration, or None for a silent clip
            output_path: Clip destination

        Returns:
            ffmpeg-python output node
        """
        settings = self.settings

        if scene.media.type == MediaType.IMAGE:
            # A still image is repeated forever; -t below ends it
            source = ffmpeg.input(str(visual_path), loop=1, framerate=settings.frame_rate)
        elif durations.needs_loop:
            source = ffmpeg.input(str(visual_path), stream_loop=-1)
        else:
            source = ffmpeg.input(str(visual_path))

        video = self.apply_canvas(source.video)

        if audio_path is not None:
            audio = ffmpeg.input(str(audio_path)).audio
        else:
            audio = ffmpeg.input(
                f"anullsrc=channel_layout={settings.audio_channel_layout}:sample_rate={settings.audio_sample_rate}",
                f="lavfi",
            ).audio

        return ffmpeg.output(
            video,
            audio,
            str(output_path),
            t=f"{durations.final_duration:.3f}",
            r=settings.frame_rate,
            vcodec=settings.video_codec,
            preset=settings.video_preset,
            crf=settings.video_crf,
            pix_fmt=settings.pixel_format,
            movflags="+faststart",
            acodec=settings.audio_codec,
            audio_bitrate=settings.audio_bitrate,
            ar=settings.audio_sample_rate,
            **{"profile:v": settings.video_profile, "level": settings.video_level},
        )

    def apply_canvas(self, video: Any) -> Any:
        """Scale to fit inside the canonical frame, then pad to it with a centered letterbox."""
        width, height = self.settings.video_width, self.settings.video_height
        return (
            video.filter("scale", width, height, force_original_aspect_ratio="decrease")
            .filter("pad", width, height, "(ow-iw)/2", "(oh-ih)/2")
            .filter("setsar", 1)
            .filter("format", self.settings.pixel_format)
        )

    # ------------------------------------------------------------------
    # Rendering
    # ------------------------------------------------------------------

    def strip_audio(
        self,
        video_path: Path,
        work_dir: Path,
        scene_number: int,
        cancel_event: Optional[threading.Event] = None,
    ) -> Path:
        """
        Write a video-only copy of a source video.

        Raises:
            SceneRenderFailed: ffmpeg failed
        """
        output_path = unique_artifact_path(work_dir, scene_number, "noaudio", "mp4")
        try:
            self.runner.run(
                self.build_strip_audio_command(video_path, output_path),
                f"Strip source audio (scene {scene_number})",
                cancel_event=cancel_event,
            )
        except EncoderError as e:
            raise SceneRenderFailed(f"Could not strip source audio: {e.message}", scene_number=scene_number) from e
        return output_path

    def render(
        self,
        scene: Scene,
        durations: ResolvedDurations,
        normalized_audio: Optional[Path],
        work_dir: Path,
        cancel_event: Optional[threading.Event] = None,
    ) -> RenderedScene:
        """
        Render one scene clip.

        Args:
            scene: Scene to render
            durations: Resolved durations
            normalized_audio: Output of the audio normalizer, or None for a silent scene
            work_dir: Job working directory
            cancel_event: Job-scoped cancellation event

        Returns:
            RenderedScene whose duration is the scene's final duration

        Raises:
            MediaFileMissing: Media vanished before rendering
            SceneRenderFailed: ffmpeg failed
        """
        log = scene_logger(self.logger, scene.scene_number)
        self.verify_inputs(scene)

        visual_path = Path(scene.media.path)
        if scene.media.type == MediaType.VIDEO and normalized_audio is not None:
            visual_path = self.strip_audio(visual_path, work_dir, scene.scene_number, cancel_event)

        if scene.media.type == MediaType.IMAGE:
            strategy = "loop still image"
        elif durations.needs_loop:
            strategy = f"loop-extend {durations.video_duration:.2f}s source"
        else:
            strategy = f"trim {durations.video_duration:.2f}s source"
        log.info(f"🎬 Rendering scene {scene.scene_number}: {strategy} to {durations.final_duration:.2f}s")

        output_path = unique_artifact_path(work_dir, scene.scene_number, "final", "mp4")
        try:
            self.runner.run(
                self.build_command(scene, durations, visual_path, normalized_audio, output_path),
                f"Render scene {scene.scene_number}",
                cancel_event=cancel_event,
            )
        except EncoderError as e:
            raise SceneRenderFailed(f"Scene encoding failed: {e.message}", scene_number=scene.scene_number) from e

        log.info(f"✅ Scene {scene.scene_number} rendered: {output_path.name}")
        return RenderedScene(
            scene_number=scene.scene_number,
            path=output_path,
            duration=durations.final_duration,
        )
