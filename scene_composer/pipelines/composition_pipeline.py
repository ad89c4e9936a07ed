"""Composition pipeline orchestrator - scenes → per-scene clips → final timeline."""

import shutil
import threading
from functools import partial
from pathlib import Path
from typing import Any, Optional

from scene_composer.core.config import Settings
from scene_composer.core.errors import ConcatenationFailed, NoRenderableScenes
from scene_composer.core.logging_config import scene_logger
from scene_composer.models.schemas import (
    CompositionJob,
    DurationCheck,
    JobResult,
    JobState,
    OutputMode,
    RenderedScene,
    Scene,
    SceneFailure,
)
from scene_composer.services.audio_normalizer import AudioNormalizer
from scene_composer.services.duration_resolver import DurationResolver
from scene_composer.services.duration_verifier import DurationVerifier
from scene_composer.services.ffmpeg_runner import FFmpegRunner
from scene_composer.services.scene_renderer import SceneRenderer
from scene_composer.services.timeline_concatenator import TimelineConcatenator
from scene_composer.utils.error_handler import format_error_message, get_fallback_suggestion
from scene_composer.utils.io_utils import create_job_work_dir, ensure_dir, slugify
from scene_composer.utils.parallel_executor import ParallelExecutor


class CompositionPipeline:
    """
    Runs a composition job.

    Scenes are rendered concurrently, each through resolve → normalize →
    render → verify. A failing scene is logged and dropped; the job fails only
    when no scene renders or when the final concatenation fails.

    Collaborators are injected; any that are omitted are built from
    ``settings`` around a single shared ``FFmpegRunner``. Each running job
    owns a cancellation event, so cancelling one job leaves later jobs and
    concurrent jobs on the same pipeline untouched.
    """

    def __init__(
        self,
        settings: Settings,
        logger: Any,
        runner: Optional[FFmpegRunner] = None,
        resolver: Optional[DurationResolver] = None,
        normalizer: Optional[AudioNormalizer] = None,
        renderer: Optional[SceneRenderer] = None,
        verifier: Optional[DurationVerifier] = None,
        concatenator: Optional[TimelineConcatenator] = None,
        executor: Optional[ParallelExecutor] = None,
    ):
        self.settings = settings
        self.logger = logger
        self.runner = runner or FFmpegRunner(settings, logger)
        self.resolver = resolver or DurationResolver(settings, logger, self.runner)
        self.normalizer = normalizer or AudioNormalizer(settings, logger, self.runner)
        self.renderer = renderer or SceneRenderer(settings, logger, self.runner)
        self.verifier = verifier or DurationVerifier(settings, logger, self.runner)
        self.concatenator = concatenator or TimelineConcatenator(settings, logger, self.runner, self.verifier)
        self.executor = executor or ParallelExecutor(settings, logger)
        self._active_jobs: dict[str, list[threading.Event]] = {}
        self._jobs_lock = threading.Lock()

    def cancel(self, job_id: Optional[str] = None) -> bool:
        """
        Abort the ffmpeg invocations of a running job; affected scenes are dropped.

        Args:
            job_id: Job to cancel, or None for every job currently running

        Returns:
            True when at least one running job was signalled
        """
        with self._jobs_lock:
            if job_id is None:
                events = [event for job_events in self._active_jobs.values() for event in job_events]
            else:
                events = list(self._active_jobs.get(job_id, []))
        if not events:
            self.logger.warning(f"No running job to cancel ({job_id or 'all'})")
            return False

        self.logger.warning(f"⏹️ Cancellation requested ({job_id or 'all jobs'})")
        for event in events:
            event.set()
        return True

    def _register(self, job_id: str) -> threading.Event:
        event = threading.Event()
        with self._jobs_lock:
            self._active_jobs.setdefault(job_id, []).append(event)
        return event

    def _unregister(self, job_id: str, event: threading.Event) -> None:
        with self._jobs_lock:
            events = self._active_jobs.get(job_id, [])
            if event in events:
                events.remove(event)
            if not events:
                self._active_jobs.pop(job_id, None)

    def run(self, job: CompositionJob) -> JobResult:
        """
        Run a job to completion.

        Args:
            job: Scenes to compose

        Returns:
            JobResult in state COMPLETED or PARTIALLY_FAILED

        Raises:
            NoRenderableScenes: Every scene failed
            ConcatenationFailed: Scenes rendered but could not be joined
        """
        log = self.logger.bind(job_id=job.job_id)
        mode = job.mode or OutputMode(self.settings.output_mode)
        state = self._transition(log, JobState.CREATED)

        output_dir = ensure_dir(self.settings.output_dir)
        work_dir = create_job_work_dir(self.settings.temp_dir, job.job_id)
        cancel_event = self._register(job.job_id)
        log.info(f"🎬 Starting job {job.job_id}: {len(job.scenes)} scenes, mode={mode.value}")

        try:
            state = self._transition(log, JobState.RENDERING, state)
            rendered, failures = self._render_all(job.ordered_scenes(), work_dir, log, cancel_event)
            warnings = [
                warning
                for warning in (self._scene_warning(scene) for scene in rendered)
                if warning
            ]

            if not rendered:
                self._transition(log, JobState.FAILED, state)
                error = NoRenderableScenes(
                    f"No scenes rendered successfully (dropped: {[f.scene_number for f in failures]})",
                    job_id=job.job_id,
                    failures=failures,
                )
                log.error(format_error_message("Composition job", error, suggestion=get_fallback_suggestion(error)))
                raise error

            output_path: Optional[Path] = None
            output_duration: Optional[float] = None

            if mode == OutputMode.CONCATENATE:
                state = self._transition(log, JobState.CONCATENATING, state)
                name = slugify(job.output_name) if job.output_name else ""
                output_path = output_dir / f"{name or f'video_{job.job_id}'}.mp4"
                try:
                    output_path, check = self.concatenator.concatenate(
                        rendered, work_dir, output_path, cancel_event
                    )
                except ConcatenationFailed as e:
                    self._transition(log, JobState.FAILED, state)
                    e.job_id = job.job_id
                    log.error(format_error_message("Timeline concatenation", e, suggestion=get_fallback_suggestion(e)))
                    raise
                output_duration = check.actual
                timeline_warning = self.verifier.warning_for(check)
                if timeline_warning:
                    warnings.append(timeline_warning)
            else:
                rendered = self._publish_scene_clips(job.job_id, rendered, output_dir, log)

            dropped = sorted(failure.scene_number for failure in failures)
            final_state = JobState.PARTIALLY_FAILED if dropped else JobState.COMPLETED
            result = JobResult(
                job_id=job.job_id,
                state=final_state,
                mode=mode,
                output_path=output_path,
                output_duration=output_duration,
                rendered_scenes=rendered,
                dropped_scenes=dropped,
                failures=failures,
                warnings=warnings,
            )
            self._transition(log, result.state, state)
            if result.is_partial:
                log.warning(f"⚠️ Job finished without scenes {result.dropped_scenes}")
            return result
        finally:
            self._unregister(job.job_id, cancel_event)
            self._cleanup(work_dir, log)

    # ------------------------------------------------------------------
    # Scene fan-out
    # ------------------------------------------------------------------

    def _render_all(
        self, scenes: list[Scene], work_dir: Path, log: Any, cancel_event: threading.Event
    ) -> tuple[list[RenderedScene], list[SceneFailure]]:
        tasks = [partial(self.render_scene, scene, work_dir, cancel_event) for scene in scenes]
        outcomes = self.executor.execute_batch(
            tasks,
            task_names=[f"scene_{scene.scene_number}" for scene in scenes],
            max_workers=self.settings.max_parallel_scenes,
        )

        rendered: list[RenderedScene] = []
        failures: list[SceneFailure] = []
        for scene, (result, error) in zip(scenes, outcomes):
            if error is None:
                rendered.append(result)
                continue
            scene_log = scene_logger(log, scene.scene_number)
            scene_log.error(
                format_error_message(
                    "Rendering scene",
                    error,
                    context={"scene_number": scene.scene_number},
                    suggestion=get_fallback_suggestion(error),
                )
            )
            failures.append(
                SceneFailure(scene_number=scene.scene_number, error_type=type(error).__name__, message=str(error))
            )

        rendered.sort(key=lambda scene: scene.scene_number)
        return rendered, failures

    def render_scene(
        self, scene: Scene, work_dir: Path, cancel_event: Optional[threading.Event] = None
    ) -> RenderedScene:
        """
        Run one scene through resolve → normalize → render → verify.

        Raises:
            SceneError: Any scene-fatal condition (handled by the caller's executor)
        """
        self.renderer.verify_inputs(scene)
        durations = self.resolver.resolve(scene)

        normalized_audio: Optional[Path] = None
        if scene.has_audio:
            normalized_audio = self.normalizer.normalize(
                scene.audio.paths, durations.final_duration, work_dir, scene.scene_number, cancel_event
            )

        rendered = self.renderer.render(scene, durations, normalized_audio, work_dir, cancel_event)
        check = self.verifier.verify_scene(rendered.path, rendered.duration)
        return rendered.model_copy(update={"probed_duration": check.actual})

    def _scene_warning(self, scene: RenderedScene) -> Optional[str]:
        check = DurationCheck(
            path=scene.path,
            expected=scene.duration,
            actual=scene.probed_duration,
            tolerance=self.settings.scene_duration_tolerance,
        )
        warning = self.verifier.warning_for(check)
        return f"Scene {scene.scene_number}: {warning}" if warning else None

    # ------------------------------------------------------------------
    # Output handling
    # ------------------------------------------------------------------

    def _publish_scene_clips(
        self, job_id: str, rendered: list[RenderedScene], output_dir: Path, log: Any
    ) -> list[RenderedScene]:
        """Move clips out of the working directory and attach public URLs when configured."""
        clip_dir = ensure_dir(output_dir / job_id)
        base_url = (self.settings.public_base_url or "").rstrip("/")

        published = []
        for scene in rendered:
            destination = clip_dir / f"scene_{scene.scene_number:03d}.mp4"
            shutil.move(str(scene.path), str(destination))
            url = f"{base_url}/{job_id}/{destination.name}" if base_url else None
            published.append(scene.model_copy(update={"path": destination, "url": url}))

        log.info(f"📂 Published {len(published)} scene clips to {clip_dir}")
        return published

    def _cleanup(self, work_dir: Path, log: Any) -> None:
        if self.settings.keep_intermediates:
            log.info(f"Keeping intermediates in {work_dir}")
            return
        try:
            shutil.rmtree(work_dir)
            log.debug(f"🧹 Removed working directory {work_dir}")
        except OSError as e:
            log.warning(f"⚠️ Could not remove working directory {work_dir}: {e}")

    @staticmethod
    def _transition(log: Any, new_state: JobState, old_state: Optional[JobState] = None) -> JobState:
        if old_state is None:
            log.info(f"Job state: {new_state.value}")
        else:
            log.info(f"Job state: {old_state.value} → {new_state.value}")
        return new_state
