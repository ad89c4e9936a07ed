"""Exception hierarchy for scene composition.

Scene-fatal errors (``SceneError``) drop a single scene from the job. Job-fatal
errors (``JobError``) fail the whole job and reach the caller. ``EncoderError``
describes a failed ffmpeg/ffprobe invocation and is always re-raised as one of
the above by the service that issued it.
"""

from typing import Optional, Sequence


class CompositionError(Exception):
    """Base class for every error raised by the composition pipeline."""

    def __init__(self, message: str, scene_number: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.scene_number = scene_number

    def __str__(self) -> str:
        if self.scene_number is not None:
            return f"[scene {self.scene_number}] {self.message}"
        return self.message


# ============================================================================
# Engine errors
# ============================================================================


class EncoderError(CompositionError):
    """An external ffmpeg/ffprobe process exited unsuccessfully."""

    def __init__(
        self,
        message: str,
        command: Optional[Sequence[str]] = None,
        stderr: str = "",
        scene_number: Optional[int] = None,
    ):
        super().__init__(message, scene_number=scene_number)
        self.command = list(command or [])
        self.stderr = stderr

    @property
    def stderr_tail(self) -> str:
        lines = [line for line in self.stderr.splitlines() if line.strip()]
        return "\n".join(lines[-10:])


class EncoderCancelled(EncoderError):
    """An ffmpeg invocation was cancelled or hit its timeout and was killed."""


class ProbeFailed(EncoderError):
    """ffprobe failed or returned no usable duration."""


# ============================================================================
# Scene-fatal errors
# ============================================================================


class SceneError(CompositionError):
    """Failure confined to one scene; siblings keep rendering."""


class InvalidMediaDuration(SceneError):
    """Media or audio duration is unresolvable, non-numeric, or not positive."""


class MediaFileMissing(SceneError):
    """A declared media or audio file does not exist or cannot be read."""


class AudioNormalizationFailed(SceneError):
    """Loudness normalization/padding failed or was given an invalid target."""


class SceneRenderFailed(SceneError):
    """Encoding a scene clip failed."""


# ============================================================================
# Job-fatal errors
# ============================================================================


class JobError(CompositionError):
    """Failure of the job as a whole."""

    def __init__(self, message: str, job_id: Optional[str] = None):
        super().__init__(message)
        self.job_id = job_id


class NoRenderableScenes(JobError):
    """Every scene in the job failed to render."""

    def __init__(self, message: str, job_id: Optional[str] = None, failures: Optional[list] = None):
        super().__init__(message, job_id=job_id)
        self.failures = list(failures or [])

    @property
    def dropped_scenes(self) -> list[int]:
        return sorted(failure.scene_number for failure in self.failures)


class ConcatenationFailed(JobError):
    """Joining the rendered scenes into the final timeline failed."""
