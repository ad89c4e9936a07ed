"""Pydantic models and schemas for the scene composition pipeline."""

import json
import uuid
from enum import Enum
from pathlib import Path
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


# ============================================================================
# Enums
# ============================================================================


class MediaType(str, Enum):
    """Kind of visual asset attached to a scene."""

    IMAGE = "image"
    VIDEO = "video"


class JobState(str, Enum):
    """Lifecycle state of a composition job."""

    CREATED = "created"
    RENDERING = "rendering"
    CONCATENATING = "concatenating"
    COMPLETED = "completed"
    PARTIALLY_FAILED = "partially_failed"
    FAILED = "failed"


class OutputMode(str, Enum):
    """What a finished job hands back to the caller."""

    CONCATENATE = "concatenate"
    SCENE_CLIPS = "scene_clips"


# ============================================================================
# Scene Input Models
# ============================================================================


class SceneMedia(BaseModel):
    """Resolved visual asset for a scene, supplied by the media search step."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    type: MediaType = Field(..., description="Media type: 'image' or 'video'")
    path: Path = Field(..., description="Local path to the downloaded media file")
    duration: Optional[float] = Field(
        default=None,
        description="Display duration in seconds (image only; missing or <= 0 falls back to the default)",
    )
    width: Optional[int] = Field(default=None, description="Declared source width in pixels (informational)")
    height: Optional[int] = Field(default=None, description="Declared source height in pixels (informational)")


class SceneAudio(BaseModel):
    """Narration track(s) for a scene, supplied by the voice synthesis step."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    path: Path = Field(..., description="Path to the (first) narration track")
    additional_paths: list[Path] = Field(
        default_factory=list, description="Further narration tracks played after the first, in order"
    )

    @model_validator(mode="before")
    @classmethod
    def _accept_track_list(cls, data: Any) -> Any:
        """Accept ``{"paths": [...]}`` as well as ``{"path": ...}``."""
        if isinstance(data, dict) and "path" not in data and data.get("paths"):
            tracks = list(data["paths"])
            data = {k: v for k, v in data.items() if k != "paths"}
            data["path"] = tracks[0]
            data["additional_paths"] = tracks[1:]
        return data

    @property
    def paths(self) -> list[Path]:
        """All narration tracks in playback order."""
        return [self.path, *self.additional_paths]


class Scene(BaseModel):
    """One unit of the script: a visual asset plus optional narration."""

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    scene_number: int = Field(..., gt=0, alias="sceneNumber", description="Ordering key, unique within a job")
    media: SceneMedia = Field(..., description="Visual asset")
    audio: Optional[SceneAudio] = Field(default=None, description="Narration; None means a silent scene")

    @property
    def has_audio(self) -> bool:
        return self.audio is not None


# ============================================================================
# Derived / Result Models
# ============================================================================


class ResolvedDurations(BaseModel):
    """Durations resolved for one scene before rendering."""

    video_duration: float = Field(..., gt=0, description="Source video length or image display duration")
    audio_duration: Optional[float] = Field(default=None, description="Probed narration length (None when silent)")
    final_duration: float = Field(..., gt=0, description="Authoritative length of the rendered clip")

    @property
    def needs_loop(self) -> bool:
        """True when the visual source is shorter than the clip it must fill."""
        return self.final_duration > self.video_duration


class RenderedScene(BaseModel):
    """A finished per-scene clip."""

    scene_number: int = Field(..., description="Scene this clip belongs to")
    path: Path = Field(..., description="Location of the clip")
    duration: float = Field(..., description="Requested (resolved) duration in seconds")
    probed_duration: Optional[float] = Field(default=None, description="Duration measured after rendering")
    url: Optional[str] = Field(default=None, description="Public URL of the clip (scene_clips mode only)")


class DurationCheck(BaseModel):
    """Outcome of comparing a file's probed duration against an expectation."""

    path: Path
    expected: float
    actual: Optional[float] = Field(default=None, description="Probed duration; None if probing failed")
    tolerance: float

    @property
    def deviation(self) -> Optional[float]:
        if self.actual is None:
            return None
        return abs(self.actual - self.expected)

    @property
    def within_tolerance(self) -> bool:
        deviation = self.deviation
        return deviation is not None and deviation <= self.tolerance


class SceneFailure(BaseModel):
    """Why a scene was dropped from the job."""

    scene_number: int
    error_type: str = Field(..., description="Exception class name (e.g. 'MediaFileMissing')")
    message: str


# ============================================================================
# Job Models
# ============================================================================


def _new_job_id() -> str:
    return f"job_{uuid.uuid4().hex[:12]}"


class CompositionJob(BaseModel):
    """An ordered set of scenes submitted together."""

    job_id: str = Field(default_factory=_new_job_id, description="Job identifier; names the working directory")
    scenes: list[Scene] = Field(..., min_length=1, description="Scenes to render")
    output_name: Optional[str] = Field(default=None, description="Base name of the final video (no extension)")
    mode: Optional[OutputMode] = Field(default=None, description="Output mode; falls back to settings.output_mode")

    @field_validator("scenes")
    @classmethod
    def _unique_scene_numbers(cls, scenes: list[Scene]) -> list[Scene]:
        numbers = [scene.scene_number for scene in scenes]
        duplicates = sorted({n for n in numbers if numbers.count(n) > 1})
        if duplicates:
            raise ValueError(f"Duplicate scene numbers: {duplicates}")
        return scenes

    @classmethod
    def from_json_file(cls, path: Path) -> "CompositionJob":
        """Load a job description from a JSON file."""
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
        if isinstance(data, list):
            data = {"scenes": data}
        return cls.model_validate(data)

    def ordered_scenes(self) -> list[Scene]:
        return sorted(self.scenes, key=lambda scene: scene.scene_number)


class JobResult(BaseModel):
    """What a finished (completed or partially failed) job returns."""

    job_id: str
    state: JobState
    mode: OutputMode
    output_path: Optional[Path] = Field(default=None, description="Final video (concatenate mode)")
    output_duration: Optional[float] = Field(default=None, description="Probed duration of the final video")
    rendered_scenes: list[RenderedScene] = Field(default_factory=list, description="Successful scenes, in order")
    dropped_scenes: list[int] = Field(default_factory=list, description="Scene numbers that failed")
    failures: list[SceneFailure] = Field(default_factory=list, description="Per-scene failure details")
    warnings: list[str] = Field(default_factory=list, description="Non-fatal diagnostics (duration mismatches)")

    @property
    def is_partial(self) -> bool:
        return bool(self.dropped_scenes)

