"""Tests for scene/job schemas."""

import json

import pytest
from pydantic import ValidationError

from scene_composer.models.schemas import (
    CompositionJob,
    DurationCheck,
    JobResult,
    JobState,
    MediaType,
    OutputMode,
    RenderedScene,
    ResolvedDurations,
    Scene,
)


def test_scene_accepts_camel_case_scene_number():
    """Test that collaborator payloads using sceneNumber validate."""
    scene = Scene.model_validate(
        {"sceneNumber": 3, "media": {"type": "video", "path": "clip.mp4"}, "audio": {"path": "voice.mp3"}}
    )

    assert scene.scene_number == 3
    assert scene.media.type == MediaType.VIDEO
    assert scene.has_audio


def test_scene_is_immutable():
    """Test that scenes cannot be mutated after ingestion."""
    scene = Scene(scene_number=1, media={"type": "image", "path": "a.png"})

    with pytest.raises(ValidationError):
        scene.scene_number = 2


def test_scene_rejects_non_positive_number():
    """Test that scene numbers must be positive."""
    with pytest.raises(ValidationError):
        Scene(scene_number=0, media={"type": "image", "path": "a.png"})


def test_scene_rejects_unknown_media_type():
    """Test that media type is validated at ingestion."""
    with pytest.raises(ValidationError):
        Scene(scene_number=1, media={"type": "gif", "path": "a.gif"})


def test_audio_paths_list_form():
    """Test that multi-track narration given as a list is split into first + additional tracks."""
    scene = Scene.model_validate(
        {"sceneNumber": 1, "media": {"type": "image", "path": "a.png"}, "audio": {"paths": ["a.mp3", "b.mp3"]}}
    )

    assert [p.name for p in scene.audio.paths] == ["a.mp3", "b.mp3"]
    assert scene.audio.path.name == "a.mp3"


def test_job_rejects_duplicate_scene_numbers():
    """Test that scene numbers must be unique within a job."""
    scenes = [
        {"sceneNumber": 1, "media": {"type": "image", "path": "a.png"}},
        {"sceneNumber": 1, "media": {"type": "image", "path": "b.png"}},
    ]

    with pytest.raises(ValidationError, match="Duplicate scene numbers"):
        CompositionJob(scenes=scenes)


def test_job_requires_scenes():
    """Test that an empty job is rejected."""
    with pytest.raises(ValidationError):
        CompositionJob(scenes=[])


def test_job_generates_id_and_orders_scenes():
    """Test default job id and scene ordering."""
    job = CompositionJob(
        scenes=[
            {"sceneNumber": 3, "media": {"type": "image", "path": "c.png"}},
            {"sceneNumber": 1, "media": {"type": "image", "path": "a.png"}},
        ]
    )

    assert job.job_id.startswith("job_")
    assert [s.scene_number for s in job.ordered_scenes()] == [1, 3]


def test_job_from_json_file(tmp_path):
    """Test loading a job file, including the bare scene-list form."""
    job_file = tmp_path / "job.json"
    job_file.write_text(
        json.dumps(
            {
                "job_id": "job_fixed",
                "mode": "scene_clips",
                "scenes": [{"sceneNumber": 1, "media": {"type": "image", "path": "a.png", "duration": 4}}],
            }
        )
    )
    list_file = tmp_path / "list.json"
    list_file.write_text(json.dumps([{"sceneNumber": 2, "media": {"type": "video", "path": "b.mp4"}}]))

    job = CompositionJob.from_json_file(job_file)
    listed = CompositionJob.from_json_file(list_file)

    assert job.job_id == "job_fixed"
    assert job.mode == OutputMode.SCENE_CLIPS
    assert job.scenes[0].media.duration == 4
    assert listed.scenes[0].scene_number == 2
    assert listed.mode is None


def test_resolved_durations_needs_loop():
    """Test loop detection from video vs final duration."""
    assert ResolvedDurations(video_duration=3, audio_duration=8, final_duration=8).needs_loop
    assert not ResolvedDurations(video_duration=10, audio_duration=4, final_duration=4).needs_loop
    assert not ResolvedDurations(video_duration=5, final_duration=5).needs_loop


def test_resolved_durations_rejects_zero_final():
    """Test that a non-positive final duration is invalid."""
    with pytest.raises(ValidationError):
        ResolvedDurations(video_duration=5, final_duration=0)


def test_duration_check_tolerance(tmp_path):
    """Test deviation and tolerance evaluation."""
    ok = DurationCheck(path=tmp_path / "a.mp4", expected=5.0, actual=5.3, tolerance=0.5)
    off = DurationCheck(path=tmp_path / "a.mp4", expected=5.0, actual=5.7, tolerance=0.5)
    unknown = DurationCheck(path=tmp_path / "a.mp4", expected=5.0, actual=None, tolerance=0.5)

    assert ok.within_tolerance
    assert ok.deviation == pytest.approx(0.3)
    assert not off.within_tolerance
    assert unknown.deviation is None
    assert not unknown.within_tolerance


def test_job_result_is_partial(tmp_path):
    """Test that a result with dropped scenes reports itself as partial."""
    result = JobResult(
        job_id="job_1",
        state=JobState.PARTIALLY_FAILED,
        mode=OutputMode.CONCATENATE,
        rendered_scenes=[
            RenderedScene(scene_number=1, path=tmp_path / "1.mp4", duration=5.0, probed_duration=5.04),
            RenderedScene(scene_number=3, path=tmp_path / "3.mp4", duration=4.0),
        ],
        dropped_scenes=[2],
    )

    assert result.is_partial
    assert not result.model_copy(update={"dropped_scenes": []}).is_partial
