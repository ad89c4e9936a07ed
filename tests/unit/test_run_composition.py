"""Tests for the composition command-line entry point."""

import json
from unittest.mock import MagicMock, patch

import pytest

from scene_composer.core.errors import NoRenderableScenes
from scene_composer.models.schemas import JobResult, JobState, OutputMode, RenderedScene
from scene_composer.pipelines.run_composition import main


@pytest.fixture
def job_file(tmp_path):
    path = tmp_path / "job.json"
    path.write_text(
        json.dumps(
            {
                "job_id": "job_cli",
                "scenes": [{"sceneNumber": 1, "media": {"type": "image", "path": "a.png", "duration": 5}}],
            }
        )
    )
    return path


@pytest.fixture
def mock_pipeline(tmp_path):
    """Patch the pipeline class and return the instance main() will use."""
    with patch("scene_composer.pipelines.run_composition.CompositionPipeline") as pipeline_class:
        instance = MagicMock()
        instance.run.return_value = JobResult(
            job_id="job_cli",
            state=JobState.COMPLETED,
            mode=OutputMode.CONCATENATE,
            output_path=tmp_path / "output" / "video_job_cli.mp4",
            output_duration=5.0,
            rendered_scenes=[RenderedScene(scene_number=1, path=tmp_path / "clip.mp4", duration=5.0)],
        )
        pipeline_class.return_value = instance
        yield pipeline_class


def run_cli(*args):
    with patch("sys.argv", ["run_composition.py", *args]):
        return main()


def test_success_writes_result_json(job_file, mock_pipeline, tmp_path):
    """Test a completed job exits 0 and writes its result."""
    result_path = tmp_path / "result.json"

    exit_code = run_cli("--job", str(job_file), "--result-json", str(result_path))

    assert exit_code == 0
    result = json.loads(result_path.read_text())
    assert result["job_id"] == "job_cli"
    assert result["state"] == "completed"
    assert result["output_duration"] == 5.0


def test_flags_override_settings_and_job(job_file, mock_pipeline, tmp_path):
    """Test that CLI flags reach the pipeline settings and the job."""
    exit_code = run_cli(
        "--job",
        str(job_file),
        "--output-dir",
        str(tmp_path / "out"),
        "--max-parallel",
        "1",
        "--keep-intermediates",
        "--mode",
        "scene_clips",
        "--output-name",
        "final cut",
    )

    assert exit_code == 0
    run_settings = mock_pipeline.call_args.args[0]
    assert run_settings.output_dir == str(tmp_path / "out")
    assert run_settings.max_parallel_scenes == 1
    assert run_settings.keep_intermediates is True
    job = mock_pipeline.return_value.run.call_args.args[0]
    assert job.mode == OutputMode.SCENE_CLIPS
    assert job.output_name == "final cut"


def test_invalid_job_file(tmp_path, mock_pipeline):
    """Test that an invalid job description exits 1 without running."""
    bad = tmp_path / "bad.json"
    bad.write_text(json.dumps({"scenes": []}))

    assert run_cli("--job", str(bad)) == 1
    mock_pipeline.return_value.run.assert_not_called()


def test_missing_job_file(tmp_path, mock_pipeline):
    """Test that a missing job file exits 1."""
    assert run_cli("--job", str(tmp_path / "nope.json")) == 1


def test_job_fatal_error_exits_1(job_file, mock_pipeline):
    """Test that a job-fatal error exits 1."""
    mock_pipeline.return_value.run.side_effect = NoRenderableScenes("nothing rendered", job_id="job_cli")

    assert run_cli("--job", str(job_file)) == 1


def test_partial_job_exits_0(job_file, mock_pipeline, tmp_path):
    """Test that a partially failed job still exits 0."""
    mock_pipeline.return_value.run.return_value = JobResult(
        job_id="job_cli",
        state=JobState.PARTIALLY_FAILED,
        mode=OutputMode.CONCATENATE,
        dropped_scenes=[2],
        warnings=["Scene 1: Duration mismatch"],
    )

    assert run_cli("--job", str(job_file)) == 0
