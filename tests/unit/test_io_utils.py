"""Tests for working-directory and artifact path helpers."""

from scene_composer.utils.io_utils import create_job_work_dir, quote_concat_path, slugify, unique_artifact_path


def test_slugify():
    assert slugify("My Story: Part 1!") == "my-story-part-1"
    assert slugify("   ") == ""


def test_create_job_work_dir(tmp_path):
    """Test that each job gets its own directory under the temp root."""
    work_dir = create_job_work_dir(tmp_path / "temp", "job_abc")

    assert work_dir.parent == tmp_path / "temp"
    assert work_dir.name.startswith("job_abc_")
    assert work_dir.is_dir()


def test_create_job_work_dir_is_exclusive(tmp_path):
    """Test that two runs of the same job id never share a directory."""
    first = create_job_work_dir(tmp_path, "job_abc")
    (first / "concat.txt").write_text("file 'a.mp4'\n")

    second = create_job_work_dir(tmp_path, "job_abc")

    assert first != second
    assert list(second.iterdir()) == []


def test_create_job_work_dir_sanitizes_id(tmp_path):
    """Test that a job id cannot escape the temp root."""
    work_dir = create_job_work_dir(tmp_path, "../../etc")

    assert work_dir.parent == tmp_path


def test_unique_artifact_paths_do_not_collide(tmp_path):
    """Test that repeated requests for the same scene/purpose yield distinct names."""
    first = unique_artifact_path(tmp_path, 3, "final", "mp4")
    second = unique_artifact_path(tmp_path, 3, "final", ".mp4")

    assert first != second
    assert first.name.startswith("scene_3_")
    assert second.name.endswith("_final.mp4")


def test_quote_concat_path_escapes_quotes(tmp_path):
    quoted = quote_concat_path(tmp_path / "it's.mp4")

    assert quoted.startswith("'") and quoted.endswith("'")
    assert "it'\\''s.mp4" in quoted
