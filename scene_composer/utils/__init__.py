"""Utility functions for the scene composition pipeline."""

from scene_composer.utils.io_utils import create_job_work_dir, ensure_dir, quote_concat_path, slugify, unique_artifact_path

__all__ = [
    "create_job_work_dir",
    "ensure_dir",
    "quote_concat_path",
    "slugify",
    "unique_artifact_path",
]
