"""I/O utility functions for working directories and intermediate artifacts."""

# This module is part of scene_composer.utils package

import re
import uuid
from pathlib import Path
from typing import Union


def slugify(text: str) -> str:
    """
    Convert text to a filesystem-safe slug.

    Args:
        text: Input text to slugify.

    Returns:
        Filesystem-safe slug string.
    """
    text = text.lower()
    text = re.sub(r"[^\w\s-]", "", text)
    text = re.sub(r"[-\s]+", "-", text)
    text = text.strip("-")
    if len(text) > 100:
        text = text[:100].rstrip("-")
    return text


def ensure_dir(path: Union[str, Path]) -> Path:
    """Create a directory (and parents) if absent and return it as a Path."""
    directory = Path(path)
    directory.mkdir(parents=True, exist_ok=True)
    return directory


def create_job_work_dir(base_dir: Union[str, Path], job_id: str) -> Path:
    """
    Create the exclusive working directory for a job.

    Args:
        base_dir: Root for all job working directories (e.g., "temp").
        job_id: Job identifier; prefixes the directory name.

    Returns:
        Path to the created directory, ``<job_id>_<random hex>``.

    Raises:
        FileExistsError: The generated name is already taken.
    """
    safe_name = re.sub(r"[^\w.-]", "_", job_id).strip(".") or "job"
    work_dir = ensure_dir(base_dir) / f"{safe_name}_{uuid.uuid4().hex[:8]}"
    work_dir.mkdir(exist_ok=False)
    return work_dir


def unique_artifact_path(work_dir: Path, scene_number: int, purpose: str, extension: str) -> Path:
    """
    Build a collision-free path for a scene's intermediate file.

    Concurrent scene tasks write into the same job directory, so every name
    carries the scene number and a random suffix.

    Args:
        work_dir: Job working directory.
        scene_number: Scene that owns the artifact.
        purpose: Short tag such as "noaudio", "normalized_audio" or "final".
        extension: File extension without the dot.

    Returns:
        Path like ``work_dir/scene_3_1f2e3d4c_final.mp4``.
    """
    return work_dir / f"scene_{scene_number}_{uuid.uuid4().hex[:8]}_{purpose}.{extension.lstrip('.')}"


def quote_concat_path(path: Path) -> str:
    """Quote a path for an ffmpeg concat-demuxer manifest ``file`` line."""
    escaped = str(Path(path).resolve()).replace("\\", "/").replace("'", "'\\''")
    return f"'{escaped}'"
