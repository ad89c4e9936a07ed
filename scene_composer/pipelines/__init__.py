"""Pipeline orchestrators for the scene composer."""

from scene_composer.pipelines.composition_pipeline import CompositionPipeline
from scene_composer.pipelines.run_composition import main

__all__ = ["CompositionPipeline", "main"]
