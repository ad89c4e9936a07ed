"""Scene Composer - renders per-scene clips from media + narration and joins them into one video."""

__version__ = "1.0.0"
