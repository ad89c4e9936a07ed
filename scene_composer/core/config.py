"""Application configuration using pydantic-settings."""

from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    All settings can be configured via environment variables or a .env file.
    See .env.example for a template.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ========================================================================
    # Application Settings
    # ========================================================================
    app_name: str = Field(default="Scene Composer", description="Application name")
    app_version: str = Field(default="1.0.0", description="Application version")
    debug: bool = Field(default=False, description="Debug mode")
    log_level: str = Field(default="INFO", description="Logging level (DEBUG, INFO, WARNING, ERROR)")
    log_file: Optional[str] = Field(default=None, description="Optional log file path (rotated, zip-compressed)")

    # ========================================================================
    # Encoding Engine
    # ========================================================================
    ffmpeg_binary: str = Field(default="ffmpeg", description="ffmpeg executable name or path")
    ffprobe_binary: str = Field(default="ffprobe", description="ffprobe executable name or path")
    ffmpeg_timeout_seconds: Optional[float] = Field(
        default=None,
        description="Kill a single ffmpeg invocation after this many seconds (default: no timeout)",
    )

    # ========================================================================
    # Directories
    # ========================================================================
    temp_dir: str = Field(default="temp", description="Working directory root for per-job intermediates")
    output_dir: str = Field(default="output", description="Directory for final artifacts")
    keep_intermediates: bool = Field(
        default=False,
        description="Keep the per-job working directory after the job finishes (default: false)",
    )

    # ========================================================================
    # Duration Rules
    # ========================================================================
    default_image_duration: float = Field(
        default=5.0, description="Duration in seconds for image scenes without a usable declared duration"
    )
    scene_duration_tolerance: float = Field(
        default=0.5, description="Allowed deviation in seconds between requested and rendered scene length"
    )
    timeline_duration_tolerance: float = Field(
        default=1.0, description="Allowed deviation in seconds for the concatenated timeline"
    )

    # ========================================================================
    # Canonical Video Profile
    # ========================================================================
    video_width: int = Field(default=1920, description="Output frame width in pixels (default: 1920)")
    video_height: int = Field(default=1080, description="Output frame height in pixels (default: 1080)")
    frame_rate: int = Field(default=30, description="Output frame rate for every scene clip (default: 30)")
    video_codec: str = Field(default="libx264", description="Video encoder")
    video_preset: str = Field(default="medium", description="Encoder speed/quality preset")
    video_profile: str = Field(default="high", description="H.264 profile")
    video_level: str = Field(default="4.1", description="H.264 level")
    video_crf: int = Field(default=23, description="Constant rate factor (lower is better quality)")
    pixel_format: str = Field(default="yuv420p", description="Output pixel format")

    # ========================================================================
    # Canonical Audio Profile
    # ========================================================================
    audio_codec: str = Field(default="aac", description="Audio encoder")
    audio_bitrate: str = Field(default="192k", description="Audio bitrate")
    audio_sample_rate: int = Field(default=44100, description="Audio sample rate in Hz")
    audio_channel_layout: str = Field(default="stereo", description="Audio channel layout")

    # ========================================================================
    # Loudness Normalization (EBU R128 style targets)
    # ========================================================================
    loudness_integrated: float = Field(default=-16.0, description="Integrated loudness target in LUFS")
    loudness_range: float = Field(default=11.0, description="Loudness range target in LU")
    loudness_true_peak: float = Field(default=-1.5, description="Maximum true peak in dBTP")

    # ========================================================================
    # Parallelism Settings
    # ========================================================================
    max_parallel_scenes: int = Field(
        default=4,
        description="Maximum number of scenes rendered concurrently (default: 4, set to 1 for sequential)",
    )

    # ========================================================================
    # Output Mode
    # ========================================================================
    output_mode: str = Field(
        default="concatenate",
        description="'concatenate' (one final video) or 'scene_clips' (per-scene clips for editor preview)",
    )
    public_base_url: Optional[str] = Field(
        default=None,
        description="Base URL under which output_dir is served; used to build scene clip URLs in scene_clips mode",
    )


# Global settings instance
settings = Settings()
