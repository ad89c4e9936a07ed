"""Error Handler - provides readable failure messages for dropped scenes and failed jobs."""

from typing import Optional

from scene_composer.core.errors import (
    AudioNormalizationFailed,
    ConcatenationFailed,
    EncoderCancelled,
    EncoderError,
    InvalidMediaDuration,
    MediaFileMissing,
    NoRenderableScenes,
    SceneRenderFailed,
)


def format_error_message(
    operation: str,
    error: Exception,
    context: Optional[dict] = None,
    suggestion: Optional[str] = None,
) -> str:
    """
    Format a user-friendly error message.

    Args:
        operation: What operation was being performed (e.g., "Rendering scene")
        error: The exception that occurred
        context: Additional context (e.g., {"job_id": "job_123", "scene_number": 2})
        suggestion: Optional suggestion for how to fix the issue

    Returns:
        Formatted error message
    """
    error_type = type(error).__name__
    error_msg = str(error)

    context_str = ""
    if context:
        context_parts = [f"{k}={v}" for k, v in context.items()]
        context_str = f" ({', '.join(context_parts)})"

    message = f"❌ {operation} failed{context_str}\n"
    message += f"   Error: {error_type}: {error_msg}"

    # Surface the encoder's own last words when the root cause was ffmpeg
    cause = error if isinstance(error, EncoderError) else error.__cause__
    if isinstance(cause, EncoderError) and cause.stderr_tail:
        tail = cause.stderr_tail.replace("\n", "\n      ")
        message += f"\n   ffmpeg: {tail}"

    if suggestion:
        message += f"\n   💡 Suggestion: {suggestion}"

    return message


def get_fallback_suggestion(error: Exception) -> Optional[str]:
    """
    Get a suggestion for how to handle a scene or job failure.

    Args:
        error: The exception

    Returns:
        Suggestion string or None
    """
    if isinstance(error, MediaFileMissing):
        return "Check that the media search step downloaded the file and the path is readable. Scene dropped."
    if isinstance(error, InvalidMediaDuration):
        return "The file could not be probed or reports no length. Re-download the media or set an image duration."
    if isinstance(error, AudioNormalizationFailed):
        if isinstance(error.__cause__, EncoderCancelled):
            return "Audio normalization was cancelled or timed out. Scene dropped."
        return "Narration track could not be normalized. Check the synthesized audio file. Scene dropped."
    if isinstance(error, SceneRenderFailed):
        if isinstance(error.__cause__, EncoderCancelled):
            return "Rendering was cancelled or exceeded FFMPEG_TIMEOUT_SECONDS. Scene dropped."
        return "ffmpeg could not encode this scene. The source may be corrupt or in an unsupported format."
    if isinstance(error, NoRenderableScenes):
        return "Every scene failed. Check the per-scene errors above; no video was produced."
    if isinstance(error, ConcatenationFailed):
        return "Scene clips were rendered but could not be joined. Re-run with KEEP_INTERMEDIATES=true to inspect them."
    if isinstance(error, FileNotFoundError):
        return "A required file or the ffmpeg binary was not found. Check FFMPEG_BINARY / FFPROBE_BINARY."

    return None
