"""Command-line entry point - compose a video from a JSON job description."""

import argparse
import signal
import sys
from pathlib import Path

from pydantic import ValidationError

from scene_composer.core.config import settings
from scene_composer.core.errors import JobError
from scene_composer.core.logging_config import get_logger, setup_logging
from scene_composer.models.schemas import CompositionJob, OutputMode
from scene_composer.pipelines.composition_pipeline import CompositionPipeline


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Scene Composer - render scenes (media + narration) and join them into one video",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=(
            "Job file example:\n"
            '  {"scenes": [{"sceneNumber": 1, "media": {"type": "image", "path": "a.jpg", "duration": 5},\n'
            '               "audio": {"path": "a.mp3"}}]}'
        ),
    )
    parser.add_argument("--job", type=Path, required=True, help="Path to the JSON job description")
    parser.add_argument(
        "--output-dir",
        type=str,
        default=None,
        help=f"Directory for final artifacts (default: {settings.output_dir})",
    )
    parser.add_argument(
        "--temp-dir",
        type=str,
        default=None,
        help=f"Root for per-job working directories (default: {settings.temp_dir})",
    )
    parser.add_argument(
        "--mode",
        type=str,
        default=None,
        choices=[mode.value for mode in OutputMode],
        help="concatenate: one final video; scene_clips: per-scene clips for preview (default: from job or settings)",
    )
    parser.add_argument("--output-name", type=str, default=None, help="Base name of the final video file")
    parser.add_argument(
        "--max-parallel",
        type=int,
        default=None,
        help=f"Maximum scenes rendered concurrently (default: {settings.max_parallel_scenes})",
    )
    parser.add_argument(
        "--keep-intermediates",
        action="store_true",
        help="Keep the job working directory (stripped video, normalized audio, scene clips)",
    )
    parser.add_argument("--log-level", type=str, default=None, help=f"Logging level (default: {settings.log_level})")
    parser.add_argument("--result-json", type=Path, default=None, help="Write the job result as JSON to this path")
    return parser


def main() -> int:
    """Main entrypoint for the composition CLI."""
    args = build_parser().parse_args()

    overrides = {
        "output_dir": args.output_dir,
        "temp_dir": args.temp_dir,
        "max_parallel_scenes": args.max_parallel,
        "log_level": args.log_level,
    }
    overrides = {key: value for key, value in overrides.items() if value is not None}
    if args.keep_intermediates:
        overrides["keep_intermediates"] = True
    run_settings = settings.model_copy(update=overrides)

    setup_logging(log_level=run_settings.log_level, log_file=run_settings.log_file)
    logger = get_logger(__name__)

    try:
        job = CompositionJob.from_json_file(args.job)
    except (OSError, ValueError, ValidationError) as e:
        logger.error(f"❌ Invalid job file {args.job}: {e}")
        return 1

    updates = {}
    if args.mode:
        updates["mode"] = OutputMode(args.mode)
    if args.output_name:
        updates["output_name"] = args.output_name
    if updates:
        job = job.model_copy(update=updates)

    pipeline = CompositionPipeline(run_settings, logger)
    previous_handler = signal.signal(signal.SIGINT, lambda *_: pipeline.cancel(job.job_id))

    try:
        result = pipeline.run(job)
    except JobError as e:
        logger.error(f"\n❌ Job {job.job_id} failed: {e}")
        return 1
    finally:
        signal.signal(signal.SIGINT, previous_handler)

    logger.info("=" * 60)
    logger.info(f"Job {result.job_id}: {result.state.value}")
    if result.output_path:
        duration = f"{result.output_duration:.2f}s" if result.output_duration is not None else "unknown"
        logger.info(f"🎥 Final video: {result.output_path} ({duration})")
    for scene in result.rendered_scenes:
        logger.info(f"   scene {scene.scene_number}: {scene.url or scene.path} ({scene.duration:.2f}s)")
    if result.is_partial:
        logger.warning(f"⚠️ Dropped scenes: {result.dropped_scenes}")
    for warning in result.warnings:
        logger.warning(f"⚠️ {warning}")
    logger.info("=" * 60)

    if args.result_json:
        args.result_json.parent.mkdir(parents=True, exist_ok=True)
        args.result_json.write_text(result.model_dump_json(indent=2), encoding="utf-8")

    return 0


if __name__ == "__main__":
    sys.exit(main())
