"""
SoundPost v1 CLI - Argument parsing and dispatch.

Responsibilities:
- Argument parsing
- Workspace creation and input copying
- Building the EpisodeContext and running the pipeline
- Printing results/errors
- Exit codes (0 success, 1 failure)

Forbidden:
- No filter-graph or planning logic
"""

import argparse
import asyncio
import json
import shutil
import sys
from pathlib import Path


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser."""
    parser = argparse.ArgumentParser(
        prog="soundpost",
        description="SoundPost v1 podcast audio post-processing.",
    )
    parser.add_argument(
        "--log-level",
        metavar="LEVEL",
        help="Log level (DEBUG, INFO, WARNING, ERROR). Defaults to LOG_LEVEL or INFO.",
    )

    subparsers = parser.add_subparsers(dest="command")

    # prepare subcommand
    prepare_parser = subparsers.add_parser(
        "prepare",
        help="Prepare an episode for publishing.",
        description=(
            "Prepare an episode for publishing.\n\n"
            "Creates a job workspace, copies the input audio and runs the stages:\n"
            "overread guard, codec repair, silence trim/removal, intro/outro mixing,\n"
            "loudness normalization and tagging. The result is written to output/."
        ),
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    prepare_parser.add_argument(
        "--input",
        metavar="PATH",
        required=True,
        help="Path to the episode audio file.",
    )
    prepare_parser.add_argument(
        "--job-id",
        metavar="JOB_ID",
        help="Explicit job identifier to use instead of generating one.",
    )
    prepare_parser.add_argument(
        "--jobs-root",
        metavar="PATH",
        default="./jobs",
        help="Root directory for job workspaces (default: ./jobs).",
    )
    prepare_parser.add_argument(
        "--config",
        metavar="YAML",
        help="Optional YAML file overriding processing defaults.",
    )
    prepare_parser.add_argument(
        "--silence",
        choices=["none", "trim", "remove-all"],
        default="trim",
        help="Silence handling (default: trim).",
    )
    prepare_parser.add_argument(
        "--silence-duration",
        metavar="S",
        type=float,
        help="Shortest silence removed by --silence remove-all (seconds).",
    )
    prepare_parser.add_argument(
        "--intro",
        metavar="URL",
        help="Intro clip URL or local path.",
    )
    prepare_parser.add_argument(
        "--outro",
        metavar="URL",
        help="Outro clip URL or local path.",
    )
    prepare_parser.add_argument(
        "--overlay",
        metavar="S",
        type=float,
        default=0.0,
        help="Crossfade between intro/outro and episode in seconds (default: 0).",
    )
    prepare_parser.add_argument(
        "--skip-mp3",
        action="store_true",
        help="Keep the source codec unless an overread forces conversion.",
    )
    prepare_parser.add_argument(
        "--skip-normalize",
        action="store_true",
        help="Skip loudness normalization.",
    )
    prepare_parser.add_argument("--cover", metavar="PATH", help="Cover image for tagging.")
    prepare_parser.add_argument("--title", metavar="TEXT", help="Episode title (with --cover).")
    prepare_parser.add_argument("--artist", metavar="TEXT", help="Artist name (with --cover).")
    prepare_parser.add_argument("--track", metavar="N", type=int, help="Track number.")
    prepare_parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Print the planned job layout without creating files.",
    )

    # detect subcommand
    detect_parser = subparsers.add_parser(
        "detect",
        help="Print detected silences as JSON.",
    )
    detect_parser.add_argument("--input", metavar="PATH", required=True, help="Audio file.")
    detect_parser.add_argument(
        "--noise",
        metavar="DB",
        type=float,
        default=-60.0,
        help="Noise floor in dB (default: -60).",
    )
    detect_parser.add_argument(
        "--duration",
        metavar="S",
        type=float,
        default=1.0,
        help="Shortest silence in seconds (default: 1).",
    )

    # overread subcommand
    overread_parser = subparsers.add_parser(
        "overread",
        help="Print 'true' when the file shows the overread defect.",
    )
    overread_parser.add_argument("--input", metavar="PATH", required=True, help="Audio file.")

    return parser


def _check_input(input_path: Path) -> bool:
    if not input_path.exists():
        print(f"Error: Input file not found: {input_path}", file=sys.stderr)
        return False
    if not input_path.is_file():
        print(f"Error: Input path is not a file: {input_path}", file=sys.stderr)
        return False
    return True


def _build_engine(config):
    from soundpost.engine import FFmpegEngine

    return FFmpegEngine(ffmpeg_path=config.ffmpeg_path, ffprobe_path=config.ffprobe_path)


def cmd_prepare(args: argparse.Namespace) -> int:
    """
    Handle the 'prepare' subcommand.

    Returns exit code.
    """
    from soundpost.config import ConfigError, load_config
    from soundpost.context import EpisodeContext, EpisodeRequest, SilenceMode, TagRequest
    from soundpost.jobs import WORKSPACE_DIRS, WorkspaceExistsError, create_full_workspace, resolve_job_id
    from soundpost.logging_utils import get_logger
    from soundpost.pipeline import run_pipeline
    from soundpost.utils import now_iso, serialize_json

    input_path = Path(args.input)
    if not _check_input(input_path):
        return 1

    cover_path = Path(args.cover) if args.cover else None
    if cover_path is not None:
        if not cover_path.is_file():
            print(f"Error: Cover image not found: {cover_path}", file=sys.stderr)
            return 1
        if not args.title or not args.artist:
            print("Error: --cover requires --title and --artist", file=sys.stderr)
            return 1

    try:
        config = load_config(args.config)
    except ConfigError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    jobs_root = Path(args.jobs_root)
    job_id = resolve_job_id(args.job_id)
    job_dir = jobs_root / job_id

    # Dry-run: print planned layout and exit
    if args.dry_run:
        if job_dir.exists():
            print(f"Warning: Job workspace already exists: {job_dir}", file=sys.stderr)
        print(f"Job ID: {job_id}")
        print(f"Job directory: {job_dir}")
        print(f"Input file: {input_path}")
        print("Directories to create:")
        for name in WORKSPACE_DIRS:
            print(f"  {job_dir}/{name}/")
        return 0

    try:
        paths = create_full_workspace(jobs_root, job_id)
    except WorkspaceExistsError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    # input/ keeps the untouched source; work/ is consumed by the stages
    shutil.copy2(input_path, paths["input_dir"] / input_path.name)
    work_path = paths["work_dir"] / input_path.name
    shutil.copy2(input_path, work_path)

    tags = None
    if cover_path is not None:
        work_cover = paths["work_dir"] / f"{work_path.stem}_cover{cover_path.suffix}"
        shutil.copy2(cover_path, work_cover)
        tags = TagRequest(
            cover_path=work_cover,
            title=args.title,
            artist=args.artist,
            track=args.track,
        )

    request = EpisodeRequest(
        silence_mode=SilenceMode(args.silence),
        silence_duration=args.silence_duration,
        convert_mp3=not args.skip_mp3,
        intro=args.intro,
        outro=args.outro,
        overlay_duration=args.overlay,
        normalize=not args.skip_normalize,
        tags=tags,
    )

    run_json = {
        "job_id": job_id,
        "started_at": now_iso(),
        "cli_args": {
            "input": str(input_path),
            "job_id": args.job_id,  # May be None if auto-generated
            "jobs_root": str(jobs_root),
            "config": args.config,
        },
        "request": request.to_dict(),
        "config": config.to_dict(),
    }
    (paths["meta_dir"] / "run.json").write_text(serialize_json(run_json))

    ctx = EpisodeContext(
        job_id=job_id,
        job_dir=paths["job_dir"],
        work_dir=paths["work_dir"],
        audio_path=work_path,
        engine=_build_engine(config),
        config=config,
        request=request,
        logger=get_logger("soundpost.job"),
    )

    result = asyncio.run(run_pipeline(ctx))

    if not result.success:
        print(f"Pipeline failed at stage '{result.failed_stage}': {job_dir}", file=sys.stderr)
        if result.failure is not None and result.failure.cause is not None:
            print(f"  {result.failure.cause}", file=sys.stderr)
        return 1

    final_path = paths["output_dir"] / result.output_path.name
    shutil.copy2(result.output_path, final_path)
    print(f"Pipeline completed successfully: {final_path}")
    return 0


def cmd_detect(args: argparse.Namespace) -> int:
    """Handle the 'detect' subcommand (read-only)."""
    from soundpost.config import load_config
    from soundpost.errors import PipelineError
    from soundpost.stages.detect import detect_silence

    input_path = Path(args.input)
    if not _check_input(input_path):
        return 1

    try:
        engine = _build_engine(load_config())
        report = asyncio.run(
            detect_silence(engine, input_path, noise_db=args.noise, min_duration=args.duration)
        )
    except PipelineError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    payload = {
        "input": str(input_path),
        "duration": report.asset.duration,
        "events": [event.to_dict() for event in report.events()],
    }
    print(json.dumps(payload, indent=2, sort_keys=True))
    return 0


def cmd_overread(args: argparse.Namespace) -> int:
    """Handle the 'overread' subcommand (read-only)."""
    from soundpost.config import load_config
    from soundpost.errors import PipelineError
    from soundpost.stages.overread import has_overread

    input_path = Path(args.input)
    if not _check_input(input_path):
        return 1

    try:
        engine = _build_engine(load_config())
        overread = asyncio.run(has_overread(engine, input_path))
    except PipelineError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    print("true" if overread else "false")
    return 0


COMMANDS = {
    "prepare": cmd_prepare,
    "detect": cmd_detect,
    "overread": cmd_overread,
}


def main() -> None:
    """Main entry point."""
    from soundpost.logging_utils import setup_logging

    parser = create_parser()
    args = parser.parse_args()

    if args.command is None:
        parser.print_help()
        sys.exit(0)

    setup_logging(args.log_level)
    sys.exit(COMMANDS[args.command](args))
