"""Command-line front end for the distill pipeline."""

import argparse
import logging
import signal
import sys
from pathlib import Path

from distill.config import AppConfig, load_config
from distill.dependencies import build_orchestrator, build_services
from distill.domain import OutputFormat
from distill.exceptions import ConfigError, PipelineError, RunCancelledError, ServiceError
from distill.handlers import ProgressEvent
from distill.logging import setup_logging
from distill.runtime import CancellationToken

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_FAILED = 1
EXIT_SETUP = 2
EXIT_CANCELLED = 130


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="distill",
        description="Summarize an audio file (e.g. a meeting) using AssemblyAI and Gemini.",
    )
    parser.add_argument("-i", "--input-audio-file", required=True, type=Path)
    parser.add_argument(
        "-o",
        "--output-type",
        choices=[f.value for f in OutputFormat],
        type=str.lower,
        help="Output document type (default: docx, or inferred from --output-filename)",
    )
    parser.add_argument("--output-filename", type=Path, help="Output document path")
    parser.add_argument("-l", "--language-code", default=None, help="e.g. en-US")
    parser.add_argument(
        "-d",
        "--delete-uploaded",
        action="store_true",
        help="Delete the uploaded audio from storage after a successful run",
    )
    parser.add_argument(
        "--no-transcript",
        action="store_true",
        help="Leave the transcript out of the output document",
    )
    parser.add_argument("--config", type=Path, help="Path to config.toml")
    parser.add_argument("--log-level", default=None)
    return parser


def apply_arguments(config: AppConfig, args: argparse.Namespace) -> AppConfig:
    """Overlays command-line options on the loaded configuration."""
    pipeline = config.pipeline
    output = pipeline.output.model_copy(
        update={
            "format": OutputFormat(args.output_type)
            if args.output_type
            else pipeline.output.format,
            "filename": args.output_filename or pipeline.output.filename,
            "include_transcript": pipeline.output.include_transcript
            and not args.no_transcript,
        }
    )
    pipeline = pipeline.model_copy(
        update={
            "language_code": args.language_code or pipeline.language_code,
            "cleanup": "on_success" if args.delete_uploaded else pipeline.cleanup,
            "output": output,
        }
    )
    return config.model_copy(
        update={"pipeline": pipeline, "log_level": args.log_level or config.log_level}
    )


def _print_progress(event: ProgressEvent) -> None:
    prefix = "done: " if event.completed else ""
    print(f"[{event.stage.value}] {prefix}{event.message}", file=sys.stderr)


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)

    try:
        config = apply_arguments(load_config(args.config), args)
    except ConfigError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return EXIT_SETUP
    setup_logging(config.log_level)

    cancellation = CancellationToken()

    def handle_signal(signum: int, _frame) -> None:
        logger.info("Received signal, cancelling run", extra={"signal": signum})
        cancellation.cancel()

    signal.signal(signal.SIGINT, handle_signal)
    signal.signal(signal.SIGTERM, handle_signal)

    try:
        services = build_services(config)
    except (ConfigError, ServiceError) as e:
        print(f"Setup failed: {e}", file=sys.stderr)
        return EXIT_SETUP

    orchestrator = build_orchestrator(
        config, services, cancellation=cancellation, progress_callback=_print_progress
    )

    try:
        artifact = orchestrator.run_path(args.input_audio_file, config.pipeline)
    except PipelineError as e:
        print(f"Failed: {e}", file=sys.stderr)
        if isinstance(e.cause, RunCancelledError):
            return EXIT_CANCELLED
        if e.retriable:
            print("The failure looks transient; the run can be retried.", file=sys.stderr)
        return EXIT_FAILED

    print(f"Summary written to {artifact.path}")
    return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
