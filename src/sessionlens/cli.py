"""Command-line interface for sessionlens.

Provides the main entry point for serving the HTTP API or running the
pipeline operations once against the configured storage.
"""

from __future__ import annotations

import argparse
import asyncio
import logging
from pathlib import Path

logger = logging.getLogger(__name__)


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        prog="sessionlens",
        description="Batch screenshot analysis and work-session summaries",
    )
    parser.add_argument(
        "-c", "--config",
        type=Path,
        default=None,
        help="Path to YAML configuration file (default: config/sessionlens.yaml)",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable debug logging",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    subparsers.add_parser("serve", help="Start the HTTP API server")

    process_parser = subparsers.add_parser("process", help="Analyse the next batch of a session")
    _add_session_args(process_parser)
    process_parser.add_argument(
        "--batch-size", type=int, default=None,
        help="Maximum screenshots in the batch (default: analysis.default_batch_size)",
    )
    process_parser.add_argument(
        "--analysis-type",
        choices=["standard", "vision", "priors", "heuristic"],
        default="standard",
        help="Analysis mode; 'standard' uses the configured strategy",
    )

    summary_parser = subparsers.add_parser("summary", help="Print the session summary")
    _add_session_args(summary_parser)

    status_parser = subparsers.add_parser("status", help="Print batch processing progress")
    _add_session_args(status_parser)

    return parser.parse_args(argv)


def _add_session_args(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--session", required=True, help="Session id")
    parser.add_argument("--user", required=True, help="User id owning the session")


async def _run_command(settings, args) -> int:
    """Build the pipeline, run one operation, print its result as JSON."""
    from sessionlens.domain.models import AnalysisType, BatchProcessingOptions
    from sessionlens.errors import PipelineError
    from sessionlens.pipeline.factory import build_pipeline

    pipeline = build_pipeline(settings)
    try:
        if args.command == "process":
            result = await pipeline.trigger_batch_processing(
                args.user,
                args.session,
                BatchProcessingOptions(
                    batch_size=args.batch_size,
                    analysis_type=AnalysisType(args.analysis_type),
                ),
            )
        elif args.command == "summary":
            result = await pipeline.generate_session_summary(args.user, args.session)
        else:
            result = await pipeline.get_batch_status(args.user, args.session)
    except PipelineError as e:
        if not e.user_visible:
            raise
        print(f"Error: {e}")
        return 1
    finally:
        await pipeline.close()

    print(result.model_dump_json(indent=2))
    return 0


def main(argv: list[str] | None = None) -> int:
    """Main entry point for the sessionlens CLI."""
    args = parse_args(argv)

    if args.command is None:
        parse_args(["--help"])
        return 0

    from sessionlens.config.settings import load_settings
    from sessionlens.utils.logging import setup_logging

    settings = load_settings(args.config)

    if args.verbose:
        settings.logging.level = "DEBUG"

    setup_logging(settings.logging)

    if args.command == "serve":
        logger.info("Starting API server on %s:%d", settings.server.host, settings.server.port)
        from sessionlens.api.server import create_app
        import uvicorn
        uvicorn.run(
            create_app(settings=settings),
            host=settings.server.host,
            port=settings.server.port,
        )
        return 0

    logger.info("Running %s for session %s", args.command, args.session)
    return asyncio.run(_run_command(settings, args))


if __name__ == "__main__":
    raise SystemExit(main())
