"""
Command-line interface for polling scenarios.

Provides commands for listing and running scenarios against a meeting server.
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path

import structlog
from playwright.async_api import Error as PlaywrightError

from pollqa import __version__
from pollqa.config import load_settings
from pollqa.runner.scenario_runner import ScenarioResult, run_scenarios
from pollqa.scenarios.polling import SCENARIOS

logger = structlog.get_logger(__name__)


def main(argv: list[str] | None = None) -> int:
    """Run the ``pollqa`` command line and return its exit code."""
    parser = create_parser()
    args = parser.parse_args(argv)

    configure_logging(args.verbose)

    if args.command is None:
        parser.print_help()
        return 1
    structlog.contextvars.bind_contextvars(command=args.command)

    try:
        return args.func(args)
    except KeyboardInterrupt:
        print("\nScenario run aborted", file=sys.stderr)
        return 130
    except (OSError, ValueError) as e:
        # Unreadable config file or invalid settings; no browser was started.
        logger.error("Invalid configuration", error=str(e))
        if args.verbose:
            raise
        print(f"Configuration error: {e}", file=sys.stderr)
        return 1
    except PlaywrightError as e:
        logger.error("Browser could not be driven", error=str(e))
        if args.verbose:
            raise
        print(f"Browser error: {e}", file=sys.stderr)
        return 1
    finally:
        structlog.contextvars.clear_contextvars()


def create_parser() -> argparse.ArgumentParser:
    """Create argument parser."""
    parser = argparse.ArgumentParser(
        prog="pollqa",
        description="Dual-session end-to-end scenarios for live meeting polls",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"pollqa {__version__}",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable verbose output",
    )
    parser.add_argument(
        "--config",
        help="Path to YAML settings file",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    list_parser = subparsers.add_parser("list", help="List scenario names")
    list_parser.set_defaults(func=cmd_list)

    run_parser = subparsers.add_parser("run", help="Run scenarios")
    run_parser.add_argument(
        "names",
        nargs="*",
        help="Scenario names (default: all)",
    )
    run_parser.add_argument(
        "--isolate",
        action="store_true",
        help="Use a fresh moderator/attendee pair per scenario",
    )
    run_parser.add_argument(
        "--headed",
        action="store_true",
        help="Show the browser windows",
    )
    run_parser.add_argument(
        "--artifacts-dir",
        help="Directory for failure screenshots",
    )
    run_parser.add_argument(
        "--output-file",
        help="Write a JSON summary to this path",
    )
    run_parser.set_defaults(func=cmd_run)

    return parser


def configure_logging(verbose: bool) -> None:
    """
    Send structlog events through stdlib logging on stderr.

    Verbose runs get readable console lines at DEBUG; otherwise JSON lines
    at INFO, so stdout carries only the scenario summary.
    """
    renderer = (
        structlog.dev.ConsoleRenderer() if verbose else structlog.processors.JSONRenderer()
    )
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.processors.format_exc_info,
            renderer,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(message)s",
        stream=sys.stderr,
    )


def cmd_list(args: argparse.Namespace) -> int:
    """List scenario names."""
    for name in SCENARIOS:
        print(name)
    return 0


def cmd_run(args: argparse.Namespace) -> int:
    """Run scenarios and print a summary."""
    unknown = [name for name in args.names if name not in SCENARIOS]
    if unknown:
        print(f"Unknown scenario(s): {', '.join(unknown)}", file=sys.stderr)
        print(f"Available: {', '.join(SCENARIOS)}", file=sys.stderr)
        return 1

    settings = load_settings(
        args.config,
        headless=False if args.headed else None,
        artifacts_dir=args.artifacts_dir,
    )
    if not settings.has_secret:
        print("Error: POLLQA_SHARED_SECRET is required", file=sys.stderr)
        return 1

    logger.info("Running scenarios", server=settings.server_url, isolate=args.isolate)
    results = asyncio.run(run_scenarios(args.names or None, settings, isolate=args.isolate))

    print_summary(results)
    if args.output_file:
        write_summary(results, Path(args.output_file))

    return 0 if all(r.passed for r in results) else 1


def print_summary(results: list[ScenarioResult]) -> None:
    """Print one line per scenario and a total."""
    for result in results:
        line = f"{result.status.upper():7} {result.name} ({result.duration_ms}ms)"
        if result.error:
            line += f"\n        [{result.failure_kind}] {result.error}"
        print(line)
    passed = sum(1 for r in results if r.passed)
    print(f"\n{passed}/{len(results)} scenarios passed")


def write_summary(results: list[ScenarioResult], path: Path) -> None:
    """Write results as JSON."""
    path.parent.mkdir(parents=True, exist_ok=True)
    payload = {
        "total": len(results),
        "passed": sum(1 for r in results if r.passed),
        "results": [r.to_dict() for r in results],
    }
    path.write_text(json.dumps(payload, indent=2))
    logger.info("Wrote summary", path=str(path))


if __name__ == "__main__":
    sys.exit(main())
