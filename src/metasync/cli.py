"""CLI entry point for a metasync run."""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from metasync.config.settings import Settings
    from metasync.models.report import SyncReport

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_FATAL = 1
EXIT_ITEM_FAILURES = 2


def main(argv: list[str] | None = None) -> None:
    """Main CLI entry point: run one synchronization and exit."""
    parser = argparse.ArgumentParser(
        prog="metasync",
        description="metasync: publish Markdown frontmatter as object-storage metadata",
    )
    parser.add_argument(
        "--config",
        "-c",
        type=str,
        default="config.yaml",
        help="Path to YAML or JSON configuration file",
    )
    parser.add_argument(
        "--max-concurrent-jobs",
        "-j",
        type=int,
        default=None,
        help="Max documents processed concurrently (overrides config)",
    )
    parser.add_argument(
        "--log-level",
        type=str,
        choices=["debug", "info", "warning", "error"],
        default=None,
        help="Log level (overrides config)",
    )
    parser.add_argument(
        "--fail-on-errors",
        action="store_true",
        help=f"Exit with status {EXIT_ITEM_FAILURES} if any document failed",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"metasync {_get_version()}",
    )

    args = parser.parse_args(argv)

    import yaml  # type: ignore[import-untyped]
    from pydantic import ValidationError

    from metasync.config.settings import Settings
    from metasync.observability.logging import setup_logging

    config_path = Path(args.config)
    if not config_path.exists():
        print(f"Error: Config file not found: {config_path}", file=sys.stderr)
        sys.exit(EXIT_FATAL)

    try:
        settings = Settings.from_yaml(config_path)
    except (ValidationError, yaml.YAMLError) as e:
        print(f"Error: Invalid configuration in {config_path}:\n{e}", file=sys.stderr)
        sys.exit(EXIT_FATAL)

    # Apply CLI overrides
    if args.max_concurrent_jobs is not None:
        if args.max_concurrent_jobs < 1:
            parser.error("--max-concurrent-jobs must be at least 1")
        settings.max_concurrent_jobs = args.max_concurrent_jobs
    if args.log_level:
        settings.observability.log_level = args.log_level

    setup_logging(settings.observability)

    try:
        report = asyncio.run(run(settings))
    except Exception:
        logger.error("Synchronization aborted", exc_info=True)
        sys.exit(EXIT_FATAL)

    if args.fail_on_errors and report.failed_count:
        sys.exit(EXIT_ITEM_FAILURES)
    sys.exit(EXIT_OK)


async def run(settings: Settings) -> SyncReport:
    """Create the configured storage backend, run the engine, and shut down.

    Args:
        settings: Validated application settings.

    Returns:
        The report of the completed run.
    """
    from metasync.core.engine import SyncEngine
    from metasync.storage.base.registry import StorageRegistry

    registry = StorageRegistry.with_builtins()
    storage = await registry.initialize_storage(settings.storage.type, settings.storage.config)
    try:
        engine = SyncEngine(storage, max_concurrent_jobs=settings.max_concurrent_jobs)
        return await engine.run()
    finally:
        await storage.shutdown()


def _get_version() -> str:
    """Get the package version."""
    try:
        from metasync import __version__

        return __version__
    except ImportError:
        return "unknown"


if __name__ == "__main__":
    main()
