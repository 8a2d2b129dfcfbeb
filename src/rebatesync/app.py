from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path

from .config import load_settings
from .di import build_container
from .exceptions import ConfigurationError
from .logging import configure_logging
from .runtime import run

logger = logging.getLogger(__name__)


def main(argv: list[str] | None = None) -> int:
    """Main entry point supporting both the long-running service and CLI commands.

    - `rebatesync` or `rebatesync bot`: run every exchange worker
    - `rebatesync <typer-subcommand>`: run CLI mode (e.g. `rebatesync sync-once ...`)
    """
    if argv is None:
        argv = sys.argv[1:]

    if not argv:
        return _run_bot_mode([])

    if argv[0] == "bot":
        return _run_bot_mode(argv[1:])

    return _run_cli_mode(argv)


def _run_bot_mode(argv: list[str]) -> int:
    """Run the sync service until interrupted."""
    parser = argparse.ArgumentParser(
        prog="rebatesync bot", description="Poll exchange rebate APIs and forward records to the backend"
    )
    parser.add_argument(
        "--config",
        default=None,
        help="Path to YAML config file (default: REBATESYNC_CONFIG or ./config.yml)",
    )
    parser.add_argument(
        "--log-dir",
        default="logs",
        help="Directory for daily rotated log files (default: ./logs)",
    )

    args = parser.parse_args(argv)
    configure_logging(Path(args.log_dir))

    try:
        settings = load_settings(args.config)
    except ValueError as e:
        logger.error("%s", e)
        return 1

    from .exchanges.init import create_exchange_adapters_from_settings

    adapters = create_exchange_adapters_from_settings(settings)
    if not adapters:
        logger.error("No exchange could be started, check credentials in the configuration")
        return 1

    try:
        container = build_container(settings, adapters)
    except ConfigurationError as e:
        logger.error("Configuration error: %s", e)
        return 1

    logger.info("Starting Exchange Service...")
    asyncio.run(run(container))
    logger.info("rebatesync exit")

    return 0


def _run_cli_mode(argv: list[str]) -> int:
    """Run in CLI mode using Typer."""
    try:
        configure_logging(Path("logs"))

        # Import CLI app here to avoid circular import
        from .cli import run_cli
        run_cli(argv)
        return 0
    except SystemExit as e:
        return e.code if isinstance(e.code, int) else 0
    except Exception as e:
        logger.error("CLI error: %s", e, exc_info=True)
        return 1
