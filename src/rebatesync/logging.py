from __future__ import annotations

import logging
import logging.handlers
import os
from pathlib import Path


def configure_logging(log_dir: Path | None = None) -> None:
    """Configure console logging and, with a log_dir, a daily rotating file."""
    level_name = os.environ.get("REBATESYNC_LOG_LEVEL", "INFO").upper()
    level = getattr(logging, level_name, logging.INFO)

    formatter = logging.Formatter(
        "[%(asctime)s] [%(levelname)s] [%(name)s] %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S"
    )

    root_logger = logging.getLogger()
    root_logger.setLevel(level)

    # Remove existing handlers to avoid duplicates
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    console_handler = logging.StreamHandler()
    console_handler.setLevel(level)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    # One file per day, two weeks kept
    if log_dir:
        log_dir = Path(log_dir)
        log_dir.mkdir(parents=True, exist_ok=True)

        file_handler = logging.handlers.TimedRotatingFileHandler(
            log_dir / "service.log",
            when="midnight",
            backupCount=14,
            encoding="utf-8",
        )
        file_handler.setLevel(level)
        file_handler.setFormatter(formatter)
        root_logger.addHandler(file_handler)

    # aiohttp access chatter is not useful at INFO
    logging.getLogger("aiohttp").setLevel(max(level, logging.WARNING))
