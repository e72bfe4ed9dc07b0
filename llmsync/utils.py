"""Logging setup for the llmsync CLI."""

import logging
from datetime import datetime
from pathlib import Path

from rich.logging import RichHandler

from llmsync.console import err_console

LOGGER_NAME = "llmsync"


def setup_logging(log_dir: Path, *, verbose: bool = False) -> Path:
    """Configure logging for the llmsync CLI.

    Uses delayed file creation - log file only created when first message written.

    Args:
        log_dir: Directory to store log files.
        verbose: Also log DEBUG messages to the console.

    Returns:
        Path to the log file (may not exist until first log message).
    """
    logger = logging.getLogger(LOGGER_NAME)
    logger.handlers.clear()

    timestamp = datetime.now().strftime("%Y-%m-%d-%H:%M")
    _log_path = log_dir / f"{timestamp}.log"

    file_handler = logging.FileHandler(_log_path, delay=True)
    file_handler.setLevel(logging.DEBUG)
    file_handler.setFormatter(
        logging.Formatter(
            "%(asctime)s [%(levelname)s] %(name)s: %(message)s",
            datefmt="%H:%M:%S",
        )
    )
    logger.addHandler(file_handler)

    if verbose:
        console_handler = RichHandler(
            console=err_console, show_path=False, rich_tracebacks=True
        )
        console_handler.setLevel(logging.DEBUG)
        logger.addHandler(console_handler)

    # Always capture DEBUG to file; logger must allow messages through
    logger.setLevel(logging.DEBUG)

    # Silence noisy third-party loggers
    for name in ("httpcore", "httpx", "LiteLLM", "dspy"):
        logging.getLogger(name).setLevel(logging.WARNING)

    return _log_path


def close_logging() -> None:
    """Flush and detach the handlers added by setup_logging."""
    logger = logging.getLogger(LOGGER_NAME)
    for handler in list(logger.handlers):
        handler.flush()
        handler.close()
        logger.removeHandler(handler)
