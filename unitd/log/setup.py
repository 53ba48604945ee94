import logging
import sys
from pathlib import Path
from typing import Optional

from unitd.local.config import effective_settings as config

LOG_FORMAT = '%(asctime)s - %(levelname)-8s - [%(name)s] - %(message)s'


def setup_logging(console_level: int = logging.WARNING, log_file: Optional[Path] = None) -> None:
    """
    Configures the root logger for the application.
    This sets up a console handler on stderr and optionally a file handler,
    clearing any previously configured handlers to prevent duplication.

    Console output goes to stderr so that command results on stdout stay
    machine-readable.

    :param console_level: The logging level for the console output (e.g., logging.INFO).
    :param log_file: If given, all messages at DEBUG and above are also written here.
    """
    root_logger = logging.getLogger()
    # Set root level to lowest to capture all messages for handler filtering
    root_logger.setLevel(logging.DEBUG)

    # Clear any existing handlers to prevent re-adding them on re-runs
    if root_logger.hasHandlers():
        root_logger.handlers.clear()

    # --- Console Handler ---
    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(console_level)
    console_handler.setFormatter(logging.Formatter(LOG_FORMAT))
    root_logger.addHandler(console_handler)

    # --- File Handler (daemon mode) ---
    if log_file is not None:
        try:
            log_file.parent.mkdir(parents=True, exist_ok=True)
            file_handler = logging.FileHandler(log_file, encoding="utf-8")
            file_handler.setLevel(logging.DEBUG)
            file_handler.setFormatter(logging.Formatter(LOG_FORMAT))
            root_logger.addHandler(file_handler)
        except OSError as e:
            root_logger.error(f"Failed to initialize file logging handler at {log_file}: {e}")


def default_log_file() -> Path:
    """Returns the configured daemon log file path."""
    return Path(config.LOG_FILE_PATH)
