# sourcing/config/logging_config.py

"""Per-run logging for the ``product_sourcing`` logger tree.

Every launch writes to its own ``logs/run_<timestamp>.log`` so that the
OAuth, API, aggregation and fallback stages of one run can be read
together.  Only warnings and errors reach the terminal.
"""

import logging
import sys
from datetime import datetime
from pathlib import Path

from sourcing.config.settings import Settings

ROOT_LOGGER_NAME = "product_sourcing"

_FILE_FORMAT = (
    "%(asctime)s | %(levelname)-8s | %(name)s | "
    "%(module)s:%(funcName)s:%(lineno)d | %(message)s"
)
_STDERR_FORMAT = "%(asctime)s | %(levelname)-8s | %(message)s"
_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def _configured(
    handler: logging.Handler, level: int, fmt: str,
) -> logging.Handler:
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(fmt, datefmt=_DATE_FORMAT))
    return handler


def _existing_log_file(root_logger: logging.Logger) -> Path | None:
    for handler in root_logger.handlers:
        if isinstance(handler, logging.FileHandler):
            return Path(handler.baseFilename)
    return None


def setup_logging() -> Path:
    """Attach the run's file and stderr handlers to ``product_sourcing``.

    Safe to call more than once: later calls leave the handlers alone and
    return the file already in use.

    Returns:
        Path of this run's log file.
    """
    root_logger = logging.getLogger(ROOT_LOGGER_NAME)
    root_logger.setLevel(logging.DEBUG)

    current = _existing_log_file(root_logger)
    if current is not None:
        return current

    Settings.LOGS_DIR.mkdir(parents=True, exist_ok=True)
    stamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    log_file = Settings.LOGS_DIR / f"run_{stamp}.log"

    root_logger.addHandler(
        _configured(
            logging.FileHandler(log_file, encoding="utf-8"),
            logging.DEBUG,
            _FILE_FORMAT,
        )
    )
    root_logger.addHandler(
        _configured(
            logging.StreamHandler(sys.stderr), logging.WARNING, _STDERR_FORMAT,
        )
    )
    root_logger.info("Logging initialised, log file: %s", log_file)
    return log_file
