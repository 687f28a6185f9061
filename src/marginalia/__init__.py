"""Marginalia - persistent text-range highlights for rendered documents.

Highlights are captured against the flattened text of a rendered
document tree and restored onto later renders of the same document.
"""

import logging
import os
from logging.handlers import RotatingFileHandler
from pathlib import Path

__version__ = "0.1.0"

_LOG_MAX_BYTES = 10 * 1024 * 1024
_LOG_BACKUPS = 5
_FILE_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s:%(lineno)d | %(message)s"


def _installed_log_file(root_logger: logging.Logger) -> Path | None:
    """Path of the rotating log a previous setup_logging() attached, if any."""
    for handler in root_logger.handlers:
        if isinstance(handler, RotatingFileHandler):
            return Path(handler.baseFilename)
    return None


def setup_logging(log_dir: Path | None = None) -> Path:
    """Send DEBUG and up to a rotating per-process file, INFO and up to stderr.

    Safe to call more than once: later calls keep the handlers of the first
    and return its log file.

    Args:
        log_dir: Directory for log files; defaults to ``settings.app.log_dir``.

    Returns:
        Path of the log file in use.
    """
    root_logger = logging.getLogger()
    existing = _installed_log_file(root_logger)
    if existing is not None:
        return existing

    if log_dir is None:
        from marginalia.config import get_settings

        log_dir = get_settings().app.log_dir
    log_dir.mkdir(parents=True, exist_ok=True)
    log_file = log_dir / f"marginalia.{os.getpid()}.log"

    to_file = RotatingFileHandler(
        log_file, maxBytes=_LOG_MAX_BYTES, backupCount=_LOG_BACKUPS, encoding="utf-8"
    )
    to_file.setLevel(logging.DEBUG)
    to_file.setFormatter(logging.Formatter(_FILE_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))

    to_console = logging.StreamHandler()
    to_console.setLevel(logging.INFO)
    to_console.setFormatter(logging.Formatter("%(levelname)s: %(message)s"))

    root_logger.setLevel(logging.DEBUG)
    root_logger.addHandler(to_file)
    root_logger.addHandler(to_console)

    logging.getLogger(__name__).info("Logging to %s", log_file.absolute())
    return log_file
