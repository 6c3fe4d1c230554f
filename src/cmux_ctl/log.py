"""File logging for cmux-ctl.

The terminal carries command output only; diagnostics go to a rotating log in the data directory.
"""

import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path

PACKAGE_LOGGER = "cmux_ctl"
LOG_FORMAT = "%(asctime)s %(levelname)-8s [%(process)d] %(name)s: %(message)s"


def setup_logging(log_path: Path, level: str = "INFO") -> None:
    """Attach a rotating file handler to the package logger.

    Repeated calls in one process keep the first handler, so in-process CLI runs do not stack handlers.
    """
    package_logger = logging.getLogger(PACKAGE_LOGGER)
    if package_logger.handlers:
        return

    log_path.parent.mkdir(parents=True, exist_ok=True)
    handler = RotatingFileHandler(log_path, maxBytes=512_000, backupCount=2, encoding="utf-8")
    handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt="%Y-%m-%dT%H:%M:%S"))
    package_logger.addHandler(handler)
    package_logger.setLevel(level)
