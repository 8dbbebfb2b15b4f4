"""
Logging setup for dopler.

- Library modules log through logging.getLogger(__name__) and never
  attach handlers themselves
- configure_logging() is for applications and scripts: console handler,
  optional file handler
"""

import logging
import sys
from pathlib import Path
from typing import Optional, Union

CONSOLE_FORMAT = "%(levelname)s | %(name)s | %(message)s"
FILE_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"


def configure_logging(
    level: str = "INFO",
    log_file: Optional[Union[str, Path]] = None,
    log_to_console: bool = True,
) -> logging.Logger:
    """Configure the 'dopler' logger. Call once at program startup."""
    level_value = getattr(logging, level.upper(), logging.INFO)

    package_logger = logging.getLogger("dopler")
    package_logger.setLevel(level_value)
    # Avoid duplicate handlers when called again
    for h in list(package_logger.handlers):
        package_logger.removeHandler(h)
        h.close()

    if log_to_console:
        console = logging.StreamHandler(sys.stderr)
        console.setLevel(level_value)
        console.setFormatter(logging.Formatter(CONSOLE_FORMAT))
        package_logger.addHandler(console)

    if log_file is not None:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_path, encoding="utf-8")
        file_handler.setLevel(level_value)
        file_handler.setFormatter(logging.Formatter(FILE_FORMAT))
        package_logger.addHandler(file_handler)

    return package_logger


def get_logger(name: str) -> logging.Logger:
    """Return a logger for the given module (e.g. dopler.deserializer)."""
    return logging.getLogger(name)
