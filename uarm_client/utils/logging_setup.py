"""
Logging setup with console and file handlers.
"""

import logging
import sys
from logging.handlers import RotatingFileHandler

from uarm_client.config.models import LoggingConfig


LOG_FORMAT = "[%(asctime)s] %(levelname)s [%(name)s]: %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def setup_logging(config: LoggingConfig) -> None:
    """
    Configure the root logger from `config`.

    Replaces any existing root handlers with a stdout handler and, when
    `config.file` is set, a rotating file handler (10 MB, 5 backups).
    """
    root = logging.getLogger()
    root.setLevel(config.level)
    root.handlers.clear()

    formatter = logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(config.level)
    console_handler.setFormatter(formatter)
    root.addHandler(console_handler)

    if config.file:
        try:
            file_handler = RotatingFileHandler(
                config.file,
                maxBytes=10 * 1024 * 1024,
                backupCount=5,
                encoding="utf-8"
            )
        except IOError as e:
            root.error(f"Failed to create log file {config.file}: {e}")
        else:
            file_handler.setLevel(config.level)
            file_handler.setFormatter(formatter)
            root.addHandler(file_handler)
            root.info(f"Logging to file: {config.file}")

    # pyserial is chatty at DEBUG
    logging.getLogger("serial").setLevel(max(logging.INFO, root.level))
    root.debug(f"Logging initialized at level: {config.level}")
