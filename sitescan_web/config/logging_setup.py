import logging
import sys
from pathlib import Path
from typing import Optional, Union

ROOT_LOGGER_NAME = "sitescan_web"

LOG_FORMAT = "[ %(asctime)s ] : %(levelname)s : %(name)s : %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def setup_logging(
    level: Union[str, int] = "INFO",
    log_file: Optional[Path] = None,
    name: str = ROOT_LOGGER_NAME,
) -> logging.Logger:
    """
    Configures the package logger with a console handler and an optional file handler.
    Module loggers (logging.getLogger(__name__)) propagate up to it.
    Calling it again only updates the level.
    """
    logger = logging.getLogger(name)
    logger.setLevel(level)

    # Avoid duplicate handlers when the app factory runs more than once (tests)
    if logger.handlers:
        return logger

    formatter = logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    if log_file:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    return logger
