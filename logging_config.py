"""
logging_config.py
=================
Console / file logging for the galaxy generator scripts.

The library modules only create loggers (``logging.getLogger(__name__)``);
scripts call ``setup_logging()`` once at start-up.
"""

import logging
import sys
from typing import Optional

LOGGER_NAMES = (
    "galaxygen",
    "density",
    "poisson_disc",
    "hyperlanes",
)


def setup_logging(level: int = logging.INFO, log_file: Optional[str] = None) -> None:
    """Attach a stdout handler (and optionally a file handler) to every
    generator logger.

    Args:
        level: Logging level (e.g. logging.DEBUG, logging.INFO)
        log_file: Optional path to save logs to a file.
    """
    formatter = logging.Formatter(
        '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        datefmt='%H:%M:%S'
    )

    handlers: list[logging.Handler] = []

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(level)
    console_handler.setFormatter(formatter)
    handlers.append(console_handler)

    if log_file:
        file_handler = logging.FileHandler(log_file, mode='w', encoding='utf-8')
        file_handler.setLevel(level)
        file_handler.setFormatter(formatter)
        handlers.append(file_handler)

    for name in LOGGER_NAMES:
        logger = logging.getLogger(name)
        logger.setLevel(level)
        # avoid duplicate output when called twice
        if logger.hasHandlers():
            logger.handlers.clear()
        for handler in handlers:
            logger.addHandler(handler)
        logger.propagate = False

    logging.getLogger("galaxygen").debug("Logging initialized.")
