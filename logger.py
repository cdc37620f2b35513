"""Logging configuration for Saldo.

Application modules log through the ``saldo`` logger; ingestion modules log
under their own module names. Both get the same dated file and console
handlers.
"""

import logging
from datetime import date
from config import Config

LOGGER_NAME = "saldo"

# Module-name loggers that share the application handlers
_HANDLED_LOGGERS = (LOGGER_NAME, "ingestion")

# Libraries that are noisy at DEBUG (HTTP traces, PDF layout analysis)
_QUIET_LOGGERS = ("httpx", "httpcore", "openai", "pdfminer")


def setup_logging(config: Config) -> logging.Logger:
    """Attach file and console handlers and return the application logger.

    Safe to call more than once: existing handlers are replaced.

    Args:
        config: Application configuration containing log settings.
    """
    config.log_dir.mkdir(parents=True, exist_ok=True)

    detailed_formatter = logging.Formatter(
        "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    console_formatter = logging.Formatter("%(levelname)s - %(message)s")

    log_path = config.log_dir / f"{LOGGER_NAME}-{date.today().isoformat()}.log"
    file_handler = logging.FileHandler(log_path, encoding="utf-8")
    file_handler.setFormatter(detailed_formatter)

    console_handler = logging.StreamHandler()
    console_handler.setFormatter(console_formatter)

    for name in _HANDLED_LOGGERS:
        logger = logging.getLogger(name)
        logger.setLevel(config.log_level)
        logger.handlers.clear()
        logger.addHandler(file_handler)
        logger.addHandler(console_handler)
        logger.propagate = False

    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    return logging.getLogger(LOGGER_NAME)


def get_logger() -> logging.Logger:
    return logging.getLogger(LOGGER_NAME)
