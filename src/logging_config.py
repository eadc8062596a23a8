# src/logging_config.py
#
# Centralized logging configuration for the auto RBU/CBU service

import logging
import sys

from config.settings import LOG_LEVEL

# dedicated logger for outcome entries (one per processed booking)
OUTCOME_LOGGER_NAME = "auto_rbu_and_cbu"

_configured = False


def setup_logging(log_level: str = None):
    """
    Setup console logging for the application.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
                   Defaults to LOG_LEVEL from settings
    """
    global _configured

    if log_level is None:
        log_level = LOG_LEVEL

    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, log_level.upper(), logging.INFO))

    # uvicorn reload imports twice, don't stack handlers
    if _configured:
        return root_logger

    formatter = logging.Formatter(
        fmt='%(asctime)s [%(levelname)s] %(name)s: %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    # Suppress noisy third-party loggers
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("urllib3").setLevel(logging.WARNING)

    _configured = True
    return root_logger


# Initialize logging on import
setup_logging()

logger = logging.getLogger(__name__)
