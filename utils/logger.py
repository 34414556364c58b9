# utils/logger.py - Centralized logging configuration for Ask ED
import logging
import sys

# Log format with timestamp, level, module, and message
LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)-20s | %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def setup_logger(name: str, level: int = logging.INFO) -> logging.Logger:
    """Create a configured logger instance."""
    logger = logging.getLogger(name)

    # Avoid adding handlers multiple times
    if not logger.handlers:
        logger.setLevel(level)

        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setLevel(level)
        console_handler.setFormatter(logging.Formatter(LOG_FORMAT, DATE_FORMAT))
        logger.addHandler(console_handler)

    return logger


def get_server_logger():
    """Logger for API server operations."""
    return setup_logger("askbot.server")


def get_ingestion_logger():
    """Logger for datasheet fetching and extraction."""
    return setup_logger("askbot.ingestion")


def get_chain_logger():
    """Logger for prompt, model and post-processing steps."""
    return setup_logger("askbot.chain")
