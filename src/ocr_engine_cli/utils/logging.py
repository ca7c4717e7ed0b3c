from __future__ import annotations

import logging
from logging import Logger

ROOT_LOGGER_NAME = "ocr_engine_cli"


def configure_logging(level: int = logging.INFO) -> Logger:
    """
    Configure the package logger with a concise formatter suitable for CLI output.
    """
    logger = logging.getLogger(ROOT_LOGGER_NAME)
    if logger.handlers:
        logger.setLevel(level)
        return logger

    handler = logging.StreamHandler()
    formatter = logging.Formatter(
        fmt="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    handler.setFormatter(formatter)
    logger.addHandler(handler)
    logger.setLevel(level)
    return logger


def get_logger(name: str) -> Logger:
    return logging.getLogger(ROOT_LOGGER_NAME).getChild(name)
