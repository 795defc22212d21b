"""
Package-wide logger for RepoSync.
"""

import logging

LOGGER_NAME = "RepoSync"
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def _build_logger() -> logging.Logger:
    log = logging.getLogger(LOGGER_NAME)
    if not log.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        log.addHandler(handler)
    log.setLevel(logging.INFO)
    return log


logger = _build_logger()


__all__ = ["logger", "LOGGER_NAME"]
