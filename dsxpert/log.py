import logging
import os
import sys


def get_logger(name: str = "dsxpert") -> logging.Logger:
    logger = logging.getLogger(name)
    if logger.handlers:
        return logger

    # Level from environment (default INFO)
    logger.setLevel(os.getenv("LOG_LEVEL", "INFO").upper())

    # Always log to stdout with a short prefix per component
    handler = logging.StreamHandler(sys.stdout)
    formatter = logging.Formatter("%(levelname)s [%(name)s] %(message)s")
    handler.setFormatter(formatter)
    logger.addHandler(handler)

    # Avoid duplicate logs via root
    logger.propagate = False
    return logger
