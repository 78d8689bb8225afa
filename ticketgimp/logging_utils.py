import logging
import os
from logging import Logger


def get_logger(name: str) -> Logger:
    logger = logging.getLogger(name.split(".")[-1])
    mode: str = os.getenv("ENV", "prod").lower()

    logger.setLevel(logging.INFO if mode == "prod" else logging.DEBUG)
    logger.handlers.clear()

    format_string = "%(asctime)s | %(levelname)s | %(name)s:%(lineno)d | %(message)s"
    console_handler = logging.StreamHandler()
    console_handler.setFormatter(logging.Formatter(format_string, datefmt="%Y-%m-%d %H:%M:%S"))
    logger.addHandler(console_handler)
    logger.propagate = False

    return logger
