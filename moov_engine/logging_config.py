import logging
from logging.handlers import RotatingFileHandler

from moov_engine import config


def configure_logging(level: str = config.LOG_LEVEL):
    root = logging.getLogger()
    if root.handlers:
        return

    root.setLevel(getattr(logging, level, logging.INFO))
    formatter = logging.Formatter("%(asctime)s - %(levelname)s - %(name)s - %(message)s")

    stream_handler = logging.StreamHandler()
    stream_handler.setFormatter(formatter)
    root.addHandler(stream_handler)

    if config.LOG_FILE:
        file_handler = RotatingFileHandler(
            config.LOG_FILE,
            maxBytes=5_000_000,
            backupCount=3,
        )
        file_handler.setFormatter(formatter)
        root.addHandler(file_handler)
