import logging
import sys

logger = logging.getLogger("mail_archiver")

formatter = logging.Formatter(
    fmt="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)

stream_handler = logging.StreamHandler(sys.stdout)
stream_handler.setFormatter(formatter)

logger.addHandler(stream_handler)
logger.setLevel(logging.INFO)


def set_log_level(level: str | int) -> None:
    """Apply a level name ("DEBUG", "info", ...) or number to the package logger."""
    if isinstance(level, str):
        level = level.upper()
    logger.setLevel(level)
