import logging
import sys

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

# Libraries that log every query or request at INFO
QUIET_LOGGERS = ("sqlalchemy.engine", "httpx", "httpcore", "aiosqlite")


def setup_logging(level: str = "INFO") -> None:
    """Send taskflow logs to stdout at ``level``; chatty libraries stay at WARNING."""

    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format=LOG_FORMAT,
        handlers=[logging.StreamHandler(sys.stdout)],
        force=True
    )
    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)
