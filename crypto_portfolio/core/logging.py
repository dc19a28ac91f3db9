import logging
import sys

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Chatty at INFO: every SQL statement and HTTP request.
QUIET_LOGGERS = ("sqlalchemy", "aiosqlite", "httpx", "httpcore")


class _StdoutHandler(logging.StreamHandler):
    def __init__(self) -> None:
        super().__init__(sys.stdout)
        self.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT))


def setup_logging(level: str | int = logging.INFO) -> None:
    """Send application logs to stdout.

    Calling it again only adjusts the level.
    """
    root = logging.getLogger()
    if not any(isinstance(handler, _StdoutHandler) for handler in root.handlers):
        root.addHandler(_StdoutHandler())
    root.setLevel(level)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
