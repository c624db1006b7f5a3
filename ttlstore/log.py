import logging
from typing import Optional

from .settings import settings

FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def get_logger(name: str = "ttlstore", level: Optional[str] = None) -> logging.Logger:
    """Return `name`'s logger with a single stderr handler attached.

    Package modules log through `logging.getLogger(__name__)` and attach
    nothing; applications call this once (for the `ttlstore` logger by
    default) to see those records.

    Parameters
    ----------
    name : str
        Logger name.
    level : Optional[str]
        Level to set. When omitted, a newly configured logger gets
        `settings.log_level` and an existing one keeps its level.
    """

    logger = logging.getLogger(name)
    if level:
        logger.setLevel(level)
    if logger.handlers:
        return logger

    if not level:
        logger.setLevel(settings.log_level)
    sh = logging.StreamHandler()
    sh.setFormatter(logging.Formatter(FORMAT))
    logger.addHandler(sh)
    return logger
