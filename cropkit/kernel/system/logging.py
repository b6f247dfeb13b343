import logging
import os
import sys
from typing import Optional

ROOT_LOGGER_NAME = "cropkit"
_FORMAT = "[%(asctime)s] %(levelname)s %(name)s: %(message)s"
_DATE_FORMAT = "%H:%M:%S"
_HANDLER_NAME = "cropkit.stderr"

_LEVELS = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warning": logging.WARNING,
    "error": logging.ERROR,
    "critical": logging.CRITICAL,
}


def setup_logging(level: int = logging.INFO) -> logging.Logger:
    """
    Configures the package logger. Idempotent; CROPKIT_LOG_LEVEL overrides `level`.
    """
    logger = logging.getLogger(ROOT_LOGGER_NAME)

    env_level = (os.getenv("CROPKIT_LOG_LEVEL") or "").strip().lower()
    logger.setLevel(_LEVELS.get(env_level, level))

    # owned handler is found by name; stderr itself may be swapped by callers
    handler: Optional[logging.Handler] = next((h for h in logger.handlers if h.get_name() == _HANDLER_NAME), None)

    if handler is None:
        handler = logging.StreamHandler(stream=sys.stderr)
        handler.set_name(_HANDLER_NAME)
        logger.addHandler(handler)

    handler.setFormatter(logging.Formatter(fmt=_FORMAT, datefmt=_DATE_FORMAT))
    logger.propagate = False
    return logger


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """
    Child of the package logger. Module names already under `cropkit.` are used as-is.
    """
    if not name or name == ROOT_LOGGER_NAME:
        return logging.getLogger(ROOT_LOGGER_NAME)
    if name.startswith(ROOT_LOGGER_NAME + "."):
        return logging.getLogger(name)
    return logging.getLogger(ROOT_LOGGER_NAME).getChild(name)
