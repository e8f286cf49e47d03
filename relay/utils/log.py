"""Package logger and the ``log_*`` helpers used across relay.

The level comes from ``RELAY_LOG_LEVEL`` (default ``WARNING``); setting
``RELAY_DEBUG=true`` forces ``DEBUG``. No handler is attached unless the
application asks for one with :func:`use_default_handler`.
"""

import logging
import os
from typing import Any, Optional, Union

LOGGER_NAME = "relay"
DEFAULT_FORMAT = "%(asctime)s %(levelname)-8s %(name)s: %(message)s"

logger = logging.getLogger(LOGGER_NAME)
logger.addHandler(logging.NullHandler())


def _level_from_env() -> int:
  if os.getenv("RELAY_DEBUG", "").lower() in ("1", "true", "yes"):
    return logging.DEBUG
  name = os.getenv("RELAY_LOG_LEVEL", "WARNING").upper()
  level = logging.getLevelName(name)
  return level if isinstance(level, int) else logging.WARNING


logger.setLevel(_level_from_env())


def set_log_level(level: Union[int, str]) -> None:
  """Set the relay logger level (``"DEBUG"``, ``logging.INFO``, ...)."""
  if isinstance(level, str):
    level = logging.getLevelName(level.upper())
  logger.setLevel(level)


def use_default_handler(level: Optional[Union[int, str]] = None, fmt: str = DEFAULT_FORMAT) -> logging.Handler:
  """Attach a stderr handler to the relay logger and return it."""
  handler = logging.StreamHandler()
  handler.setFormatter(logging.Formatter(fmt))
  logger.addHandler(handler)
  if level is not None:
    set_log_level(level)
  return handler


def log_debug(msg: str, *args: Any, **kwargs: Any) -> None:
  logger.debug(msg, *args, **kwargs)


def log_info(msg: str, *args: Any, **kwargs: Any) -> None:
  logger.info(msg, *args, **kwargs)


def log_warning(msg: str, *args: Any, **kwargs: Any) -> None:
  logger.warning(msg, *args, **kwargs)


def log_error(msg: str, *args: Any, **kwargs: Any) -> None:
  logger.error(msg, *args, **kwargs)
