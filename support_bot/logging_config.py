"""
Logging setup for the support bot.

Every module logs through ``logging.getLogger(__name__)``, so the whole
application hangs off the ``support_bot`` logger. setup_logging() sets that
logger to config.LOG_LEVEL and holds the HTTP, OpenAI, SQLAlchemy and Redis
client loggers (config.QUIET_LOGGERS) at WARNING unless the app runs at
DEBUG, where they fall back to the root level.

main.py calls setup_logging() once at import; scripts such as seed_data can
call it themselves.
"""
import logging
import sys
from typing import Optional

from . import config

APP_LOGGER = "support_bot"


def resolve_level(level: Optional[str] = None) -> int:
    """Numeric level for a level name; unknown names mean INFO."""
    name = (level or config.LOG_LEVEL or "INFO").upper()
    numeric = logging.getLevelName(name)
    return numeric if isinstance(numeric, int) else logging.INFO


def setup_logging(level: Optional[str] = None) -> int:
    """Configure the stdout handler and logger levels. Returns the app level."""
    app_level = resolve_level(level)

    logging.basicConfig(
        level=app_level,
        format=config.LOG_FORMAT,
        datefmt=config.LOG_DATE_FORMAT,
        stream=sys.stdout,
    )
    logging.getLogger(APP_LOGGER).setLevel(app_level)

    quiet_level = logging.NOTSET if app_level <= logging.DEBUG else logging.WARNING
    for name in config.QUIET_LOGGERS:
        logging.getLogger(name).setLevel(quiet_level)

    logging.getLogger(__name__).debug("Logging configured at %s", logging.getLevelName(app_level))
    return app_level
