import logging
import sys

from sports_booking.core import config


LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def configure_logging(log_level: str | None = None) -> None:
    level_name = (log_level or config.LOG_LEVEL).upper()
    logging.basicConfig(
        format=LOG_FORMAT,
        stream=sys.stdout,
        level=getattr(logging, level_name, logging.INFO),
    )
    # SQL statements are only interesting when SQL_ECHO is on.
    if not config.SQL_ECHO:
        logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
