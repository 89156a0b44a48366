"""
Logging setup for the API process.

Everything goes to stdout in one format. Uvicorn's loggers follow the
application level; the HTTP client and SQL engine loggers stay at WARNING so
per-request lines (request_id, latency) are not drowned out.
"""
import logging
import sys

DEFAULT_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
QUIET_LOGGERS = ("httpx", "httpcore", "openai", "sqlalchemy.engine")


def setup_logging(level: int | str = logging.INFO, format_string: str | None = None) -> None:
    if isinstance(level, str):
        level = level.upper()
    logging.basicConfig(level=level, format=format_string or DEFAULT_FORMAT, stream=sys.stdout, force=True)
    for name in ("uvicorn", "uvicorn.error", "uvicorn.access", "careportal"):
        logging.getLogger(name).setLevel(level)
    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
