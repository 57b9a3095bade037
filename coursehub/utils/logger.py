from __future__ import annotations

import logging
import os
import sys
import time
import uuid
from contextlib import contextmanager
from contextvars import ContextVar
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Iterator, Optional

LOGGER_NAME = "coursehub"

# Correlates client log lines with the backend's via the x-request-id header.
REQUEST_ID: ContextVar[str] = ContextVar("coursehub_request_id", default="-")

LOG_FORMAT = "%(asctime)s %(levelname)-8s %(name)s rid=%(request_id)s %(filename)s:%(lineno)d %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


class RequestIdFilter(logging.Filter):
    def filter(self, record: logging.LogRecord) -> bool:  # noqa: A003
        record.request_id = REQUEST_ID.get()
        return True


class ConsoleFormatter(logging.Formatter):
    """Colors the level name on a TTY. NO_COLOR turns it off."""

    _COLORS = {
        "DEBUG": "\x1b[36m",
        "INFO": "\x1b[32m",
        "WARNING": "\x1b[33m",
        "ERROR": "\x1b[31m",
        "CRITICAL": "\x1b[35m",
    }

    def __init__(self, *args, colored: bool = False, **kwargs):
        super().__init__(*args, **kwargs)
        self.colored = colored

    def formatMessage(self, record: logging.LogRecord) -> str:
        line = super().formatMessage(record)
        color = self._COLORS.get(record.levelname) if self.colored else None
        if color is None:
            return line
        return line.replace(record.levelname, f"{color}{record.levelname}\x1b[0m", 1)


def _tty(stream) -> bool:
    if os.getenv("NO_COLOR"):
        return False
    isatty = getattr(stream, "isatty", None)
    try:
        return bool(isatty and isatty())
    except ValueError:
        # closed stream
        return False


def configure_logging(
    *,
    log_dir: str | Path | None = None,
    log_file: str | None = None,
    level: str | None = None,
    console: bool | None = None,
) -> logging.Logger:
    """
    Attach handlers to the `coursehub` logger once per process.

    File output rotates under `log_dir` (./logs by default). Console output is
    opt-in through COURSEHUB_LOG_TO_CONSOLE. Unset arguments come from Settings;
    LOG_LEVEL in the environment overrides the level.
    """
    root = logging.getLogger(LOGGER_NAME)
    if getattr(root, "_configured", False):
        return root

    from coursehub.config import get_settings

    settings = get_settings()
    directory = Path(log_dir if log_dir is not None else settings.log_dir)
    level_name = (os.getenv("LOG_LEVEL") or level or settings.log_level).upper()
    numeric_level = logging.getLevelNamesMapping().get(level_name, logging.INFO)
    if console is None:
        console = settings.log_to_console

    root.setLevel(numeric_level)
    root.propagate = False
    request_filter = RequestIdFilter()

    directory.mkdir(parents=True, exist_ok=True)
    file_handler = RotatingFileHandler(
        directory / (log_file or settings.log_file),
        maxBytes=5 * 1024 * 1024,
        backupCount=5,
        encoding="utf-8",
    )
    file_handler.setFormatter(logging.Formatter(LOG_FORMAT, DATE_FORMAT))
    file_handler.addFilter(request_filter)
    root.addHandler(file_handler)

    if console:
        stream_handler = logging.StreamHandler(sys.stderr)
        stream_handler.setFormatter(ConsoleFormatter(LOG_FORMAT, DATE_FORMAT, colored=_tty(sys.stderr)))
        stream_handler.addFilter(request_filter)
        root.addHandler(stream_handler)

    root._configured = True  # type: ignore[attr-defined]
    return root


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(f"{LOGGER_NAME}.{name}")


def set_request_id(request_id: Optional[str] = None) -> str:
    rid = request_id or uuid.uuid4().hex[:12]
    REQUEST_ID.set(rid)
    return rid


def clear_request_id() -> None:
    REQUEST_ID.set("-")


@contextmanager
def log_request(logger: logging.Logger, name: str) -> Iterator[None]:
    """
    Time a client operation and log its outcome:

        with log_request(logger, "dashboard progress fetch"):
            payload = await client.get(...)
    """
    started = time.perf_counter()
    logger.debug("%s started", name)
    try:
        yield
    except Exception as e:
        logger.warning("%s failed after %dms: %s", name, (time.perf_counter() - started) * 1000, e)
        raise
    logger.info("%s done in %dms", name, (time.perf_counter() - started) * 1000)
