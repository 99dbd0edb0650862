import json
import logging
import sys
import traceback
from pathlib import Path
from typing import Any, cast

from loguru import logger
from loguru._defaults import LOGURU_FORMAT

JSON_FORMAT = "{extra[serialized]}"


class InterceptHandler(logging.Handler):
    """A custom logging handler to intercept standard logging messages.

    This handler redirects standard logging messages (from httpx and httpcore,
    for instance) to Loguru.
    """

    def emit(self, record: logging.LogRecord) -> None:
        """Emits a log record to the Loguru logger.

        Args:
            record: The log record to emit.
        """
        try:
            level = logger.level(record.levelname).name
        except ValueError:
            level = str(record.levelno)

        frame, depth = logging.currentframe(), 2
        while frame and frame.f_code.co_filename == logging.__file__:
            frame = cast(Any, frame.f_back)
            depth += 1

        logger.opt(depth=depth, exception=record.exc_info).log(
            level, record.getMessage()
        )


def _serialize_record(record: dict[str, Any]) -> None:
    """Patcher that stores a single-line JSON rendering of the record in `extra`."""
    log_object = {
        "timestamp": record["time"].isoformat(),
        "level": record["level"].name,
        "message": record["message"],
        "source": {
            "name": record["name"],
            "file": f"{record['file'].name}:{record['line']}",
            "function": record["function"],
        },
        "extra": {k: v for k, v in record["extra"].items() if k != "serialized"},
    }
    exception = record["exception"]
    if exception is not None:
        log_object["exception"] = "".join(
            traceback.format_exception(exception.type, exception.value, exception.traceback)
        )
    record["extra"]["serialized"] = json.dumps(log_object, default=str)


def _json_format(_record: dict[str, Any]) -> str:
    """Format for the JSON file sink: exactly one serialized record per line."""
    return JSON_FORMAT + "\n"


def setup_logging(
    console_level: str = "INFO",
    file_level: str = "DEBUG",
    log_dir: Path | None = None,
) -> None:
    """Configures the application-wide Loguru logger.

    This function removes any default handlers, sets up a new console sink
    with a readable format, and an optional daily-rotating file sink with
    structured JSON output. It also intercepts standard library logging.

    Args:
        console_level: The minimum log level for console output.
        file_level: The minimum log level for file output.
        log_dir: Directory to store log files. If None, file logging is disabled.
    """
    logger.remove()
    logger.configure(patcher=_serialize_record)
    logger.add(
        sys.stderr,
        level=console_level.upper(),
        format=LOGURU_FORMAT,
        colorize=True,
    )

    if log_dir:
        log_dir.mkdir(parents=True, exist_ok=True)
        logger.add(
            log_dir / "songwatch_{time:YYYY-MM-DD}.log",
            level=file_level.upper(),
            format=_json_format,
            rotation="00:00",  # New file at midnight
            retention="7 days",
            compression="zip",
            encoding="utf-8",
            enqueue=True,  # Make logging calls non-blocking
            backtrace=False,
            diagnose=False,
        )

    logging.basicConfig(handlers=[InterceptHandler()], level=0, force=True)

    logger.info("Logging configured successfully.")
