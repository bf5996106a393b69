import json
import logging
import logging.handlers
import sys
from pathlib import Path
from typing import Optional, Union

CONTEXT_FIELDS = ("application", "revision", "duration_ms")


class SafeStreamHandler(logging.StreamHandler):
    """
    Stream handler that gracefully handles closed streams during shutdown.
    """

    def handleError(self, record):
        error = sys.exc_info()[1]
        if isinstance(error, (ValueError, OSError)):
            # Closed streams are expected while the interpreter shuts down
            message = str(error).lower()
            if "closed file" in message or "bad file descriptor" in message:
                return
        super().handleError(record)


class StructuredLogFormatter(logging.Formatter):
    """
    Formats log records as structured JSON with deploy context fields.
    """

    def format(self, record: logging.LogRecord) -> str:
        log_record = {
            "timestamp": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for field in CONTEXT_FIELDS:
            value = getattr(record, field, None)
            if value is not None:
                log_record[field] = value
        if record.exc_info:
            log_record["exception"] = self.formatException(record.exc_info)
        elif record.exc_text:
            log_record["exception"] = record.exc_text
        return json.dumps(log_record, ensure_ascii=False)


def configure_logging(
    log_level: str = "INFO", log_file: Union[str, Path, None] = None
) -> logging.Logger:
    """
    Centralized logging configuration for Pushr.

    Sets up the root logger with structured JSON output on stderr and,
    when ``log_file`` is given, a file rotated weekly.

    Returns:
        The ``pushr`` logger to hand to the orchestrator
    """
    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    formatter = StructuredLogFormatter()

    handler = SafeStreamHandler(sys.stderr)
    handler.setFormatter(formatter)
    root_logger.addHandler(handler)

    if log_file:
        file_handler = logging.handlers.TimedRotatingFileHandler(
            log_file, when="W0", backupCount=8
        )
        file_handler.setFormatter(formatter)
        root_logger.addHandler(file_handler)

    root_logger.setLevel(log_level.upper())
    logging.getLogger("asyncio").setLevel("WARNING")
    logging.getLogger("aiohttp").setLevel("WARNING")
    logging.getLogger("git").setLevel("WARNING")
    return get_logger()


def get_logger(name: Optional[str] = None) -> logging.Logger:
    return logging.getLogger(f"pushr.{name}" if name else "pushr")
