import json
import logging
from datetime import datetime
from typing import Optional

from app.core.config import settings


class JsonFormatter(logging.Formatter):
    """
    Render log records as single-line JSON documents.

    Records at ERROR level or above also carry their source location and,
    when available, the formatted stack trace.
    """

    def format(self, record: logging.LogRecord) -> str:
        log_record = {
            "timestamp": datetime.fromtimestamp(record.created).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if record.levelno >= logging.ERROR:
            log_record["location"] = f"{record.pathname}:{record.lineno}"
            if record.exc_info:
                log_record["stack_trace"] = self.formatException(record.exc_info)
        return json.dumps(log_record, ensure_ascii=False)


def setup_logging(level: Optional[str] = None) -> None:
    """
    Configure the root logger with a JSON console handler.

    Args:
        level: Log level name. Defaults to `LOG_LEVEL` from settings.
    """
    root_logger = logging.getLogger()
    root_logger.setLevel((level or settings.log_level).upper())

    # Library noise
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)

    # Calling twice must not duplicate output
    for handler in root_logger.handlers:
        if isinstance(handler.formatter, JsonFormatter):
            return

    console_handler = logging.StreamHandler()
    console_handler.setFormatter(JsonFormatter())
    root_logger.addHandler(console_handler)
