"""Centralized logging configuration."""
import json
import logging
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional, Union

# Attributes passed through ``extra=`` that are worth keeping in JSON output.
EXTRA_FIELDS = (
    "correlation_id",
    "adapter",
    "asset",
    "assets",
    "currencies",
    "function",
    "execution_time_ms",
    "timeout",
    "error",
    "attempts",
    "delay",
    "status",
)


def setup_logging(
    level: str = "INFO",
    log_file: Optional[str] = None,
    format_type: str = "json",
    enabled: bool = True
) -> None:
    """Configure application logging."""

    if not enabled:
        logging.disable(logging.CRITICAL)
        return
    logging.disable(logging.NOTSET)

    numeric_level = getattr(logging, level.upper(), logging.INFO)

    if format_type == "json":
        formatter = JsonFormatter()
    else:
        formatter = logging.Formatter(
            '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
        )

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setFormatter(formatter)

    handlers = [console_handler]

    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(formatter)
        handlers.append(file_handler)

    logging.basicConfig(
        level=numeric_level,
        handlers=handlers,
        force=True
    )


class JsonFormatter(logging.Formatter):
    """Format logs as JSON."""

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        for key in EXTRA_FIELDS:
            if hasattr(record, key):
                log_data[key] = getattr(record, key)

        return json.dumps(log_data, default=str)


class CorrelationAdapter(logging.LoggerAdapter):
    """Stamp every record with the correlation id of one analysis request."""

    def process(self, msg, kwargs):
        extra = dict(kwargs.get("extra") or {})
        extra.setdefault("correlation_id", self.extra["correlation_id"])
        kwargs["extra"] = extra
        return msg, kwargs


def get_logger(
    name: str, correlation_id: Optional[str] = None
) -> Union[logging.Logger, CorrelationAdapter]:
    """Get a logger, bound to a correlation ID when one is given."""
    logger = logging.getLogger(name)
    if correlation_id:
        return CorrelationAdapter(logger, {"correlation_id": correlation_id})
    return logger
