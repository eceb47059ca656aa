"""
Structured logging configuration.

Every record is emitted as one JSON line carrying timestamp, level,
service name and a short trace id, plus any ``extra`` fields.
"""

import logging
import sys
import time
from typing import Any
from uuid import uuid4

from pythonjsonlogger import jsonlogger

from payflow.config import settings


class ServiceJsonFormatter(jsonlogger.JsonFormatter):
    """JSON formatter that stamps service and trace id on each record."""

    converter = time.gmtime

    def __init__(self, *args, service: str = "payflow-api", **kwargs):
        super().__init__(*args, **kwargs)
        self.service = service

    def add_fields(
        self,
        log_record: dict[str, Any],
        record: logging.LogRecord,
        message_dict: dict[str, Any],
    ) -> None:
        super().add_fields(log_record, record, message_dict)
        log_record["timestamp"] = self.formatTime(record, "%Y-%m-%dT%H:%M:%S%z")
        log_record["level"] = record.levelname.lower()
        log_record["service"] = self.service
        log_record.setdefault("trace_id", uuid4().hex[:8])


def setup_logging(level: str = None) -> None:
    """
    Configure root logging to write JSON lines to stdout.

    Args:
        level: Log level name (default: settings.log_level)
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, level or settings.log_level))

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(
        ServiceJsonFormatter("%(name)s %(message)s", service=settings.service_name)
    )
    root_logger.addHandler(handler)

    # Suppress noisy loggers
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
