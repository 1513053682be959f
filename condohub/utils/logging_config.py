"""
Structured Logging Configuration

Provides JSON-formatted logging with:
- Request ID tracking
- Entity context (booking, person, membership)
- Timing for admissions
"""

import logging
import json
import sys
from datetime import datetime, timezone
from typing import Optional, Any, Dict
from contextvars import ContextVar

# Context variable for request tracking
request_id_var: ContextVar[str] = ContextVar('request_id', default='')

# Attributes copied from a record into the JSON payload when present
CONTEXT_FIELDS = ("entity_type", "entity_id", "reason", "duration_ms")


class JSONFormatter(logging.Formatter):
    """
    JSON formatter for log aggregators.
    One object per line.
    """

    def format(self, record: logging.LogRecord) -> str:
        log_data: Dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "location": f"{record.module}.{record.funcName}:{record.lineno}",
        }

        request_id = request_id_var.get()
        if request_id:
            log_data["request_id"] = request_id

        for field in CONTEXT_FIELDS:
            value = getattr(record, field, None)
            if value is not None:
                log_data[field] = value

        if hasattr(record, 'extra_data'):
            log_data["data"] = record.extra_data

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_data, ensure_ascii=False, default=str)


class StructuredLogger(logging.LoggerAdapter):
    """
    Logger adapter with helpers for the events the core emits.

    Rejections are business outcomes and are logged at INFO, never ERROR.
    """

    def process(self, msg: str, kwargs: Dict[str, Any]) -> tuple:
        extra = kwargs.get('extra', {})
        extra.update(self.extra)
        kwargs['extra'] = extra
        return msg, kwargs

    def log_with_context(
        self,
        level: int,
        msg: str,
        entity_type: Optional[str] = None,
        entity_id: Optional[str] = None,
        reason: Optional[str] = None,
        duration_ms: Optional[float] = None,
        **extra_data
    ):
        """Log with additional structured context."""
        extra = {}
        if entity_type:
            extra['entity_type'] = entity_type
        if entity_id:
            extra['entity_id'] = entity_id
        if reason:
            extra['reason'] = reason
        if duration_ms is not None:
            extra['duration_ms'] = round(duration_ms, 2)
        if extra_data:
            extra['extra_data'] = extra_data

        self.log(level, msg, extra=extra)

    def booking_admitted(self, booking_id: str, amenity_id: str, booking_date, window: str, duration_ms: float = None):
        self.log_with_context(
            logging.INFO,
            f"Booking admitted: amenity {amenity_id} on {booking_date} {window}",
            entity_type="booking",
            entity_id=booking_id,
            duration_ms=duration_ms,
            amenity_id=amenity_id,
            booking_date=booking_date,
            window=window
        )

    def booking_rejected(self, reason: str, amenity_id: Optional[str], message: str):
        self.log_with_context(
            logging.INFO,
            f"Booking rejected ({reason}): {message}",
            entity_type="booking",
            reason=reason,
            amenity_id=amenity_id
        )

    def person_materialized(self, community_id: str, registry_id: int, email: str):
        self.log_with_context(
            logging.INFO,
            f"Materialized registry person {registry_id} in the community store",
            entity_type="person",
            entity_id=community_id,
            registry_id=registry_id,
            email=email
        )

    def membership_assigned(self, user_id: int, unit_id: int, role: str, association_created: bool):
        self.log_with_context(
            logging.INFO,
            f"User {user_id} assigned to unit {unit_id} as {role}",
            entity_type="membership",
            entity_id=f"{user_id}:{unit_id}",
            role=role,
            association_created=association_created
        )


def setup_logging(level: str = "INFO", json_format: bool = True) -> None:
    """
    Configure application logging.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR)
        json_format: Use JSON format (True for production)
    """
    log_level = getattr(logging, level.upper(), logging.INFO)

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(log_level)

    if json_format:
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(logging.Formatter(
            '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
        ))

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)
    root_logger.handlers = [handler]

    for logger_name in ["uvicorn", "uvicorn.access", "uvicorn.error"]:
        logging.getLogger(logger_name).handlers = [handler]

    # Reduce noise from third-party loggers
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)


def get_logger(name: str) -> StructuredLogger:
    """Get a structured logger for the given module."""
    return StructuredLogger(logging.getLogger(name), {})


def set_request_context(request_id: str):
    request_id_var.set(request_id)


def clear_request_context():
    request_id_var.set('')
