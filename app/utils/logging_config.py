"""
Structured Logging

JSON log lines carrying the request id, the acting user and, for domain
events, the reservation / booking the line is about.
"""

import logging
import json
import sys
from datetime import datetime, timezone
from typing import Optional, Any, Dict
from contextvars import ContextVar

request_id_var: ContextVar[str] = ContextVar('request_id', default='')
user_id_var: ContextVar[str] = ContextVar('user_id', default='')

# Attributes copied from the LogRecord when an adapter set them
_EXTRA_ATTRS = ("entity_type", "entity_id", "duration_ms")

_NOISY_LOGGERS = ("httpx", "httpcore", "sqlalchemy.engine", "apscheduler")


class JSONFormatter(logging.Formatter):

    def format(self, record: logging.LogRecord) -> str:
        payload: Dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "location": f"{record.module}.{record.funcName}:{record.lineno}",
        }
        for key, var in (("request_id", request_id_var), ("user_id", user_id_var)):
            value = var.get()
            if value:
                payload[key] = value
        for attr in _EXTRA_ATTRS:
            if hasattr(record, attr):
                payload[attr] = getattr(record, attr)
        if hasattr(record, "fields"):
            payload["fields"] = record.fields
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=False, default=str)


class StructuredLogger(logging.LoggerAdapter):
    """Adapter with one helper per domain event worth a searchable log line"""

    def process(self, msg, kwargs):
        kwargs.setdefault("extra", {}).update(self.extra)
        return msg, kwargs

    def event(
        self,
        msg: str,
        entity_type: Optional[str] = None,
        entity_id: Optional[str] = None,
        duration_ms: Optional[float] = None,
        level: int = logging.INFO,
        **fields
    ):
        extra: Dict[str, Any] = {}
        if entity_type:
            extra["entity_type"] = entity_type
            extra["entity_id"] = entity_id
        if duration_ms is not None:
            extra["duration_ms"] = duration_ms
        if fields:
            extra["fields"] = fields
        self.log(level, msg, extra=extra)

    def reservation_created(self, reservation_id: str, property_id: str, total_price: float):
        self.event(
            f"Reservation requested on property {property_id}",
            "reservation", reservation_id,
            property_id=property_id, total_price=total_price,
        )

    def reservation_status_changed(self, reservation_id: str, old_status: str, new_status: str):
        self.event(
            f"Reservation {old_status} -> {new_status}",
            "reservation", reservation_id,
            old_status=old_status, new_status=new_status,
        )

    def experience_booking_created(self, booking_id: str, experience_id: str, participants: int):
        self.event(
            f"Experience booked for {participants} participant(s)",
            "experience_booking", booking_id,
            experience_id=experience_id, participants=participants,
        )

    def sweep_finished(self, expired: int, completed: int):
        if expired or completed:
            self.event("Reservation sweep", expired=expired, completed=completed)

    def api_request(self, method: str, path: str, status_code: int, duration_ms: float):
        self.event(f"{method} {path} {status_code}", duration_ms=duration_ms, status_code=status_code)


def setup_logging(level: str = "INFO", json_format: bool = True) -> None:
    log_level = getattr(logging, level.upper(), logging.INFO)

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(log_level)
    handler.setFormatter(
        JSONFormatter() if json_format
        else logging.Formatter('%(asctime)s %(levelname)s [%(name)s] %(message)s')
    )

    root = logging.getLogger()
    root.setLevel(log_level)
    root.handlers = [handler]

    for name in ("uvicorn", "uvicorn.access", "uvicorn.error"):
        logging.getLogger(name).handlers = [handler]
    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str) -> StructuredLogger:
    return StructuredLogger(logging.getLogger(name), {})


def set_request_context(request_id: str, user_id: Optional[str] = None):
    request_id_var.set(request_id)
    if user_id:
        user_id_var.set(user_id)


def clear_request_context():
    request_id_var.set('')
    user_id_var.set('')
