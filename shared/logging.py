"""
Shared logging configuration for the Observer Conditions layer.
"""

import sys
import structlog
import logging
import time
from typing import Any, Dict, Optional
from contextvars import ContextVar

# Context variables for correlation IDs
record_id_var: ContextVar[Optional[str]] = ContextVar('record_id', default=None)
data_type_var: ContextVar[Optional[str]] = ContextVar('data_type', default=None)
observer_id_var: ContextVar[Optional[str]] = ContextVar('observer_id', default=None)


def configure_logging(service_name: str, log_level: str = "info") -> None:
    """Configure structured logging for a service."""

    # Configure structlog
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            add_service_context,
            add_correlation_context,
            add_timestamp,
            structlog.processors.JSONRenderer()
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    # Configure standard library logging
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, log_level.upper()),
    )


def add_service_context(logger: Any, method_name: str, event_dict: Dict[str, Any]) -> Dict[str, Any]:
    """Add service context to log events."""
    # Extract service name from logger name
    logger_name = event_dict.get("logger", "")
    if "." in logger_name:
        service_name = logger_name.split(".")[0]
        event_dict["service"] = service_name

    return event_dict


def add_correlation_context(logger: Any, method_name: str, event_dict: Dict[str, Any]) -> Dict[str, Any]:
    """Add record and observer context to log events."""
    record_id = record_id_var.get()
    if record_id:
        event_dict["record_id"] = record_id

    data_type = data_type_var.get()
    if data_type:
        event_dict["data_type"] = data_type

    observer_id = observer_id_var.get()
    if observer_id:
        event_dict["observer_id"] = observer_id

    return event_dict


def add_timestamp(logger: Any, method_name: str, event_dict: Dict[str, Any]) -> Dict[str, Any]:
    """Add high-precision timestamp to log events."""
    event_dict["timestamp"] = time.time()
    return event_dict


def set_record_context(record_id: Optional[str] = None, data_type: Optional[str] = None):
    """Set the record being evaluated in logging context."""
    if record_id:
        record_id_var.set(record_id)
    if data_type:
        data_type_var.set(data_type)


def set_observer_context(observer_id: Optional[str]):
    """Set the observer being evaluated in logging context."""
    observer_id_var.set(observer_id)


def clear_context():
    """Clear all context variables."""
    record_id_var.set(None)
    data_type_var.set(None)
    observer_id_var.set(None)


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Get a structured logger instance."""
    return structlog.get_logger(name)
