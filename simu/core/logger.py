"""
Logging configuration with correlation ID propagation.
Exposes the application logger and a separate JSON audit trail.
"""
import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from simu.core.config import settings

LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(correlation_id)s | %(message)s"


class CorrelationIdFilter(logging.Filter):
    """Guarantees every record carries a correlation_id attribute for the formatter."""

    def filter(self, record: logging.LogRecord) -> bool:
        if not hasattr(record, "correlation_id"):
            record.correlation_id = "N/A"
        return True


def setup_logger(name: str, level: str = settings.LOG_LEVEL) -> logging.Logger:
    """Builds a stdout logger. Idempotent: handlers are attached only once."""
    configured = logging.getLogger(name)
    configured.setLevel(level.upper())

    if not configured.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        handler.addFilter(CorrelationIdFilter())
        configured.addHandler(handler)
        configured.propagate = False

    return configured


logger = setup_logger("simu")
audit_logger = setup_logger("simu.audit")


def get_logger_with_correlation(correlation_id: str) -> logging.LoggerAdapter:
    """Returns a logger adapter that stamps every record with the request's correlation ID."""
    return logging.LoggerAdapter(logger, {"correlation_id": correlation_id})


def audit_log(action: str, user: str, resource: str, details: Optional[Dict[str, Any]] = None) -> None:
    """
    Writes one JSON line to the audit channel.
    Decimal and datetime values are stringified.
    """
    entry: Dict[str, Any] = {
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "action": action,
        "user": user,
        "resource": resource,
        "details": details or {},
    }
    correlation_id = entry["details"].get("correlation_id") or "N/A"
    audit_logger.info(json.dumps(entry, default=str), extra={"correlation_id": correlation_id})
