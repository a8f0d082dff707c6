"""
logging_config.py - Centralized JSON Logging Configuration

PURPOSE:
    Provides structured JSON logging for the storefront with timezone-aware
    timestamps, correlation tracking, and service-specific context injection.

JSON LOG FIELDS:
    - timestamp: ISO 8601 format in the configured timezone
    - level: Log level (INFO, ERROR, WARNING, DEBUG, CRITICAL)
    - logger: Module where the log originated (e.g., "storefront.cart.cart_store")
    - message: The actual log message
    - service_name: Name of the service (injected automatically)
    - correlation_id: Optional request id, passed through ``extra``
    - owner_id: Optional cart owner / user id, passed through ``extra``
    - exception: Full stack trace (only when exc_info is set)

USAGE:
    from storefront.shared.logging_config import setup_logging
    setup_logging("storefront", level="INFO")

    logger = logging.getLogger(__name__)
    logger.info("Cart updated", extra={"owner_id": "user-1"})

EXAMPLE JSON OUTPUT:
    {
        "timestamp": "2026-02-23T22:48:51.001014+00:00",
        "level": "INFO",
        "logger": "storefront.orders.checkout",
        "message": "Order ORD-3F2A9C1B44D0 created for user kp_123",
        "service_name": "storefront"
    }
"""

import json
import logging
import sys
from datetime import datetime
from zoneinfo import ZoneInfo
from typing import Any, Dict

CONTEXT_FIELDS = ("correlation_id", "service_name", "owner_id", "order_id")


class JsonFormatter(logging.Formatter):
    """Custom formatter that outputs JSON logs with correlation context."""

    def __init__(self, timezone: str = "UTC"):
        super().__init__()
        self.tz = ZoneInfo(timezone)

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON."""
        log_data: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, self.tz).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        for field in CONTEXT_FIELDS:
            if hasattr(record, field):
                log_data[field] = getattr(record, field)

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_data, default=str)


class ServiceFilter(logging.Filter):
    """Stamps every record with the service name."""

    def __init__(self, service_name: str):
        super().__init__()
        self.service_name = service_name

    def filter(self, record: logging.LogRecord) -> bool:
        record.service_name = self.service_name
        return True


def setup_logging(service_name: str, level: str = "INFO", timezone: str = "UTC") -> None:
    """Setup JSON logging for a service."""
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(JsonFormatter(timezone))
    handler.addFilter(ServiceFilter(service_name))

    logger = logging.getLogger()
    logger.setLevel(level)

    # Reconfiguring (app reload, tests) replaces our handler instead of stacking another
    for existing in list(logger.handlers):
        if isinstance(existing.formatter, JsonFormatter):
            logger.removeHandler(existing)
    logger.addHandler(handler)
