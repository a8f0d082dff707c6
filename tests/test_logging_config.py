import json
import logging
import sys

from storefront.shared.logging_config import JsonFormatter, setup_logging


def _record(**extra):
    record = logging.LogRecord("storefront.test", logging.INFO, __file__, 1, "hello %s", ("cart",), None)
    record.created = 0
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class TestJsonFormatter:
    def test_basic_fields(self):
        data = json.loads(JsonFormatter().format(_record()))

        assert data["message"] == "hello cart"
        assert data["level"] == "INFO"
        assert data["logger"] == "storefront.test"
        assert data["timestamp"] == "1970-01-01T00:00:00+00:00"

    def test_timezone(self):
        data = json.loads(JsonFormatter("Africa/Johannesburg").format(_record()))

        assert data["timestamp"] == "1970-01-01T02:00:00+02:00"

    def test_context_fields(self):
        data = json.loads(JsonFormatter().format(_record(owner_id="kp_user_1", order_id="ORD-1")))

        assert data["owner_id"] == "kp_user_1"
        assert data["order_id"] == "ORD-1"
        assert "correlation_id" not in data

    def test_exception(self):
        try:
            raise ValueError("boom")
        except ValueError:
            record = _record()
            record.exc_info = sys.exc_info()

        data = json.loads(JsonFormatter().format(record))

        assert "ValueError: boom" in data["exception"]


def test_setup_logging_replaces_handler():
    root = logging.getLogger()
    before = list(root.handlers)
    try:
        setup_logging("storefront-test")
        setup_logging("storefront-test")

        json_handlers = [h for h in root.handlers if isinstance(h.formatter, JsonFormatter)]
        assert len(json_handlers) == 1
    finally:
        for handler in list(root.handlers):
            if handler not in before:
                root.removeHandler(handler)
