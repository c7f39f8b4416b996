"""Tests for structured logging."""

import json
import logging
import sys

from orapost.core.logging import CloudLoggingFormatter, setup_logging, upload_id_context


def make_record(msg="Upload completed", level=logging.INFO, extra=None, exc_info=None):
    logger = logging.getLogger("orapost.test")
    record = logger.makeRecord(
        logger.name, level, __file__, 10, msg, (), exc_info, func="upload", extra=extra
    )
    return record


def test_formatter_outputs_single_line_json():
    formatter = CloudLoggingFormatter()

    output = formatter.format(make_record(extra={"post_id": "post-1", "duration_ms": 12.5}))

    assert "\n" not in output
    entry = json.loads(output)
    assert entry["severity"] == "INFO"
    assert entry["message"] == "Upload completed"
    assert entry["logger"] == "orapost.test"
    assert entry["function"] == "upload"
    assert entry["post_id"] == "post-1"
    assert entry["duration_ms"] == 12.5
    assert entry["timestamp"].endswith("Z")
    assert "upload_id" not in entry


def test_formatter_includes_upload_id_from_context():
    formatter = CloudLoggingFormatter()
    token = upload_id_context.set("upload-42")
    try:
        entry = json.loads(formatter.format(make_record()))
    finally:
        upload_id_context.reset(token)

    assert entry["upload_id"] == "upload-42"


def test_formatter_includes_exception():
    formatter = CloudLoggingFormatter()
    try:
        raise RuntimeError("storage offline")
    except RuntimeError:
        record = make_record(level=logging.ERROR, exc_info=sys.exc_info())

    entry = json.loads(formatter.format(record))

    assert entry["severity"] == "ERROR"
    assert entry["exception_type"] == "RuntimeError"
    assert entry["exception_message"] == "storage offline"
    assert "Traceback" in entry["exception"]


def test_setup_logging_uses_json_outside_local(monkeypatch):
    from orapost.core.config import settings

    monkeypatch.setattr(settings, "ENV", "prod")
    monkeypatch.setattr(settings, "LOG_LEVEL", "WARNING")

    setup_logging()

    root = logging.getLogger()
    assert root.level == logging.WARNING
    assert any(isinstance(handler.formatter, CloudLoggingFormatter) for handler in root.handlers)


def test_setup_logging_uses_text_locally(monkeypatch):
    from orapost.core.config import settings

    monkeypatch.setattr(settings, "ENV", "local")

    setup_logging()

    root = logging.getLogger()
    assert root.level == logging.DEBUG
    assert not any(isinstance(handler.formatter, CloudLoggingFormatter) for handler in root.handlers)
