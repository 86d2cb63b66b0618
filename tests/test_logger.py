"""Unit tests for structured logging."""
import json
import logging
import sys
from pathlib import Path

# Add backend to path
sys.path.insert(0, str(Path(__file__).parent.parent / "backend"))

from logger import JSONFormatter, setup_logging


def _record(msg, extra=None, exc_info=None):
    record = logging.LogRecord("services.test", logging.WARNING, __file__, 1, msg, None, exc_info)
    if extra is not None:
        record.extra = extra
    return record


def test_json_formatter_basic_fields():
    data = json.loads(JSONFormatter().format(_record("Skipping logo.png")))

    assert data["level"] == "WARNING"
    assert data["logger"] == "services.test"
    assert data["message"] == "Skipping logo.png"
    assert data["timestamp"].endswith("Z")


def test_json_formatter_includes_structured_fields():
    record = _record("Chunk not embedded", extra={"path": "src/app.py", "chunk_index": 3})

    data = json.loads(JSONFormatter().format(record))

    assert data["path"] == "src/app.py"
    assert data["chunk_index"] == 3


def test_json_formatter_includes_exception():
    try:
        raise RuntimeError("boom")
    except RuntimeError:
        record = _record("failed", exc_info=sys.exc_info())

    data = json.loads(JSONFormatter().format(record))

    assert "RuntimeError: boom" in data["exception"]


def test_setup_logging_replaces_handlers():
    root = logging.getLogger()
    previous = list(root.handlers), root.level
    try:
        setup_logging("DEBUG")

        assert root.level == logging.DEBUG
        assert len(root.handlers) == 1
        assert isinstance(root.handlers[0].formatter, JSONFormatter)
    finally:
        for handler in list(root.handlers):
            root.removeHandler(handler)
        for handler in previous[0]:
            root.addHandler(handler)
        root.setLevel(previous[1])
