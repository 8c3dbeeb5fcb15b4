import pytest
from mallard.config import AppConfig
from mallard.config_constants import LogFormat
from mallard.utils import logging as mallard_logging
from mallard.utils.logging import _add_module_info, _console_formatter, configure_logging, get_logger, get_module_logger
from mallard.utils.tracing import current_trace_id, generate_trace_id, set_trace_id, start_turn_trace


def test_logger_configuration():
    configure_logging()
    logger = get_logger("test")
    assert logger is not None


def test_module_logger():
    logger = get_module_logger()
    assert logger is not None


def test_configure_logging_runs_once(monkeypatch):
    calls = []
    monkeypatch.setattr(mallard_logging, "_logging_configured", False)
    monkeypatch.setattr(mallard_logging.structlog, "configure", lambda **kwargs: calls.append(kwargs))

    configure_logging(AppConfig(log_format=LogFormat.JSON))
    configure_logging(AppConfig())

    assert len(calls) == 1


def test_module_info_shortens_package_name():
    event = _add_module_info(None, "info", {"logger": "mallard.services.conversation_service", "event": "x"})
    assert event["module"] == "services.conversation_service"


def test_console_formatter_includes_fields():
    line = _console_formatter(None, "info", {
        "event": "Loaded table schema",
        "level": "info",
        "timestamp": "2024-01-01T00:00:00Z",
        "table_name": "orders",
    })
    assert "Loaded table schema" in line
    assert "table_name=orders" in line


def test_trace_id_generation():
    trace_id = generate_trace_id()
    assert len(trace_id) == 36  # UUID format
    assert '-' in trace_id


def test_trace_id_context():
    test_id = "test-trace-123"
    set_trace_id(test_id)
    assert current_trace_id() == test_id


def test_start_turn_trace_sets_new_id():
    first = start_turn_trace()
    second = start_turn_trace()
    assert first != second
    assert current_trace_id() == second
