"""Tests for structured logging."""

import json
import logging

import pytest

from wingman.infrastructure.logging import (
    NamespaceFilter,
    StructuredFormatter,
    clear_request_context,
    set_request_context,
)


def make_record(name="orchestrator", level=logging.INFO, msg="Generation succeeded", **extra):
    record = logging.LogRecord(name, level, __file__, 1, msg, None, None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


@pytest.fixture(autouse=True)
def _reset_context():
    clear_request_context()
    yield
    clear_request_context()


class TestStructuredFormatter:
    def test_json_line_with_extra_fields(self):
        record = make_record(service="orchestrator", model_id="gemini-2.5-pro", attempt=2, used_cache=False)

        data = json.loads(StructuredFormatter().format(record))

        assert data["level"] == "info"
        assert data["message"] == "Generation succeeded"
        assert data["service"] == "orchestrator"
        assert data["model_id"] == "gemini-2.5-pro"
        assert data["attempt"] == 2
        assert data["used_cache"] is False
        assert "ts" in data

    def test_service_defaults_to_logger_namespace(self):
        data = json.loads(StructuredFormatter().format(make_record(name="providers.gemini")))
        assert data["service"] == "providers"

    def test_none_extras_are_omitted(self):
        data = json.loads(StructuredFormatter().format(make_record(error=None)))
        assert "error" not in data

    def test_request_context_is_included(self):
        set_request_context(request_id="req-1", user_id="owner-1", conversation_id="c-1")

        data = json.loads(StructuredFormatter().format(make_record()))

        assert data["request_id"] == "req-1"
        assert data["user_id"] == "owner-1"
        assert data["conversation_id"] == "c-1"

    def test_non_serializable_values_are_stringified(self):
        data = json.loads(StructuredFormatter().format(make_record(metadata={"when": object})))
        assert isinstance(data["metadata"]["when"], str)


class TestNamespaceFilter:
    def test_info_always_passes(self):
        assert NamespaceFilter([]).filter(make_record(level=logging.INFO)) is True

    def test_debug_only_for_enabled_namespaces(self):
        flt = NamespaceFilter(["cache"])

        assert flt.filter(make_record(name="cache", level=logging.DEBUG)) is True
        assert flt.filter(make_record(name="orchestrator", level=logging.DEBUG)) is False
