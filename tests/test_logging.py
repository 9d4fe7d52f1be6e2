"""Tests for logging context and formatting."""

import json
import logging

import pytest

from workflow_builder.core.logging import (
    StructuredFormatter,
    WorkflowContextFilter,
    clear_logging_context,
    set_logging_context,
)


def make_record(message="hello", **extra):
    record = logging.LogRecord("workflow_builder.test", logging.INFO, __file__, 10, message, None, None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


@pytest.fixture(autouse=True)
def empty_context():
    clear_logging_context()
    yield
    clear_logging_context()


class TestContextFilter:

    def test_context_fields_added(self):
        set_logging_context(execution_id="e1", workflow_id="w1")
        record = make_record()

        WorkflowContextFilter().filter(record)

        assert record.context_fields == {"execution_id": "e1", "workflow_id": "w1"}
        assert record.context == " execution_id=e1 workflow_id=w1"

    def test_clear_named_fields(self):
        set_logging_context(request_id="r1", execution_id="e1")
        clear_logging_context("execution_id")
        record = make_record()

        WorkflowContextFilter().filter(record)

        assert record.context_fields == {"request_id": "r1"}

    def test_per_call_fields_win(self):
        set_logging_context(node_count=1)
        record = make_record(context_fields={"node_count": 3})

        WorkflowContextFilter().filter(record)

        assert record.context_fields == {"node_count": 3}


class TestStructuredFormatter:

    def test_json_line(self):
        set_logging_context(workflow_id="w1")
        record = make_record("ran %d nodes")
        record.args = (3,)
        WorkflowContextFilter().filter(record)

        entry = json.loads(StructuredFormatter().format(record))

        assert entry["message"] == "ran 3 nodes"
        assert entry["level"] == "INFO"
        assert entry["context"] == {"workflow_id": "w1"}
        assert "error" not in entry
