"""Tests for breadth-first workflow execution."""

import pytest

from conftest import make_connection, make_node
from workflow_builder.core.exceptions import GraphError, HandlerError, NoTriggerError
from workflow_builder.core.execution_engine import ExecutionEngine
from workflow_builder.models.core import NodeCategory


class RecordingHandler:
    """Handler that records each call and echoes its inputs."""

    def __init__(self):
        self.calls = []

    def __call__(self, node, previous_results):
        self.calls.append((node.id, dict(previous_results)))
        return {"node": node.id, "seen": sorted(previous_results)}


@pytest.fixture
def recorder(node_executor):
    handler = RecordingHandler()
    node_executor.register_handler("record", handler)
    return handler


class TestExecutionEngine:
    """Test traversal order, aggregation and failure semantics."""

    def test_schedule_weather_email_scenario(self, engine):
        nodes = [
            make_node("trigger", "schedule", NodeCategory.TRIGGER),
            make_node("weather", "weather", NodeCategory.DATA),
            make_node("email", "email", NodeCategory.ACTION),
        ]
        connections = [make_connection("trigger", "weather"), make_connection("weather", "email")]

        results = engine.run(nodes, connections)

        assert list(results) == ["trigger", "weather", "email"]
        assert results["weather"]["real_service"] is False
        assert 60 <= results["weather"]["temperature"] < 90
        assert results["email"]["real_service"] is False
        assert results["email"]["to"] == "test@example.com"
        assert results["email"]["subject"] == "Workflow Automation Test"

    def test_email_echoes_configured_recipient(self, engine):
        nodes = [
            make_node("trigger", "schedule", NodeCategory.TRIGGER),
            make_node("email", "email", to="ops@example.com", subject="Daily report"),
        ]
        results = engine.run(nodes, [make_connection("trigger", "email")])

        assert results["email"]["to"] == "ops@example.com"
        assert results["email"]["subject"] == "Daily report"

    def test_condition_without_expression_is_met(self, engine):
        nodes = [
            make_node("trigger", "schedule", NodeCategory.TRIGGER),
            make_node("data", "github", NodeCategory.DATA),
            make_node("check", "condition", NodeCategory.LOGIC),
        ]
        connections = [make_connection("trigger", "data"), make_connection("data", "check")]

        results = engine.run(nodes, connections)

        assert results["check"]["condition_met"] is True
        assert results["check"]["input"] == {"data": results["data"]}

    def test_independent_triggers_follow_supply_order(self, engine):
        nodes = [
            make_node("second", "webhook", NodeCategory.TRIGGER),
            make_node("first", "schedule", NodeCategory.TRIGGER),
        ]
        results = engine.run(nodes, [])
        assert list(results) == ["second", "first"]

    def test_breadth_first_order(self, engine, recorder):
        nodes = [
            make_node("t", "schedule", NodeCategory.TRIGGER),
            make_node("a", "record"),
            make_node("b", "record"),
            make_node("a1", "record"),
        ]
        connections = [make_connection("t", "a"), make_connection("t", "b"), make_connection("a", "a1")]

        results = engine.run(nodes, connections)

        assert list(results) == ["t", "a", "b", "a1"]

    def test_cycle_terminates(self, engine, recorder):
        nodes = [
            make_node("t", "schedule", NodeCategory.TRIGGER),
            make_node("a", "record"),
            make_node("b", "record"),
        ]
        connections = [make_connection("t", "a"), make_connection("a", "b"), make_connection("b", "a")]

        results = engine.run(nodes, connections)

        assert list(results) == ["t", "a", "b"]
        assert [node_id for node_id, _ in recorder.calls] == ["a", "b"]

    def test_diamond_executes_shared_node_once(self, engine, recorder):
        nodes = [
            make_node("t", "schedule", NodeCategory.TRIGGER),
            make_node("left", "record"),
            make_node("right", "record"),
            make_node("join", "record"),
        ]
        connections = [
            make_connection("t", "left"),
            make_connection("t", "right"),
            make_connection("left", "join"),
            make_connection("right", "join"),
        ]

        engine.run(nodes, connections)

        join_calls = [inputs for node_id, inputs in recorder.calls if node_id == "join"]
        assert len(join_calls) == 1
        assert sorted(join_calls[0]) == ["left", "right"]

    def test_node_runs_with_partial_predecessors(self, engine, recorder):
        # "late" is only reached after "join" has already run
        nodes = [
            make_node("t", "schedule", NodeCategory.TRIGGER),
            make_node("mid", "record"),
            make_node("late", "record"),
            make_node("join", "record"),
        ]
        connections = [
            make_connection("t", "join"),
            make_connection("t", "mid"),
            make_connection("mid", "late"),
            make_connection("late", "join"),
        ]

        results = engine.run(nodes, connections)

        assert results["join"]["seen"] == ["t"]
        assert list(results) == ["t", "join", "mid", "late"]

    def test_unreachable_nodes_do_not_run(self, engine, recorder):
        nodes = [
            make_node("t", "schedule", NodeCategory.TRIGGER),
            make_node("island", "record"),
        ]
        results = engine.run(nodes, [])
        assert "island" not in results
        assert recorder.calls == []

    def test_trigger_downstream_of_trigger_runs_once(self, engine):
        nodes = [
            make_node("t1", "schedule", NodeCategory.TRIGGER),
            make_node("t2", "webhook", NodeCategory.TRIGGER),
        ]
        results = engine.run(nodes, [make_connection("t1", "t2")])
        assert list(results) == ["t1", "t2"]

    def test_no_trigger_raises_before_any_handler(self, engine, recorder):
        nodes = [make_node("a", "record"), make_node("b", "record")]

        with pytest.raises(NoTriggerError):
            engine.run(nodes, [make_connection("a", "b")])

        assert recorder.calls == []

    def test_dangling_connection_raises_before_any_handler(self, engine, recorder):
        nodes = [
            make_node("t", "record", NodeCategory.TRIGGER),
            make_node("a", "record"),
        ]

        with pytest.raises(GraphError):
            engine.run(nodes, [make_connection("t", "a"), make_connection("a", "ghost")])

        assert recorder.calls == []

    def test_handler_failure_aborts_traversal(self, engine, node_executor, recorder):
        def explode(node, previous_results):
            raise KeyError("missing")

        node_executor.register_handler("explode", explode)
        nodes = [
            make_node("t", "schedule", NodeCategory.TRIGGER),
            make_node("boom", "explode"),
            make_node("after", "record"),
        ]
        connections = [make_connection("t", "boom"), make_connection("boom", "after")]

        with pytest.raises(HandlerError) as exc_info:
            engine.run(nodes, connections)

        assert exc_info.value.context["node_id"] == "boom"
        assert isinstance(exc_info.value.__cause__, KeyError)
        assert recorder.calls == []

    def test_delay_before_every_node(self, node_executor):
        pauses = []
        engine = ExecutionEngine(node_executor, node_delay=0.5, sleep=pauses.append)
        nodes = [
            make_node("t", "schedule", NodeCategory.TRIGGER),
            make_node("a", "transform", NodeCategory.LOGIC),
        ]

        engine.run(nodes, [make_connection("t", "a")])

        assert pauses == [0.5, 0.5]

    def test_negative_delay_rejected(self, node_executor):
        with pytest.raises(ValueError):
            ExecutionEngine(node_executor, node_delay=-1)
