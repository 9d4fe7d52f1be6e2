"""Tests for workflow and execution record storage."""

from datetime import datetime

import pytest

from workflow_builder.core.exceptions import (
    GraphError,
    HandlerError,
    InvalidRequestError,
    NoTriggerError,
    NotFoundError,
    StorageError,
)
from workflow_builder.core.workflow_service import WorkflowService
from workflow_builder.models.core import ExecutionStatusEnum, NodeCategory
from workflow_builder.storage.repository import ExecutionRecorder, WorkflowRepository


@pytest.fixture
def repository(db_session):
    return WorkflowRepository(db_session)


@pytest.fixture
def recorder(db_session):
    return ExecutionRecorder(db_session)


@pytest.fixture
def workflow(repository):
    return repository.create_workflow("Morning report", "Weather by email")


class TestWorkflowRepository:
    """Test workflow, node and connection CRUD."""

    def test_create_and_get_workflow(self, repository, workflow):
        loaded = repository.get_workflow(workflow.id)
        assert loaded.name == "Morning report"
        assert loaded.user_id == "default-user"
        assert loaded.is_active is False
        assert loaded.nodes == []

    def test_create_workflow_rejects_blank_name(self, repository):
        with pytest.raises(InvalidRequestError):
            repository.create_workflow("   ")

    def test_get_unknown_workflow(self, repository):
        with pytest.raises(NotFoundError):
            repository.get_workflow("missing")

    def test_list_workflows_by_owner(self, repository, workflow):
        repository.create_workflow("Other owner", user_id="someone-else")
        assert [wf.id for wf in repository.list_workflows()] == [workflow.id]

    def test_update_workflow(self, repository, workflow):
        updated = repository.update_workflow(workflow.id, name="Evening report", is_active=True)
        assert updated.name == "Evening report"
        assert updated.is_active is True
        assert updated.description == "Weather by email"

    def test_delete_workflow_cascades(self, repository, recorder, workflow):
        trigger = repository.add_node(workflow.id, NodeCategory.TRIGGER, "schedule", "Every morning")
        action = repository.add_node(workflow.id, NodeCategory.ACTION, "email", "Send")
        repository.add_connection(workflow.id, trigger.id, action.id)
        recorder.create_record(workflow.id)

        assert repository.delete_workflow(workflow.id) is True
        assert repository.load_graph(workflow.id) == ([], [])
        assert recorder.list_records(workflow.id) == []
        assert repository.delete_workflow(workflow.id) is False

    def test_nodes_keep_insertion_order(self, repository, workflow):
        ids = [
            repository.add_node(workflow.id, NodeCategory.DATA, "weather", f"Node {i}").id
            for i in range(4)
        ]
        nodes, _ = repository.load_graph(workflow.id)
        assert [node.id for node in nodes] == ids

    def test_node_config_round_trips(self, repository, workflow):
        node = repository.add_node(
            workflow.id, NodeCategory.ACTION, "email", "Send",
            position_x=10.5, position_y=20.0, config={"to": "ops@example.com"}
        )
        nodes, _ = repository.load_graph(workflow.id)
        assert nodes[0].config == {"to": "ops@example.com"}
        assert nodes[0].category == NodeCategory.ACTION
        assert (nodes[0].position_x, nodes[0].position_y) == (10.5, 20.0)
        assert node.workflow_id == workflow.id

    def test_add_node_to_unknown_workflow(self, repository):
        with pytest.raises(NotFoundError):
            repository.add_node("missing", NodeCategory.ACTION, "email", "Send")

    def test_update_node_partial(self, repository, workflow):
        node = repository.add_node(workflow.id, NodeCategory.ACTION, "email", "Send", config={"to": "a@b.c"})
        updated = repository.update_node(node.id, label="Send report")
        assert updated.label == "Send report"
        assert updated.config == {"to": "a@b.c"}

    def test_update_node_requires_fields(self, repository, workflow):
        node = repository.add_node(workflow.id, NodeCategory.ACTION, "email", "Send")
        with pytest.raises(InvalidRequestError):
            repository.update_node(node.id)

    def test_delete_node_removes_incident_connections(self, repository, workflow):
        a = repository.add_node(workflow.id, NodeCategory.TRIGGER, "schedule", "A")
        b = repository.add_node(workflow.id, NodeCategory.DATA, "weather", "B")
        c = repository.add_node(workflow.id, NodeCategory.ACTION, "email", "C")
        repository.add_connection(workflow.id, a.id, b.id)
        repository.add_connection(workflow.id, b.id, c.id)
        kept = repository.add_connection(workflow.id, a.id, c.id)

        assert repository.delete_node(b.id) is True

        nodes, connections = repository.load_graph(workflow.id)
        assert [node.id for node in nodes] == [a.id, c.id]
        assert [conn.id for conn in connections] == [kept.id]

    def test_connection_endpoints_must_belong_to_workflow(self, repository, workflow):
        other = repository.create_workflow("Other")
        a = repository.add_node(workflow.id, NodeCategory.TRIGGER, "schedule", "A")
        foreign = repository.add_node(other.id, NodeCategory.ACTION, "email", "Foreign")

        with pytest.raises(GraphError):
            repository.add_connection(workflow.id, a.id, foreign.id)
        with pytest.raises(GraphError):
            repository.add_connection(workflow.id, a.id, "missing")

    def test_duplicate_connection_rejected(self, repository, workflow):
        a = repository.add_node(workflow.id, NodeCategory.TRIGGER, "schedule", "A")
        b = repository.add_node(workflow.id, NodeCategory.ACTION, "email", "B")
        repository.add_connection(workflow.id, a.id, b.id)

        with pytest.raises(GraphError):
            repository.add_connection(workflow.id, a.id, b.id)
        # the reverse direction is a different edge
        repository.add_connection(workflow.id, b.id, a.id)

    def test_delete_connection(self, repository, workflow):
        a = repository.add_node(workflow.id, NodeCategory.TRIGGER, "schedule", "A")
        b = repository.add_node(workflow.id, NodeCategory.ACTION, "email", "B")
        connection = repository.add_connection(workflow.id, a.id, b.id)

        assert repository.delete_connection(connection.id) is True
        assert repository.delete_connection(connection.id) is False

    def test_mark_run(self, repository, workflow):
        assert workflow.last_run_at is None
        repository.mark_run(workflow.id)
        assert repository.get_workflow(workflow.id).last_run_at is not None


class TestExecutionRecorder:
    """Test the running -> terminal record lifecycle."""

    def test_create_record_is_running(self, recorder, workflow):
        record = recorder.create_record(workflow.id)
        assert record.status == ExecutionStatusEnum.RUNNING
        assert record.completed_at is None

    def test_finalize_completed(self, recorder, workflow):
        record = recorder.create_record(workflow.id)
        finalized = recorder.finalize_record(record.id, ExecutionStatusEnum.COMPLETED, result={"n1": {"ok": True}})

        assert finalized.status == ExecutionStatusEnum.COMPLETED
        assert finalized.execution_data == {"n1": {"ok": True}}
        assert finalized.completed_at is not None

    def test_finalize_failed(self, recorder, workflow):
        record = recorder.create_record(workflow.id)
        finalized = recorder.finalize_record(record.id, ExecutionStatusEnum.FAILED, error_message="boom")
        assert finalized.status == ExecutionStatusEnum.FAILED
        assert finalized.error_message == "boom"

    def test_finalize_only_once(self, recorder, workflow):
        record = recorder.create_record(workflow.id)
        recorder.finalize_record(record.id, ExecutionStatusEnum.COMPLETED, result={})

        with pytest.raises(StorageError):
            recorder.finalize_record(record.id, ExecutionStatusEnum.FAILED, error_message="late")
        assert recorder.get_record(record.id).status == ExecutionStatusEnum.COMPLETED

    def test_never_finalized_as_running(self, recorder, workflow):
        record = recorder.create_record(workflow.id)
        with pytest.raises(StorageError):
            recorder.finalize_record(record.id, ExecutionStatusEnum.RUNNING)

    def test_unknown_record(self, recorder):
        with pytest.raises(NotFoundError):
            recorder.get_record("missing")

    def test_list_records_limit(self, recorder, workflow):
        for _ in range(3):
            recorder.create_record(workflow.id)
        assert len(recorder.list_records(workflow.id, limit=2)) == 2


class TestWorkflowService:
    """Test execution records written around engine runs."""

    def _build(self, repository, workflow_id, with_trigger=True):
        category = NodeCategory.TRIGGER if with_trigger else NodeCategory.DATA
        first = repository.add_node(workflow_id, category, "schedule", "Start")
        second = repository.add_node(workflow_id, NodeCategory.DATA, "weather", "Weather")
        repository.add_connection(workflow_id, first.id, second.id)
        return first, second

    def test_successful_run(self, db_session, engine, repository, recorder, workflow):
        first, second = self._build(repository, workflow.id)

        outcome = WorkflowService(db_session, engine).execute_workflow(workflow.id)

        assert outcome.status == ExecutionStatusEnum.COMPLETED
        assert list(outcome.result) == [first.id, second.id]
        record = recorder.get_record(outcome.execution_id)
        assert record.status == ExecutionStatusEnum.COMPLETED
        assert record.execution_data[second.id]["real_service"] is False
        assert repository.get_workflow(workflow.id).last_run_at is not None

    def test_no_trigger_persists_failed_record(self, db_session, engine, repository, recorder, workflow):
        self._build(repository, workflow.id, with_trigger=False)

        with pytest.raises(NoTriggerError):
            WorkflowService(db_session, engine).execute_workflow(workflow.id)

        records = recorder.list_records(workflow.id)
        assert len(records) == 1
        assert records[0].status == ExecutionStatusEnum.FAILED
        assert records[0].error_message == "No trigger node found"
        assert repository.get_workflow(workflow.id).last_run_at is None

    def test_handler_failure_persists_failed_record(self, db_session, engine, node_executor,
                                                     repository, recorder, workflow):
        def broken(node, previous_results):
            raise RuntimeError("weather station offline")

        node_executor.register_handler("weather", broken)
        self._build(repository, workflow.id)

        with pytest.raises(HandlerError):
            WorkflowService(db_session, engine).execute_workflow(workflow.id)

        record = recorder.list_records(workflow.id)[0]
        assert record.status == ExecutionStatusEnum.FAILED
        assert "weather station offline" in record.error_message

    def test_unknown_workflow_writes_no_record(self, db_session, engine, recorder):
        with pytest.raises(NotFoundError):
            WorkflowService(db_session, engine).execute_workflow("missing")
        assert recorder.list_records("missing") == []

    def test_non_json_output_is_encoded(self, db_session, engine, node_executor,
                                        repository, recorder, workflow):
        def stamp(node, previous_results):
            return {"at": datetime(2024, 1, 1)}

        node_executor.register_handler("stamp", stamp)
        node = repository.add_node(workflow.id, NodeCategory.TRIGGER, "stamp", "Stamp")

        outcome = WorkflowService(db_session, engine).execute_workflow(workflow.id)

        assert outcome.result[node.id] == {"at": "2024-01-01T00:00:00"}
        record = recorder.get_record(outcome.execution_id)
        assert record.status == ExecutionStatusEnum.COMPLETED
        assert record.execution_data[node.id]["at"] == "2024-01-01T00:00:00"

    def test_finalize_failure_chains_run_error(self, db_session, engine, node_executor,
                                               repository, workflow, monkeypatch):
        def broken(node, previous_results):
            raise RuntimeError("weather station offline")

        def refuse(*args, **kwargs):
            raise StorageError("database is locked")

        node_executor.register_handler("weather", broken)
        self._build(repository, workflow.id)
        service = WorkflowService(db_session, engine)
        monkeypatch.setattr(service.executions, "finalize_record", refuse)

        with pytest.raises(StorageError) as exc_info:
            service.execute_workflow(workflow.id)

        assert isinstance(exc_info.value.__cause__, HandlerError)
