"""Repositories for workflow definitions and execution records."""

import uuid
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple
from sqlalchemy import func
from sqlalchemy.orm import Session
from sqlalchemy.exc import SQLAlchemyError

from ..models.core import (
    Connection,
    ExecutionRecord,
    ExecutionStatusEnum,
    Node,
    NodeCategory,
    Workflow,
)
from ..core.exceptions import GraphError, InvalidRequestError, NotFoundError, StorageError
from ..core.logging import get_logger
from .models import ConnectionModel, ExecutionModel, NodeModel, WorkflowModel

logger = get_logger(__name__)

DEFAULT_USER_ID = "default-user"


def _generate_id() -> str:
    return str(uuid.uuid4())


def to_node(model: NodeModel) -> Node:
    return Node(
        id=model.id,
        workflow_id=model.workflow_id,
        category=NodeCategory(model.type),
        node_type=model.node_type,
        label=model.label,
        position_x=model.position_x,
        position_y=model.position_y,
        config=model.config or {}
    )


def to_connection(model: ConnectionModel) -> Connection:
    return Connection(
        id=model.id,
        workflow_id=model.workflow_id,
        source_node_id=model.source_node_id,
        target_node_id=model.target_node_id
    )


def to_workflow(model: WorkflowModel, include_graph: bool = False) -> Workflow:
    workflow = Workflow(
        id=model.id,
        user_id=model.user_id,
        name=model.name,
        description=model.description,
        is_active=bool(model.is_active),
        created_at=model.created_at,
        updated_at=model.updated_at,
        last_run_at=model.last_run_at
    )
    if include_graph:
        workflow.nodes = [to_node(node) for node in model.nodes]
        workflow.connections = [to_connection(conn) for conn in model.connections]
    return workflow


def to_execution_record(model: ExecutionModel) -> ExecutionRecord:
    return ExecutionRecord(
        id=model.id,
        workflow_id=model.workflow_id,
        status=ExecutionStatusEnum(model.status),
        started_at=model.started_at,
        completed_at=model.completed_at,
        error_message=model.error_message,
        execution_data=model.execution_data
    )


class _Repository:
    """Session handling shared by the repositories."""

    def __init__(self, db_session: Session):
        self._db = db_session

    def _commit(self, operation: str) -> None:
        try:
            self._db.commit()
        except SQLAlchemyError as e:
            self._db.rollback()
            logger.error(f"Database error during {operation}: {str(e)}")
            raise StorageError(f"Failed to {operation}: {str(e)}", operation=operation)

    def _query(self, operation: str, query):
        try:
            return query()
        except SQLAlchemyError as e:
            logger.error(f"Database error during {operation}: {str(e)}")
            raise StorageError(f"Failed to {operation}: {str(e)}", operation=operation)


class WorkflowRepository(_Repository):
    """Stores workflows together with their nodes and connections."""

    def _get_workflow_model(self, workflow_id: str) -> WorkflowModel:
        model = self._query(
            "retrieve workflow",
            lambda: self._db.query(WorkflowModel).filter(WorkflowModel.id == workflow_id).first()
        )
        if not model:
            raise NotFoundError(f"Workflow '{workflow_id}' not found", table="workflows")
        return model

    def _get_node_model(self, node_id: str) -> NodeModel:
        model = self._query(
            "retrieve node",
            lambda: self._db.query(NodeModel).filter(NodeModel.id == node_id).first()
        )
        if not model:
            raise NotFoundError(f"Node '{node_id}' not found", table="nodes")
        return model

    def _next_sort_order(self, model_class, workflow_id: str) -> int:
        current = self._query(
            "compute insertion order",
            lambda: self._db.query(func.max(model_class.sort_order))
            .filter(model_class.workflow_id == workflow_id)
            .scalar()
        )
        return (current or 0) + 1

    # Workflows

    def create_workflow(self, name: str, description: Optional[str] = None,
                        user_id: str = DEFAULT_USER_ID) -> Workflow:
        if not name or not name.strip():
            raise InvalidRequestError("Workflow name cannot be empty", field="name")

        model = WorkflowModel(
            id=_generate_id(),
            user_id=user_id or DEFAULT_USER_ID,
            name=name.strip(),
            description=description,
            is_active=False
        )
        self._db.add(model)
        self._commit("create workflow")

        logger.info(f"Created workflow '{model.name}' with ID: {model.id}")
        return to_workflow(model)

    def list_workflows(self, user_id: str = DEFAULT_USER_ID) -> List[Workflow]:
        """Workflows owned by a user, most recently updated first."""
        models = self._query(
            "list workflows",
            lambda: self._db.query(WorkflowModel)
            .filter(WorkflowModel.user_id == user_id)
            .order_by(WorkflowModel.updated_at.desc())
            .all()
        )
        return [to_workflow(model) for model in models]

    def get_workflow(self, workflow_id: str, include_graph: bool = True) -> Workflow:
        return to_workflow(self._get_workflow_model(workflow_id), include_graph=include_graph)

    def update_workflow(self, workflow_id: str, name: Optional[str] = None,
                        description: Optional[str] = None, is_active: Optional[bool] = None) -> Workflow:
        model = self._get_workflow_model(workflow_id)
        if name is not None:
            if not name.strip():
                raise InvalidRequestError("Workflow name cannot be empty", field="name")
            model.name = name.strip()
        if description is not None:
            model.description = description
        if is_active is not None:
            model.is_active = is_active
        model.updated_at = datetime.utcnow()
        self._commit("update workflow")
        return to_workflow(model)

    def delete_workflow(self, workflow_id: str) -> bool:
        """Delete a workflow with its nodes, connections and execution records."""
        model = self._query(
            "retrieve workflow",
            lambda: self._db.query(WorkflowModel).filter(WorkflowModel.id == workflow_id).first()
        )
        if not model:
            logger.warning(f"Workflow '{workflow_id}' not found for deletion")
            return False

        self._db.delete(model)
        self._commit("delete workflow")
        logger.info(f"Deleted workflow with ID: {workflow_id}")
        return True

    def mark_run(self, workflow_id: str) -> None:
        """Stamp the workflow's last-run timestamp."""
        model = self._get_workflow_model(workflow_id)
        model.last_run_at = datetime.utcnow()
        self._commit("update last run timestamp")

    # Nodes

    def add_node(self, workflow_id: str, category: NodeCategory, node_type: str, label: str,
                 position_x: float = 0.0, position_y: float = 0.0,
                 config: Optional[Dict[str, Any]] = None) -> Node:
        self._get_workflow_model(workflow_id)
        if not node_type or not node_type.strip():
            raise InvalidRequestError("Node type cannot be empty", field="node_type")

        model = NodeModel(
            id=_generate_id(),
            workflow_id=workflow_id,
            type=NodeCategory(category).value,
            node_type=node_type.strip(),
            label=label,
            position_x=position_x,
            position_y=position_y,
            config=config or {},
            sort_order=self._next_sort_order(NodeModel, workflow_id)
        )
        self._db.add(model)
        self._commit("create node")

        logger.debug(f"Added {model.type}/{model.node_type} node {model.id} to workflow {workflow_id}")
        return to_node(model)

    def update_node(self, node_id: str, label: Optional[str] = None, position_x: Optional[float] = None,
                    position_y: Optional[float] = None, config: Optional[Dict[str, Any]] = None) -> Node:
        """Partially update a node. Category and type tag are fixed at creation."""
        updates = {
            "label": label,
            "position_x": position_x,
            "position_y": position_y,
            "config": config,
        }
        updates = {key: value for key, value in updates.items() if value is not None}
        if not updates:
            raise InvalidRequestError("No fields to update")

        model = self._get_node_model(node_id)
        for key, value in updates.items():
            setattr(model, key, value)
        model.updated_at = datetime.utcnow()
        self._commit("update node")
        return to_node(model)

    def delete_node(self, node_id: str) -> bool:
        """Delete a node and every connection touching it."""
        model = self._query(
            "retrieve node",
            lambda: self._db.query(NodeModel).filter(NodeModel.id == node_id).first()
        )
        if not model:
            return False

        self._query(
            "delete node connections",
            lambda: self._db.query(ConnectionModel)
            .filter((ConnectionModel.source_node_id == node_id) | (ConnectionModel.target_node_id == node_id))
            .delete(synchronize_session=False)
        )
        self._db.delete(model)
        self._commit("delete node")
        self._db.expire_all()
        return True

    # Connections

    def add_connection(self, workflow_id: str, source_node_id: str, target_node_id: str) -> Connection:
        """Connect two nodes of the same workflow.

        Raises:
            GraphError: If either endpoint is not a node of the workflow, or
                the ordered pair is already connected
        """
        self._get_workflow_model(workflow_id)

        endpoints = self._query(
            "retrieve connection endpoints",
            lambda: {
                node_id for (node_id,) in self._db.query(NodeModel.id)
                .filter(NodeModel.workflow_id == workflow_id)
                .filter(NodeModel.id.in_([source_node_id, target_node_id]))
                .all()
            }
        )
        for endpoint in (source_node_id, target_node_id):
            if endpoint not in endpoints:
                raise GraphError("Source or target node not found", node_id=endpoint)

        duplicate = self._query(
            "check duplicate connection",
            lambda: self._db.query(ConnectionModel)
            .filter(ConnectionModel.workflow_id == workflow_id)
            .filter(ConnectionModel.source_node_id == source_node_id)
            .filter(ConnectionModel.target_node_id == target_node_id)
            .first()
        )
        if duplicate:
            raise GraphError(
                f"Nodes {source_node_id} and {target_node_id} are already connected",
                connection_id=duplicate.id
            )

        model = ConnectionModel(
            id=_generate_id(),
            workflow_id=workflow_id,
            source_node_id=source_node_id,
            target_node_id=target_node_id,
            sort_order=self._next_sort_order(ConnectionModel, workflow_id)
        )
        self._db.add(model)
        self._commit("create connection")
        return to_connection(model)

    def delete_connection(self, connection_id: str) -> bool:
        model = self._query(
            "retrieve connection",
            lambda: self._db.query(ConnectionModel).filter(ConnectionModel.id == connection_id).first()
        )
        if not model:
            return False
        self._db.delete(model)
        self._commit("delete connection")
        return True

    def load_graph(self, workflow_id: str) -> Tuple[List[Node], List[Connection]]:
        """Nodes and connections of a workflow, each in insertion order."""
        nodes = self._query(
            "load nodes",
            lambda: self._db.query(NodeModel)
            .filter(NodeModel.workflow_id == workflow_id)
            .order_by(NodeModel.sort_order)
            .all()
        )
        connections = self._query(
            "load connections",
            lambda: self._db.query(ConnectionModel)
            .filter(ConnectionModel.workflow_id == workflow_id)
            .order_by(ConnectionModel.sort_order)
            .all()
        )
        return [to_node(node) for node in nodes], [to_connection(conn) for conn in connections]


class ExecutionRecorder(_Repository):
    """Writes execution records: once as running, once in a terminal state."""

    def create_record(self, workflow_id: str) -> ExecutionRecord:
        model = ExecutionModel(
            id=_generate_id(),
            workflow_id=workflow_id,
            status=ExecutionStatusEnum.RUNNING.value,
            started_at=datetime.utcnow()
        )
        self._db.add(model)
        self._commit("create execution record")

        logger.info(f"Created execution record {model.id} for workflow {workflow_id}")
        return to_execution_record(model)

    def finalize_record(self, execution_id: str, status: ExecutionStatusEnum,
                        result: Optional[Dict[str, Any]] = None,
                        error_message: Optional[str] = None) -> ExecutionRecord:
        """
        Move a running record to its terminal state.

        Args:
            execution_id: ID of the execution record
            status: COMPLETED or FAILED
            result: Result map of a completed run
            error_message: Error message of a failed run

        Raises:
            NotFoundError: If the record does not exist
            StorageError: If the record already left the running state
        """
        if status == ExecutionStatusEnum.RUNNING:
            raise StorageError("Execution records cannot be finalized as running", operation="finalize")

        model = self._get_record_model(execution_id)
        if model.status != ExecutionStatusEnum.RUNNING.value:
            raise StorageError(
                f"Execution {execution_id} is already {model.status}",
                operation="finalize"
            )

        model.status = status.value
        model.completed_at = datetime.utcnow()
        if status == ExecutionStatusEnum.COMPLETED:
            model.execution_data = result or {}
        else:
            model.error_message = error_message
        self._commit("finalize execution record")

        logger.info(f"Finalized execution {execution_id} with status: {status.value}")
        return to_execution_record(model)

    def get_record(self, execution_id: str) -> ExecutionRecord:
        return to_execution_record(self._get_record_model(execution_id))

    def list_records(self, workflow_id: str, limit: int = 50) -> List[ExecutionRecord]:
        """Most recent execution records of a workflow, newest first."""
        models = self._query(
            "list execution records",
            lambda: self._db.query(ExecutionModel)
            .filter(ExecutionModel.workflow_id == workflow_id)
            .order_by(ExecutionModel.started_at.desc())
            .limit(limit)
            .all()
        )
        return [to_execution_record(model) for model in models]

    def _get_record_model(self, execution_id: str) -> ExecutionModel:
        model = self._query(
            "retrieve execution record",
            lambda: self._db.query(ExecutionModel).filter(ExecutionModel.id == execution_id).first()
        )
        if not model:
            raise NotFoundError(f"Execution '{execution_id}' not found", table="executions")
        return model
