"""Run orchestration: execution records around one engine run."""

import logging

from fastapi.encoders import jsonable_encoder
from sqlalchemy.orm import Session

from ..models.core import ExecutionResult, ExecutionStatusEnum
from ..storage.repository import ExecutionRecorder, WorkflowRepository
from .exceptions import StorageError, WorkflowEngineError
from .execution_engine import ExecutionEngine
from .logging import clear_logging_context, get_logger, log_with_context, set_logging_context

logger = get_logger(__name__)


class WorkflowService:
    """Runs stored workflows through the execution engine.

    Each run writes its execution record exactly twice: once as running
    before the engine starts, once in its terminal state.
    """

    def __init__(self, db_session: Session, engine: ExecutionEngine):
        self.workflows = WorkflowRepository(db_session)
        self.executions = ExecutionRecorder(db_session)
        self.engine = engine

    def execute_workflow(self, workflow_id: str) -> ExecutionResult:
        """
        Execute a stored workflow.

        Args:
            workflow_id: ID of the workflow to run

        Returns:
            Execution ID, terminal status and the full result map

        Raises:
            NotFoundError: If the workflow does not exist; no record is written
            GraphError, NoTriggerError, HandlerError: After the record is
                persisted as failed
            StorageError: If the record cannot be finalized; chained to the
                run error when there was one
        """
        self.workflows.get_workflow(workflow_id, include_graph=False)
        record = self.executions.create_record(workflow_id)

        set_logging_context(execution_id=record.id, workflow_id=workflow_id)
        try:
            logger.info(f"Starting execution {record.id} of workflow {workflow_id}")
            try:
                nodes, connections = self.workflows.load_graph(workflow_id)
                result = jsonable_encoder(self.engine.run(nodes, connections))
            except WorkflowEngineError as e:
                self._fail(record.id, e.message, e)
                raise
            except Exception as e:
                self._fail(record.id, str(e), e)
                raise

            try:
                self.executions.finalize_record(record.id, ExecutionStatusEnum.COMPLETED, result=result)
            except StorageError as e:
                self._fail(record.id, e.message, e)
                raise
            self.workflows.mark_run(workflow_id)
            log_with_context(logger, logging.INFO, f"Execution {record.id} completed", node_count=len(result))

            return ExecutionResult(
                execution_id=record.id,
                status=ExecutionStatusEnum.COMPLETED,
                result=result
            )
        finally:
            clear_logging_context("execution_id", "workflow_id")

    def _fail(self, execution_id: str, message: str, cause: Exception) -> None:
        logger.error(f"Execution {execution_id} failed: {message}")
        try:
            self.executions.finalize_record(execution_id, ExecutionStatusEnum.FAILED, error_message=message)
        except StorageError as e:
            raise e from cause
