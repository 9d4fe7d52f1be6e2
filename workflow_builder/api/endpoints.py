"""FastAPI REST endpoints for the workflow builder."""

from datetime import datetime
from typing import Any, Dict, List, Optional
from fastapi import APIRouter, HTTPException, Depends, status
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from ..core.execution_engine import ExecutionEngine
from ..core.exceptions import NotFoundError, WorkflowEngineError, create_error_response, status_code_for_error
from ..core.logging import get_logger
from ..core.workflow_service import WorkflowService
from ..models.core import Connection, ExecutionRecord, ExecutionResult, Node, NodeCategory, Workflow
from ..storage.database import get_db
from ..storage.repository import DEFAULT_USER_ID, ExecutionRecorder, WorkflowRepository

logger = get_logger(__name__)

router = APIRouter(prefix="/api", tags=["workflows"])

# Initialized by the application lifespan
_execution_engine: Optional[ExecutionEngine] = None


def init_dependencies(execution_engine: ExecutionEngine):
    """Initialize the global dependencies."""
    global _execution_engine
    _execution_engine = execution_engine


def get_execution_engine() -> ExecutionEngine:
    """Dependency to get the execution engine."""
    if _execution_engine is None:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Execution engine not initialized"
        )
    return _execution_engine


def get_repository(db: Session = Depends(get_db)) -> WorkflowRepository:
    return WorkflowRepository(db)


def _http_error(error: WorkflowEngineError) -> HTTPException:
    logger.warning(f"Request failed with {error.error_code}: {error.message}")
    return HTTPException(
        status_code=status_code_for_error(error),
        detail=create_error_response(error)
    )


def _unexpected_error(action: str, error: Exception) -> HTTPException:
    logger.error(f"Unexpected error while {action}: {str(error)}", exc_info=True)
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail={
            "error": "InternalError",
            "message": f"An unexpected error occurred while {action}",
            "details": {"original_error": str(error)},
            "timestamp": datetime.utcnow().isoformat()
        }
    )


# Request models
class CreateWorkflowRequest(BaseModel):
    name: str = Field(..., description="Workflow name")
    description: Optional[str] = Field(None, description="Workflow description")


class UpdateWorkflowRequest(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None
    is_active: Optional[bool] = None


class CreateNodeRequest(BaseModel):
    type: NodeCategory = Field(..., description="Node category")
    node_type: str = Field(..., description="Type tag used for handler dispatch")
    label: str = Field(..., description="Display label")
    position_x: float = 0.0
    position_y: float = 0.0
    config: Dict[str, Any] = Field(default_factory=dict)


class UpdateNodeRequest(BaseModel):
    label: Optional[str] = None
    position_x: Optional[float] = None
    position_y: Optional[float] = None
    config: Optional[Dict[str, Any]] = None


class CreateConnectionRequest(BaseModel):
    source_node_id: str = Field(..., description="Source node ID")
    target_node_id: str = Field(..., description="Target node ID")


class DeleteResponse(BaseModel):
    message: str


# Workflows

@router.get("/workflows", response_model=List[Workflow], summary="List workflows")
def list_workflows(user_id: str = DEFAULT_USER_ID,
                   repository: WorkflowRepository = Depends(get_repository)) -> List[Workflow]:
    try:
        return repository.list_workflows(user_id)
    except WorkflowEngineError as e:
        raise _http_error(e)


@router.post(
    "/workflows",
    response_model=Workflow,
    status_code=status.HTTP_201_CREATED,
    summary="Create a workflow"
)
def create_workflow(request: CreateWorkflowRequest,
                    repository: WorkflowRepository = Depends(get_repository)) -> Workflow:
    try:
        return repository.create_workflow(request.name, request.description)
    except WorkflowEngineError as e:
        raise _http_error(e)
    except Exception as e:
        raise _unexpected_error("creating the workflow", e)


@router.get("/workflows/{workflow_id}", response_model=Workflow, summary="Get a workflow with its graph")
def get_workflow(workflow_id: str, repository: WorkflowRepository = Depends(get_repository)) -> Workflow:
    try:
        return repository.get_workflow(workflow_id, include_graph=True)
    except WorkflowEngineError as e:
        raise _http_error(e)


@router.put("/workflows/{workflow_id}", response_model=Workflow, summary="Update a workflow")
def update_workflow(workflow_id: str, request: UpdateWorkflowRequest,
                    repository: WorkflowRepository = Depends(get_repository)) -> Workflow:
    try:
        return repository.update_workflow(
            workflow_id,
            name=request.name,
            description=request.description,
            is_active=request.is_active
        )
    except WorkflowEngineError as e:
        raise _http_error(e)


@router.delete("/workflows/{workflow_id}", response_model=DeleteResponse, summary="Delete a workflow")
def delete_workflow(workflow_id: str, repository: WorkflowRepository = Depends(get_repository)) -> DeleteResponse:
    try:
        if not repository.delete_workflow(workflow_id):
            raise NotFoundError(f"Workflow '{workflow_id}' not found", table="workflows")
        return DeleteResponse(message="Workflow deleted successfully")
    except WorkflowEngineError as e:
        raise _http_error(e)


# Nodes

@router.post(
    "/workflows/{workflow_id}/nodes",
    response_model=Node,
    status_code=status.HTTP_201_CREATED,
    summary="Add a node to a workflow"
)
def create_node(workflow_id: str, request: CreateNodeRequest,
                repository: WorkflowRepository = Depends(get_repository)) -> Node:
    try:
        return repository.add_node(
            workflow_id,
            category=request.type,
            node_type=request.node_type,
            label=request.label,
            position_x=request.position_x,
            position_y=request.position_y,
            config=request.config
        )
    except WorkflowEngineError as e:
        raise _http_error(e)


@router.put("/nodes/{node_id}", response_model=Node, summary="Update a node")
def update_node(node_id: str, request: UpdateNodeRequest,
                repository: WorkflowRepository = Depends(get_repository)) -> Node:
    try:
        return repository.update_node(
            node_id,
            label=request.label,
            position_x=request.position_x,
            position_y=request.position_y,
            config=request.config
        )
    except WorkflowEngineError as e:
        raise _http_error(e)


@router.delete("/nodes/{node_id}", response_model=DeleteResponse, summary="Delete a node and its connections")
def delete_node(node_id: str, repository: WorkflowRepository = Depends(get_repository)) -> DeleteResponse:
    try:
        if not repository.delete_node(node_id):
            raise NotFoundError(f"Node '{node_id}' not found", table="nodes")
        return DeleteResponse(message="Node deleted successfully")
    except WorkflowEngineError as e:
        raise _http_error(e)


# Connections

@router.post(
    "/workflows/{workflow_id}/connections",
    response_model=Connection,
    status_code=status.HTTP_201_CREATED,
    summary="Connect two nodes"
)
def create_connection(workflow_id: str, request: CreateConnectionRequest,
                      repository: WorkflowRepository = Depends(get_repository)) -> Connection:
    try:
        return repository.add_connection(workflow_id, request.source_node_id, request.target_node_id)
    except WorkflowEngineError as e:
        raise _http_error(e)


@router.delete("/connections/{connection_id}", response_model=DeleteResponse, summary="Delete a connection")
def delete_connection(connection_id: str,
                      repository: WorkflowRepository = Depends(get_repository)) -> DeleteResponse:
    try:
        if not repository.delete_connection(connection_id):
            raise NotFoundError(f"Connection '{connection_id}' not found", table="connections")
        return DeleteResponse(message="Connection deleted successfully")
    except WorkflowEngineError as e:
        raise _http_error(e)


# Execution

@router.post(
    "/workflows/{workflow_id}/execute",
    response_model=ExecutionResult,
    summary="Execute a workflow",
    description="Run the workflow from its trigger nodes and return the result map"
)
def execute_workflow(
    workflow_id: str,
    db: Session = Depends(get_db),
    engine: ExecutionEngine = Depends(get_execution_engine)
) -> ExecutionResult:
    """
    Execute a workflow synchronously.

    The execution record is persisted as failed before a graph or handler
    error is returned to the client.
    """
    try:
        return WorkflowService(db, engine).execute_workflow(workflow_id)
    except WorkflowEngineError as e:
        raise _http_error(e)
    except Exception as e:
        raise _unexpected_error("executing the workflow", e)


@router.get(
    "/workflows/{workflow_id}/executions",
    response_model=List[ExecutionRecord],
    summary="List recent executions of a workflow"
)
def list_executions(workflow_id: str, db: Session = Depends(get_db)) -> List[ExecutionRecord]:
    try:
        WorkflowRepository(db).get_workflow(workflow_id, include_graph=False)
        return ExecutionRecorder(db).list_records(workflow_id, limit=50)
    except WorkflowEngineError as e:
        raise _http_error(e)
