"""Core Pydantic models for the workflow builder."""

from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional
from pydantic import BaseModel, Field, field_validator


class NodeCategory(str, Enum):
    """Enumeration of node categories."""
    TRIGGER = "trigger"
    ACTION = "action"
    DATA = "data"
    LOGIC = "logic"


class ExecutionStatusEnum(str, Enum):
    """Enumeration of execution record statuses."""
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


class Node(BaseModel):
    """A typed node of a workflow graph."""
    id: str = Field(..., description="Identifier, unique within the workflow")
    workflow_id: Optional[str] = Field(None, description="Owning workflow ID")
    category: NodeCategory = Field(..., description="Node category")
    node_type: str = Field(..., description="Type tag used for handler dispatch")
    label: str = Field(..., description="Display label")
    position_x: float = Field(0.0, description="Canvas X coordinate")
    position_y: float = Field(0.0, description="Canvas Y coordinate")
    config: Dict[str, Any] = Field(default_factory=dict, description="Handler-specific configuration")

    @field_validator('id', 'node_type')
    @classmethod
    def validate_not_empty(cls, value):
        """Ensure identifiers and type tags are not blank."""
        if not value or not value.strip():
            raise ValueError("Value cannot be empty")
        return value.strip()

    @field_validator('config', mode='before')
    @classmethod
    def default_config(cls, config):
        """Treat a missing configuration blob as an empty mapping."""
        return config or {}


class Connection(BaseModel):
    """A directed edge between two nodes."""
    id: str = Field(..., description="Connection identifier")
    workflow_id: Optional[str] = Field(None, description="Owning workflow ID")
    source_node_id: str = Field(..., description="Source node ID")
    target_node_id: str = Field(..., description="Target node ID")


class Workflow(BaseModel):
    """A named, user-owned container of nodes and connections."""
    id: str = Field(..., description="Workflow identifier")
    user_id: str = Field("default-user", description="Owning user ID")
    name: str = Field(..., description="Workflow name")
    description: Optional[str] = Field(None, description="Workflow description")
    is_active: bool = Field(False, description="Activation flag")
    created_at: Optional[datetime] = Field(None, description="Creation timestamp")
    updated_at: Optional[datetime] = Field(None, description="Last update timestamp")
    last_run_at: Optional[datetime] = Field(None, description="Timestamp of the last run")
    nodes: List[Node] = Field(default_factory=list, description="Nodes in the workflow")
    connections: List[Connection] = Field(default_factory=list, description="Connections in the workflow")


class ExecutionRecord(BaseModel):
    """Persisted status/result envelope for one engine run."""
    id: str = Field(..., description="Execution identifier")
    workflow_id: str = Field(..., description="Workflow that was run")
    status: ExecutionStatusEnum = Field(..., description="Execution status")
    started_at: datetime = Field(..., description="Timestamp when the run started")
    completed_at: Optional[datetime] = Field(None, description="Timestamp when the run ended")
    error_message: Optional[str] = Field(None, description="Error message if the run failed")
    execution_data: Optional[Dict[str, Any]] = Field(None, description="Result map of a completed run")


class ExecutionResult(BaseModel):
    """Outcome of a completed run as returned to the caller."""
    execution_id: str = Field(..., description="Execution identifier")
    status: ExecutionStatusEnum = Field(..., description="Terminal status")
    result: Dict[str, Any] = Field(default_factory=dict, description="Result map keyed by node ID")
