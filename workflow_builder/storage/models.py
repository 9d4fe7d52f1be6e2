"""SQLAlchemy database models for the workflow builder."""

from datetime import datetime
from sqlalchemy import Boolean, Column, DateTime, Float, ForeignKey, Index, Integer, JSON, String, Text
from sqlalchemy.orm import relationship
from .database import Base


class WorkflowModel(Base):
    """Database model for workflows."""
    __tablename__ = "workflows"

    id = Column(String(36), primary_key=True)
    user_id = Column(String(36), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    description = Column(Text)
    is_active = Column(Boolean, default=False, index=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
    last_run_at = Column(DateTime)

    nodes = relationship(
        "NodeModel", back_populates="workflow",
        cascade="all, delete-orphan", order_by="NodeModel.sort_order"
    )
    connections = relationship(
        "ConnectionModel", back_populates="workflow",
        cascade="all, delete-orphan", order_by="ConnectionModel.sort_order"
    )
    executions = relationship("ExecutionModel", back_populates="workflow", cascade="all, delete-orphan")


class NodeModel(Base):
    """Database model for workflow nodes."""
    __tablename__ = "nodes"

    id = Column(String(36), primary_key=True)
    workflow_id = Column(String(36), ForeignKey("workflows.id"), nullable=False, index=True)
    type = Column(String(20), nullable=False)  # trigger, action, data, logic
    node_type = Column(String(100), nullable=False)
    label = Column(String(255), nullable=False)
    position_x = Column(Float, nullable=False, default=0.0)
    position_y = Column(Float, nullable=False, default=0.0)
    config = Column(JSON)
    sort_order = Column(Integer, nullable=False, default=0)  # Insertion order within the workflow
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    workflow = relationship("WorkflowModel", back_populates="nodes")


class ConnectionModel(Base):
    """Database model for connections between nodes."""
    __tablename__ = "connections"

    id = Column(String(36), primary_key=True)
    workflow_id = Column(String(36), ForeignKey("workflows.id"), nullable=False, index=True)
    source_node_id = Column(String(36), nullable=False, index=True)
    target_node_id = Column(String(36), nullable=False, index=True)
    sort_order = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime, default=datetime.utcnow)

    workflow = relationship("WorkflowModel", back_populates="connections")


class ExecutionModel(Base):
    """Database model for execution records."""
    __tablename__ = "executions"

    id = Column(String(36), primary_key=True)
    workflow_id = Column(String(36), ForeignKey("workflows.id"), nullable=False)
    status = Column(String(20), nullable=False)  # running, completed, failed
    started_at = Column(DateTime, default=datetime.utcnow)
    completed_at = Column(DateTime)
    error_message = Column(Text)
    execution_data = Column(JSON)  # Result map keyed by node ID

    workflow = relationship("WorkflowModel", back_populates="executions")

    __table_args__ = (
        Index("idx_executions_workflow_started", "workflow_id", "started_at"),
        Index("idx_executions_status", "status"),
    )
