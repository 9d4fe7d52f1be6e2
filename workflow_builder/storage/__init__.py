"""Database models and storage layer."""

from .database import Base, get_db, get_database_engine, create_tables, drop_tables
from .models import WorkflowModel, NodeModel, ConnectionModel, ExecutionModel
from .repository import WorkflowRepository, ExecutionRecorder

__all__ = [
    "Base",
    "get_db",
    "get_database_engine",
    "create_tables",
    "drop_tables",
    "WorkflowModel",
    "NodeModel",
    "ConnectionModel",
    "ExecutionModel",
    "WorkflowRepository",
    "ExecutionRecorder",
]
