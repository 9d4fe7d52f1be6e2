"""Data models for the workflow builder."""

from .core import (
    NodeCategory,
    ExecutionStatusEnum,
    Node,
    Connection,
    Workflow,
    ExecutionRecord,
    ExecutionResult,
)

__all__ = [
    "NodeCategory",
    "ExecutionStatusEnum",
    "Node",
    "Connection",
    "Workflow",
    "ExecutionRecord",
    "ExecutionResult",
]
