"""Core workflow builder components."""

from .exceptions import (
    WorkflowEngineError,
    GraphError,
    NoTriggerError,
    HandlerError,
    IntegrationFailure,
    InvalidRequestError,
    StorageError,
    NotFoundError,
    ConfigurationError,
)
from .logging import get_logger, setup_logging

__all__ = [
    "WorkflowEngineError",
    "GraphError",
    "NoTriggerError",
    "HandlerError",
    "IntegrationFailure",
    "InvalidRequestError",
    "StorageError",
    "NotFoundError",
    "ConfigurationError",
    "get_logger",
    "setup_logging",
]
