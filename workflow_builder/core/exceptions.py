"""Error taxonomy of the workflow builder.

Every domain error carries a severity, a category, free-form ``details``
and identifying ``context`` (node, connection, service, table...). The HTTP
layer renders them with ``create_error_response`` and picks the status code
with ``status_code_for_error``.
"""

from datetime import datetime
from typing import Optional, Dict, Any
from enum import Enum


class ErrorSeverity(Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class ErrorCategory(Enum):
    VALIDATION = "validation"
    EXECUTION = "execution"
    STORAGE = "storage"
    NETWORK = "network"
    CONFIGURATION = "configuration"


class WorkflowEngineError(Exception):
    """Base exception for all workflow builder errors."""

    default_severity = ErrorSeverity.MEDIUM
    default_category = ErrorCategory.EXECUTION

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        severity: Optional[ErrorSeverity] = None,
        category: Optional[ErrorCategory] = None,
        details: Optional[Dict[str, Any]] = None,
        context: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message)
        self.message = message
        self.error_code = error_code or type(self).__name__
        self.severity = severity or self.default_severity
        self.category = category or self.default_category
        self.details = dict(details or {})
        self.context = dict(context or {})
        self.timestamp = datetime.utcnow()

    def to_dict(self) -> Dict[str, Any]:
        """Serializable form for structured logs."""
        return {
            "error_code": self.error_code,
            "message": self.message,
            "severity": self.severity.value,
            "category": self.category.value,
            "details": self.details,
            "context": self.context,
            "timestamp": self.timestamp.isoformat(),
            "exception_type": type(self).__name__
        }

    def add_context(self, **kwargs):
        """Attach identifying fields, skipping empty values."""
        self.context.update({key: value for key, value in kwargs.items() if value is not None})
        return self

    def add_details(self, **kwargs):
        self.details.update({key: value for key, value in kwargs.items() if value is not None})
        return self


class GraphError(WorkflowEngineError):
    """A connection references a node outside the workflow's node collection,
    or duplicates an existing connection."""

    default_category = ErrorCategory.VALIDATION

    def __init__(self, message: str, connection_id: Optional[str] = None,
                 node_id: Optional[str] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.add_context(connection_id=connection_id, node_id=node_id)


class NoTriggerError(WorkflowEngineError):
    """The workflow has no trigger-category node to start from."""

    default_category = ErrorCategory.VALIDATION

    def __init__(self, message: str = "No trigger node found", **kwargs):
        super().__init__(message, **kwargs)


class HandlerError(WorkflowEngineError):
    """A node type handler's own logic failed."""

    default_severity = ErrorSeverity.HIGH

    def __init__(self, message: str, node_id: Optional[str] = None,
                 node_type: Optional[str] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.add_context(node_id=node_id, node_type=node_type)


class IntegrationFailure(WorkflowEngineError):
    """A real external call made by a service adapter failed.

    Never escapes the service adapter layer: the adapter converts it into a
    simulated result annotated with the error.
    """

    default_severity = ErrorSeverity.LOW
    default_category = ErrorCategory.NETWORK

    def __init__(self, message: str, service: Optional[str] = None,
                 status_code: Optional[int] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.service = service
        self.add_context(service=service)
        self.add_details(status_code=status_code)


class InvalidRequestError(WorkflowEngineError):
    """A create or update request carries unusable input."""

    default_severity = ErrorSeverity.LOW
    default_category = ErrorCategory.VALIDATION

    def __init__(self, message: str, field: Optional[str] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.add_context(field=field)


class StorageError(WorkflowEngineError):
    """A database operation failed."""

    default_severity = ErrorSeverity.HIGH
    default_category = ErrorCategory.STORAGE

    def __init__(self, message: str, operation: Optional[str] = None,
                 table: Optional[str] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.add_context(operation=operation, table=table)


class NotFoundError(StorageError):
    """A workflow, node, connection or execution lookup missed."""

    default_severity = ErrorSeverity.LOW


class ConfigurationError(WorkflowEngineError):
    """Configuration is invalid or missing."""

    default_severity = ErrorSeverity.HIGH
    default_category = ErrorCategory.CONFIGURATION

    def __init__(self, message: str, config_key: Optional[str] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.add_context(config_key=config_key)


def status_code_for_error(error: WorkflowEngineError) -> int:
    """HTTP status code for a workflow builder error."""
    if isinstance(error, NotFoundError):
        return 404
    if isinstance(error, (GraphError, NoTriggerError, InvalidRequestError)):
        return 400
    return 500


def create_error_response(error: WorkflowEngineError) -> Dict[str, Any]:
    """Error body returned by the HTTP layer."""
    return {
        "error": error.error_code,
        "message": error.message,
        "details": {
            **error.details,
            "severity": error.severity.value,
            "category": error.category.value,
            "timestamp": error.timestamp.isoformat()
        },
        "context": error.context
    }
