"""Per-node-type dispatch for workflow nodes."""

import json
from datetime import datetime
from enum import Enum
from typing import Any, Callable, Dict, Optional

from ..models.core import Node
from ..services.registry import ServiceRegistry
from .exceptions import HandlerError, WorkflowEngineError
from .logging import get_logger

logger = get_logger(__name__)

Handler = Callable[[Node, Dict[str, Any]], Any]


class NodeType(str, Enum):
    """Type tags with a dedicated handler."""
    # triggers
    SCHEDULE = "schedule"
    WEBHOOK = "webhook"
    CALENDAR = "calendar"
    # data
    WEATHER = "weather"
    GITHUB = "github"
    DATABASE = "database"
    SHEETS = "sheets"
    # actions
    EMAIL = "email"
    SMS = "sms"
    SOCIAL = "social"
    NOTIFICATION = "notification"
    SHEETS_WRITE = "sheets_write"
    # logic
    TRANSFORM = "transform"
    CONDITION = "condition"
    AI_GENERATE = "ai_generate"
    MERGE = "merge"


def _now() -> str:
    return datetime.utcnow().isoformat() + "Z"


def _option(node: Node, key: str, default: Any) -> Any:
    """Read one configuration key, substituting the default for missing or empty values."""
    value = node.config.get(key)
    return value if value else default


# Trigger handlers: configuration echo plus a timestamp, no I/O.

def handle_schedule(node: Node, previous_results: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "triggered": True,
        "timestamp": _now(),
        "cron": _option(node, "cron", "0 9 * * *"),
        "type": "scheduled_trigger"
    }


def handle_webhook(node: Node, previous_results: Dict[str, Any]) -> Dict[str, Any]:
    timestamp = _now()
    return {
        "triggered": True,
        "timestamp": timestamp,
        "url": _option(node, "url", "https://example.com/webhook"),
        "method": _option(node, "method", "POST"),
        "payload": {"timestamp": timestamp, "source": "webhook"},
        "headers": _option(node, "headers", {})
    }


def handle_calendar(node: Node, previous_results: Dict[str, Any]) -> Dict[str, Any]:
    timestamp = _now()
    return {
        "timestamp": timestamp,
        "events": [
            {
                "title": "Team Meeting",
                "time": timestamp,
                "duration": 60,
                "location": "Conference Room A",
                "attendees": ["user@example.com"]
            }
        ],
        "calendar": _option(node, "calendar", "primary")
    }


# Data handlers without a backing integration.

def handle_database(node: Node, previous_results: Dict[str, Any]) -> Dict[str, Any]:
    results = [
        {"id": 1, "name": "John Doe", "email": "john@example.com"},
        {"id": 2, "name": "Jane Smith", "email": "jane@example.com"}
    ]
    return {
        "real_service": False,
        "query": _option(node, "query", "SELECT * FROM users"),
        "results": results,
        "row_count": len(results)
    }


def handle_sheets(node: Node, previous_results: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "real_service": False,
        "spreadsheet": _option(node, "spreadsheet_id", "default"),
        "data": [
            ["Name", "Email", "Role"],
            ["John Doe", "john@example.com", "Developer"],
            ["Jane Smith", "jane@example.com", "Designer"]
        ]
    }


# Action handlers without a backing integration.

def handle_notification(node: Node, previous_results: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "sent": True,
        "real_service": False,
        "type": _option(node, "type", "push"),
        "title": _option(node, "title", "Notification"),
        "message": _option(node, "message", "You have a new notification"),
        "device": _option(node, "device", "all")
    }


def handle_sheets_write(node: Node, previous_results: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "written": True,
        "real_service": False,
        "spreadsheet": _option(node, "spreadsheet_id", "default"),
        "range": _option(node, "range", "Sheet1!A1"),
        "data": dict(previous_results)
    }


# Logic handlers: pure functions of the predecessor results.

def handle_transform(node: Node, previous_results: Dict[str, Any]) -> Dict[str, Any]:
    input_data = dict(previous_results)
    return {
        "transformed": True,
        "input": input_data,
        "output": f"Transformed data at {_now()}\nInput keys: {', '.join(input_data.keys())}",
        "transformation": _option(node, "transformation", "default")
    }


def evaluate_condition(condition: Any, data: Dict[str, Any]) -> bool:
    """A configured condition is met when its value is truthy."""
    return bool(condition)


def handle_condition(node: Node, previous_results: Dict[str, Any]) -> Dict[str, Any]:
    condition_input = dict(previous_results)
    condition = node.config.get("condition")
    condition_met = evaluate_condition(condition, condition_input) if condition else True
    return {
        "condition_met": condition_met,
        "evaluated": condition or "default",
        "input": condition_input,
        "result": "Proceed to next node" if condition_met else "Condition not met"
    }


def handle_ai_generate(node: Node, previous_results: Dict[str, Any]) -> Dict[str, Any]:
    ai_input = dict(previous_results)
    return {
        "generated": True,
        "prompt": _option(node, "prompt", "Generate content based on input data"),
        "input": ai_input,
        "output": (
            f"AI generated content based on: {json.dumps(ai_input, default=str)}\n\n"
            f"This is simulated AI content created at {_now()}"
        ),
        "model": _option(node, "model", "gpt-4")
    }


def handle_merge(node: Node, previous_results: Dict[str, Any]) -> Dict[str, Any]:
    all_inputs = dict(previous_results)
    output = []
    for value in all_inputs.values():
        if isinstance(value, list):
            output.extend(value)
        else:
            output.append(value)
    return {
        "merged": True,
        "inputs": all_inputs,
        "output": output,
        "strategy": _option(node, "strategy", "combine_all")
    }


def handle_unknown(node: Node, previous_results: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "executed": True,
        "node_type": node.node_type,
        "label": node.label,
        "timestamp": _now(),
        "status_message": f"Node {node.label} executed successfully"
    }


class NodeExecutor:
    """Maps each node type tag to exactly one handler.

    Tags without a registered handler fall through to a default handler that
    acknowledges execution, so dispatch never fails on an unrecognized tag.
    """

    def __init__(self, services: ServiceRegistry):
        self.services = services
        self._default_handler: Handler = handle_unknown
        self._handlers: Dict[str, Handler] = {
            NodeType.SCHEDULE.value: handle_schedule,
            NodeType.WEBHOOK.value: handle_webhook,
            NodeType.CALENDAR.value: handle_calendar,
            NodeType.WEATHER.value: self._handle_weather,
            NodeType.GITHUB.value: self._handle_github,
            NodeType.DATABASE.value: handle_database,
            NodeType.SHEETS.value: handle_sheets,
            NodeType.EMAIL.value: self._handle_email,
            NodeType.SMS.value: self._handle_sms,
            NodeType.SOCIAL.value: self._handle_social,
            NodeType.NOTIFICATION.value: handle_notification,
            NodeType.SHEETS_WRITE.value: handle_sheets_write,
            NodeType.TRANSFORM.value: handle_transform,
            NodeType.CONDITION.value: handle_condition,
            NodeType.AI_GENERATE.value: handle_ai_generate,
            NodeType.MERGE.value: handle_merge,
        }

    def register_handler(self, node_type: str, handler: Handler) -> None:
        """Register or replace the handler for a type tag."""
        if not node_type or not node_type.strip():
            raise ValueError("Node type cannot be empty")
        if not callable(handler):
            raise ValueError(f"Handler for '{node_type}' must be callable")
        self._handlers[node_type.strip()] = handler
        logger.debug(f"Registered handler for node type '{node_type}'")

    def get_handler(self, node_type: str) -> Handler:
        return self._handlers.get(node_type, self._default_handler)

    def is_registered(self, node_type: str) -> bool:
        return node_type in self._handlers

    def execute(self, node: Node, previous_results: Optional[Dict[str, Any]] = None) -> Any:
        """
        Produce the output of one node.

        Args:
            node: The node to execute
            previous_results: Outputs of already-executed direct predecessors

        Returns:
            The handler's output value

        Raises:
            HandlerError: If the handler's own logic fails
        """
        previous_results = previous_results if previous_results is not None else {}
        handler = self.get_handler(node.node_type)

        try:
            return handler(node, previous_results)
        except WorkflowEngineError:
            raise
        except Exception as e:
            logger.error(f"Handler for node {node.id} ({node.node_type}) failed: {str(e)}")
            raise HandlerError(
                f"Node {node.label} ({node.node_type}) failed: {str(e)}",
                node_id=node.id,
                node_type=node.node_type
            ) from e

    def _handle_weather(self, node: Node, previous_results: Dict[str, Any]) -> Dict[str, Any]:
        return self.services.weather.invoke(node.config, previous_results)

    def _handle_github(self, node: Node, previous_results: Dict[str, Any]) -> Dict[str, Any]:
        return self.services.github.invoke(node.config, previous_results)

    def _handle_email(self, node: Node, previous_results: Dict[str, Any]) -> Dict[str, Any]:
        return self.services.email.invoke(node.config, previous_results)

    def _handle_sms(self, node: Node, previous_results: Dict[str, Any]) -> Dict[str, Any]:
        return self.services.sms.invoke(node.config, previous_results)

    def _handle_social(self, node: Node, previous_results: Dict[str, Any]) -> Dict[str, Any]:
        return self.services.social.invoke(node.config, previous_results)
