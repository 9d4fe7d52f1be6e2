"""Execution Engine: breadth-first traversal of a workflow graph."""

import time
from collections import deque
from typing import Any, Callable, Deque, Dict, Iterable, Set

from ..models.core import Connection, Node
from .exceptions import NoTriggerError, WorkflowEngineError
from .graph import WorkflowGraph
from .logging import get_logger
from .node_executor import NodeExecutor

logger = get_logger(__name__)


class ExecutionEngine:
    """Runs a workflow graph from its trigger nodes and collects node outputs.

    Traversal is sequential: one node at a time, in FIFO queue order, each
    node preceded by a fixed pause. A node executes at most once per run and
    receives the outputs of whichever direct predecessors have already run.
    """

    def __init__(self, node_executor: NodeExecutor, node_delay: float = 0.5,
                 sleep: Callable[[float], None] = time.sleep):
        """Initialize the execution engine.

        Args:
            node_executor: Dispatcher that produces each node's output
            node_delay: Seconds to pause before every node handler
            sleep: Function used for the pause
        """
        if node_delay < 0:
            raise ValueError("Node delay cannot be negative")
        self.node_executor = node_executor
        self.node_delay = node_delay
        self._sleep = sleep

    def run(self, nodes: Iterable[Node], connections: Iterable[Connection]) -> Dict[str, Any]:
        """
        Execute every node reachable from the trigger nodes.

        Args:
            nodes: Node collection of the workflow, in supply order
            connections: Directed connections between those nodes

        Returns:
            Result map from node ID to that node's output, in execution order

        Raises:
            GraphError: If a connection references an unknown node
            NoTriggerError: If no node has the trigger category
            HandlerError: If a node handler fails; the traversal is abandoned
        """
        graph = WorkflowGraph(nodes, connections)

        trigger_nodes = graph.trigger_nodes()
        if not trigger_nodes:
            raise NoTriggerError("No trigger node found")

        queue: Deque[str] = deque(node.id for node in trigger_nodes)
        visited: Set[str] = set()
        results: Dict[str, Any] = {}

        logger.info(f"Starting traversal of {len(graph)} nodes from {len(trigger_nodes)} trigger(s)")
        started = time.time()

        while queue:
            node_id = queue.popleft()
            if node_id in visited:
                continue
            visited.add(node_id)

            node = graph.get_node(node_id)
            previous_results = self._collect_previous_results(graph, node_id, results)
            results[node_id] = self._execute_node(node, previous_results)

            for successor_id in graph.successors(node_id):
                if successor_id not in visited:
                    queue.append(successor_id)

        logger.info(f"Traversal completed: {len(results)} nodes executed in {time.time() - started:.3f}s")
        return results

    def _collect_previous_results(self, graph: WorkflowGraph, node_id: str,
                                  results: Dict[str, Any]) -> Dict[str, Any]:
        """Outputs of direct predecessors that have already executed."""
        previous_results: Dict[str, Any] = {}
        for predecessor_id in graph.predecessors(node_id):
            if predecessor_id in results:
                previous_results[predecessor_id] = results[predecessor_id]
        return previous_results

    def _execute_node(self, node: Node, previous_results: Dict[str, Any]) -> Any:
        logger.info(f"Executing node: {node.label} ({node.node_type})")

        if self.node_delay:
            self._sleep(self.node_delay)

        try:
            result = self.node_executor.execute(node, previous_results)
        except WorkflowEngineError as e:
            logger.error(f"Node {node.id} execution failed: {e.message}")
            raise

        logger.debug(f"Node {node.id} completed with {len(previous_results)} predecessor result(s)")
        return result
