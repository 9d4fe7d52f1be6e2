"""In-memory graph model for a single workflow run."""

from typing import Dict, Iterable, List, Optional, Sequence

from ..models.core import Connection, Node, NodeCategory
from .exceptions import GraphError
from .logging import get_logger

logger = get_logger(__name__)


class WorkflowGraph:
    """Nodes and directed edges of one workflow, indexed for traversal.

    Construction validates that every connection points at a supplied node.
    Lookups at traversal time are permissive: an unknown identifier simply has
    no successors or predecessors.
    """

    def __init__(self, nodes: Iterable[Node], connections: Iterable[Connection]):
        self._nodes: Dict[str, Node] = {}
        for node in nodes:
            self._nodes[node.id] = node

        self._connections: List[Connection] = list(connections)
        self._successors: Dict[str, List[str]] = {}
        self._predecessors: Dict[str, List[str]] = {}

        for connection in self._connections:
            for endpoint in (connection.source_node_id, connection.target_node_id):
                if endpoint not in self._nodes:
                    raise GraphError(
                        f"Connection {connection.id} references unknown node: {endpoint}",
                        connection_id=connection.id,
                        node_id=endpoint
                    )
            self._successors.setdefault(connection.source_node_id, []).append(connection.target_node_id)
            self._predecessors.setdefault(connection.target_node_id, []).append(connection.source_node_id)

        logger.debug(f"Built graph with {len(self._nodes)} nodes and {len(self._connections)} connections")

    @property
    def nodes(self) -> List[Node]:
        """All nodes in supply order."""
        return list(self._nodes.values())

    def get_node(self, node_id: str) -> Optional[Node]:
        return self._nodes.get(node_id)

    def trigger_nodes(self) -> List[Node]:
        """Nodes whose category is trigger, in supply order."""
        return [node for node in self._nodes.values() if node.category == NodeCategory.TRIGGER]

    def successors(self, node_id: str) -> Sequence[str]:
        """Direct successor IDs in connection order; empty for unknown IDs."""
        return tuple(self._successors.get(node_id, ()))

    def predecessors(self, node_id: str) -> Sequence[str]:
        """Direct predecessor IDs in connection order; empty for unknown IDs."""
        return tuple(self._predecessors.get(node_id, ()))

    def __len__(self) -> int:
        return len(self._nodes)

    def __contains__(self, node_id: str) -> bool:
        return node_id in self._nodes
