"""
GraphProjector (Deterministic)

Turns an ordered task list into a flat canvas graph: one node per top-level
task placed on a single line, with consecutive nodes linked. Nested branch,
fork and loop children stay inside the owning node's ``config``.
"""

from __future__ import annotations
from typing import Any, Dict, List, Optional
import logging

from ..models import GraphEdge, GraphNode, NodeData, Position, WorkflowGraph
from ..tasks import parse_structural_fields, reference_of, task_color

logger = logging.getLogger(__name__)

# Horizontal distance between nodes in the initial single-row placement
LINEAR_SPACING = 300


class GraphProjector:
    """
    Project a task tree onto the canvas.

    Pure function of its input: the task dicts are shallow-copied, never
    modified, and malformed embedded JSON degrades to the raw string.
    """

    @staticmethod
    def process(tasks: List[Dict[str, Any]]) -> WorkflowGraph:
        """
        Build nodes and edges for the given top-level tasks.

        Args:
            tasks: Ordered workflow tasks

        Returns:
            WorkflowGraph with linearly placed nodes and consecutive edges
        """
        nodes = []
        for index, task in enumerate(tasks):
            if not isinstance(task, dict):
                logger.warning(f"Skipping non-object task at index {index}")
                continue
            nodes.append(GraphProjector._build_node(task, len(nodes)))

        edges = GraphProjector._link_consecutive(nodes)

        logger.debug(f"Projected {len(nodes)} nodes and {len(edges)} edges")
        return WorkflowGraph(nodes=nodes, edges=edges)

    @staticmethod
    def _build_node(task: Dict[str, Any], index: int) -> GraphNode:
        config = parse_structural_fields(task)
        node_id = str(reference_of(task, index))
        task_type = _text(task.get("type"))
        name = _text(task.get("taskReferenceName")) or _text(task.get("name"))

        return GraphNode(
            id=node_id,
            position=Position(x=index * LINEAR_SPACING, y=0),
            data=NodeData(
                label=name or f"Task {index + 1}",
                task_type=task_type,
                task_name=name,
                task_description=_text(task.get("description")),
                sequence_no=index + 1,
                color=task_color(task_type),
                config=config,
            ),
        )

    @staticmethod
    def _link_consecutive(nodes: List[GraphNode]) -> List[GraphEdge]:
        return [
            GraphEdge(id=f"edge-{i}", source=nodes[i].id, target=nodes[i + 1].id)
            for i in range(len(nodes) - 1)
        ]


def _text(value: Any) -> Optional[str]:
    return value if isinstance(value, str) and value else None


# Convenience function

def project(tasks: List[Dict[str, Any]]) -> WorkflowGraph:
    """Convenience function to project tasks onto a canvas graph."""
    return GraphProjector.process(tasks)
