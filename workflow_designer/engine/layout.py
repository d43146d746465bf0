"""
LayoutEngine (Deterministic)

Snake (boustrophedon) grid layout for the canvas. Nodes are ordered by
sequence number and laid out left-to-right on even rows and right-to-left on
odd rows, so each row continues where the previous one ended. Edges are
re-synthesized between consecutive nodes with anchors that follow the snake.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple
import logging

from ..models import GraphEdge, GraphNode, WorkflowGraph
from .projector import LINEAR_SPACING

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LayoutParams:
    """Grid geometry for the snake layout."""
    nodes_per_row: int = 5
    horizontal_spacing: int = 200
    vertical_spacing: int = 120
    origin_x: int = 50
    origin_y: int = 50

    def __post_init__(self):
        if self.nodes_per_row < 1:
            raise ValueError("nodes_per_row must be at least 1")


# Default node footprint used for bounding boxes
NODE_WIDTH = 200
NODE_HEIGHT = 80


class LayoutEngine:
    """
    Assign snake-grid positions and connection anchors.

    Inputs are never mutated: arranged nodes are copies, and the returned
    sequence numbers are renumbered 1..n in sorted order.
    """

    def __init__(self, params: Optional[LayoutParams] = None):
        self.params = params or LayoutParams()

    def arrange(self, nodes: List[GraphNode]) -> WorkflowGraph:
        """
        Position nodes and synthesize the edges between consecutive ones.

        Args:
            nodes: Canvas nodes in any order

        Returns:
            WorkflowGraph with positioned nodes and right/left or bottom/top edges
        """
        if not nodes:
            return WorkflowGraph()

        ordered = sorted(nodes, key=lambda node: node.sequence_no)

        arranged = []
        for index, node in enumerate(ordered):
            x, y = self.position_for(index)
            positioned = node.with_position(x, y).with_sequence_no(index + 1)
            arranged.append(positioned.model_copy(update={"draggable": False}))

        edges = [
            self._edge_between(arranged[i], arranged[i + 1], i)
            for i in range(len(arranged) - 1)
        ]

        logger.debug(f"Arranged {len(arranged)} nodes in rows of {self.params.nodes_per_row}")
        return WorkflowGraph(nodes=arranged, edges=edges)

    def position_for(self, index: int) -> Tuple[int, int]:
        """Grid coordinates for the node at 0-based ``index``."""
        p = self.params
        row, col = divmod(index, p.nodes_per_row)
        if row % 2 == 1:
            col = p.nodes_per_row - 1 - col
        return p.origin_x + col * p.horizontal_spacing, p.origin_y + row * p.vertical_spacing

    def anchors_for(self, index: int) -> Tuple[str, str]:
        """(source, target) handles for the edge from ``index`` to ``index + 1``."""
        per_row = self.params.nodes_per_row
        if index // per_row == (index + 1) // per_row:
            return "right", "left"
        return "bottom", "top"

    def _edge_between(self, source: GraphNode, target: GraphNode, index: int) -> GraphEdge:
        source_handle, target_handle = self.anchors_for(index)
        return GraphEdge(
            id=f"{source.id}-{target.id}",
            source=source.id,
            target=target.id,
            source_handle=source_handle,
            target_handle=target_handle,
        )


def is_linear_layout(nodes: List[GraphNode]) -> bool:
    """
    True when nodes still sit in the initial single-row projection.

    A list of zero or one node is never considered linear, so it is left
    alone rather than auto-arranged.
    """
    if len(nodes) <= 1:
        return False

    first_x = nodes[0].position.x
    return all(
        node.position.x == first_x + index * LINEAR_SPACING and node.position.y == 0
        for index, node in enumerate(nodes)
    )


def bounding_box(nodes: List[GraphNode]) -> Optional[Dict[str, float]]:
    """Smallest box containing every node, assuming the default node footprint."""
    if not nodes:
        return None

    min_x = min(node.position.x for node in nodes)
    min_y = min(node.position.y for node in nodes)
    max_x = max(node.position.x + NODE_WIDTH for node in nodes)
    max_y = max(node.position.y + NODE_HEIGHT for node in nodes)

    return {"x": min_x, "y": min_y, "width": max_x - min_x, "height": max_y - min_y}


# Convenience function

def arrange(nodes: List[GraphNode], params: Optional[LayoutParams] = None) -> WorkflowGraph:
    """Convenience function to snake-arrange canvas nodes."""
    return LayoutEngine(params).arrange(nodes)
