"""
Canvas edits expressed as pure functions over node and edge lists.

Nodes are addressed by their stable ID; every operation returns new lists
and leaves the caller's lists untouched. Only linear reordering is editable
on the canvas, so connections are restricted to consecutive sequence numbers.
"""

from __future__ import annotations
from collections import Counter
from typing import Any, Dict, List, Optional, Tuple
import logging

from ..exceptions import GraphValidationError
from ..models import GraphEdge, GraphNode, NodeData, Position
from ..tasks import task_color
from .reducer import strip_ui_keys

logger = logging.getLogger(__name__)


def add_task_node(
    nodes: List[GraphNode],
    config: Dict[str, Any],
    task_type: Optional[str] = None,
    position: Optional[Position] = None,
    color: Optional[str] = None
) -> List[GraphNode]:
    """
    Append a node for a newly dropped or imported task.

    The node ID is the task's reference name, or ``{type}_{n}`` when the
    config does not name one yet.

    Raises:
        GraphValidationError: If a node with the same ID already exists
    """
    config = strip_ui_keys(config)
    task_type = task_type or config.get("type") or "SIMPLE"
    sequence_no = len(nodes) + 1
    node_id = config.get("taskReferenceName") or f"{task_type.lower()}_{sequence_no}"

    if any(node.id == node_id for node in nodes):
        raise GraphValidationError(
            violated_rules=["duplicate_reference"],
            offending_ids=[node_id],
            details=f"A task with reference name '{node_id}' is already on the canvas"
        )

    node = GraphNode(
        id=node_id,
        position=position or Position(),
        data=NodeData(
            label=config.get("taskReferenceName") or config.get("name") or node_id,
            task_type=task_type,
            task_name=config.get("name"),
            task_description=config.get("description"),
            sequence_no=sequence_no,
            color=color or task_color(task_type),
            config=config,
        ),
    )
    logger.info(f"Added node {node_id} ({task_type}) at sequence {sequence_no}")
    return [*nodes, node]


def update_task_config(nodes: List[GraphNode], node_id: str, config: Dict[str, Any]) -> List[GraphNode]:
    """
    Replace the config of node ``node_id``. The node ID never changes.

    Raises:
        KeyError: If no node has ID ``node_id``
        GraphValidationError: If the config renames or drops the task's reference name
    """
    current = next((node for node in nodes if node.id == node_id), None)
    if current is None:
        raise KeyError(f"No node with id {node_id!r}")

    config = strip_ui_keys(config)
    reference = config.get("taskReferenceName")
    had_reference = bool(current.config and current.config.get("taskReferenceName"))
    if reference != node_id and (reference is not None or had_reference):
        raise GraphValidationError(
            violated_rules=["reference_changed"],
            offending_ids=[node_id],
            details=f"taskReferenceName of '{node_id}' cannot be changed to {reference!r}"
        )

    updated = []
    for node in nodes:
        if node.id == node_id:
            data = node.data.model_copy(update={
                "config": config,
                "label": reference or config.get("name") or node.data.label,
                "task_description": config.get("description", node.data.task_description),
            })
            node = node.model_copy(update={"data": data})
        updated.append(node)
    return updated


def delete_task_node(
    nodes: List[GraphNode],
    edges: List[GraphEdge],
    node_id: str
) -> Tuple[List[GraphNode], List[GraphEdge]]:
    """Remove a node and its edges, then renumber the remaining nodes 1..n."""
    ordered = sorted((node for node in nodes if node.id != node_id), key=lambda node: node.sequence_no)
    if len(ordered) == len(nodes):
        raise KeyError(f"No node with id {node_id!r}")

    remaining = [node.with_sequence_no(index + 1) for index, node in enumerate(ordered)]
    kept_edges = [edge for edge in edges if node_id not in (edge.source, edge.target)]

    logger.info(f"Deleted node {node_id}; {len(remaining)} nodes remain")
    return remaining, kept_edges


def connect(
    nodes: List[GraphNode],
    edges: List[GraphEdge],
    source: str,
    target: str,
    source_handle: Optional[str] = None,
    target_handle: Optional[str] = None
) -> List[GraphEdge]:
    """
    Add an edge from ``source`` to ``target``.

    Raises:
        GraphValidationError: If the target is not the next node in sequence
    """
    by_id = {node.id: node for node in nodes}
    if source not in by_id or target not in by_id:
        missing = [node_id for node_id in (source, target) if node_id not in by_id]
        raise GraphValidationError(
            violated_rules=["unknown_node"],
            offending_ids=missing,
            details=f"Cannot connect unknown nodes: {', '.join(missing)}"
        )

    if by_id[target].sequence_no != by_id[source].sequence_no + 1:
        raise GraphValidationError(
            violated_rules=["non_sequential_edge"],
            offending_ids=[source, target],
            details="Tasks can only be connected in sequence order. Use auto-arrange to reorganize."
        )

    edge_id = f"{source}-{target}"
    if any(edge.id == edge_id for edge in edges):
        return list(edges)

    edge = GraphEdge(
        id=edge_id,
        source=source,
        target=target,
        source_handle=source_handle or "right",
        target_handle=target_handle or "left",
        type="bezier",
    )
    return [*edges, edge]


def validate_graph(nodes: List[GraphNode], edges: Optional[List[GraphEdge]] = None) -> None:
    """
    Check the structural contract the reducer relies on.

    - node IDs are unique
    - a config reference name matches its node ID and is unique
    - sequence numbers are exactly 1..n
    - every edge joins existing nodes whose sequence numbers differ by one

    Raises:
        GraphValidationError: Listing every violated rule and offending ID
    """
    violations = []
    offending_ids = []

    counts = Counter(node.id for node in nodes)
    duplicates = sorted(node_id for node_id, count in counts.items() if count > 1)
    if duplicates:
        violations.append("duplicate_reference")
        offending_ids.extend(duplicates)

    references = [node.config.get("taskReferenceName") for node in nodes if node.config]
    reference_counts = Counter(ref for ref in references if ref)
    duplicate_references = sorted(ref for ref, count in reference_counts.items() if count > 1)
    if duplicate_references:
        violations.append("duplicate_reference")
        offending_ids.extend(duplicate_references)

    mismatched = [
        node.id for node in nodes
        if node.config and node.config.get("taskReferenceName") not in (None, node.id)
    ]
    if mismatched:
        violations.append("reference_mismatch")
        offending_ids.extend(mismatched)

    sequence = sorted(node.sequence_no for node in nodes)
    if sequence != list(range(1, len(nodes) + 1)):
        violations.append("sequence_gap")
        offending_ids.extend(
            node.id for node in nodes
            if sequence.count(node.sequence_no) > 1 or node.sequence_no > len(nodes)
        )

    by_id = {node.id: node for node in nodes}
    for edge in edges or []:
        source, target = by_id.get(edge.source), by_id.get(edge.target)
        if source is None or target is None:
            violations.append("dangling_edge")
            offending_ids.append(edge.id)
        elif target.sequence_no != source.sequence_no + 1:
            violations.append("non_sequential_edge")
            offending_ids.append(edge.id)

    if violations:
        unique_violations = list(dict.fromkeys(violations))
        unique_offending = list(dict.fromkeys(offending_ids))
        raise GraphValidationError(
            violated_rules=unique_violations,
            offending_ids=unique_offending,
            details=f"Found {len(unique_violations)} graph violations across {len(unique_offending)} items"
        )
