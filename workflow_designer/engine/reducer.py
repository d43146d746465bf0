"""
GraphToTreeReducer (Deterministic)

Rebuilds the ordered task list from an edited canvas graph. Sequence numbers
decide order and are then discarded; they never reach the task payload.
"""

from __future__ import annotations
from typing import Any, Callable, Dict, List, Optional
import logging

from ..models import GraphNode
from ..tasks import STRUCTURAL_FIELDS, child_tasks, count_tasks, variant_of

logger = logging.getLogger(__name__)

# Keys the canvas may inject into a task config that are not part of the definition
UI_ONLY_KEYS = frozenset({"sequenceNo"})

# (original task, local config) -> True to keep the original
OriginalPreference = Callable[[Dict[str, Any], Dict[str, Any]], bool]


def strip_ui_keys(config: Dict[str, Any]) -> Dict[str, Any]:
    return {key: value for key, value in config.items() if key not in UI_ONLY_KEYS}


def prefer_richer_original(original: Dict[str, Any], local: Dict[str, Any]) -> bool:
    """
    Keep the original task when the local config has lost structure.

    Only structural fields count: the original wins if it carries one the
    local config lacks, or if it nests more child tasks. Other keys edited
    or removed locally stay that way.
    """
    if any(key in original and key not in local for key in STRUCTURAL_FIELDS):
        return True

    original_children = count_tasks(list(child_tasks(variant_of(original))))
    local_children = count_tasks(list(child_tasks(variant_of(local))))
    return original_children > local_children


def prefer_local(original: Dict[str, Any], local: Dict[str, Any]) -> bool:
    return False


def prefer_original(original: Dict[str, Any], local: Dict[str, Any]) -> bool:
    return True


class GraphToTreeReducer:
    """
    Reduce canvas nodes back into an ordered task list.

    Nodes without a config are incomplete drops and are skipped. When the
    caller passes the originally loaded tasks, ``prefer_original`` decides
    per node whether the original or the locally edited config is kept.
    """

    def __init__(self, prefer_original: OriginalPreference = prefer_richer_original):
        self.prefer_original = prefer_original

    def process(
        self,
        nodes: List[GraphNode],
        original_tasks: Optional[List[Dict[str, Any]]] = None
    ) -> List[Dict[str, Any]]:
        """
        Args:
            nodes: Canvas nodes in any order
            original_tasks: Tasks as fetched or persisted, if known

        Returns:
            Tasks ordered by sequence number, free of UI-only keys
        """
        originals = self._index_originals(original_tasks)
        ordered = sorted(nodes, key=lambda node: node.sequence_no)

        tasks = []
        for node in ordered:
            if node.config is None:
                logger.debug(f"Dropping unconfigured node {node.id}")
                continue

            local = strip_ui_keys(node.config)
            original = originals.get(local.get("taskReferenceName", node.id))

            if original is not None and self.prefer_original(original, local):
                logger.debug(f"Keeping original definition for {node.id}")
                tasks.append(strip_ui_keys(original))
            else:
                tasks.append(local)

        return tasks

    @staticmethod
    def _index_originals(original_tasks: Optional[List[Dict[str, Any]]]) -> Dict[str, Dict[str, Any]]:
        index: Dict[str, Dict[str, Any]] = {}
        for task in original_tasks or []:
            if isinstance(task, dict) and task.get("taskReferenceName"):
                index.setdefault(task["taskReferenceName"], task)
        return index


# Convenience function

def reduce(
    nodes: List[GraphNode],
    original_tasks: Optional[List[Dict[str, Any]]] = None,
    prefer_original: OriginalPreference = prefer_richer_original
) -> List[Dict[str, Any]]:
    """Convenience function to rebuild tasks from canvas nodes."""
    return GraphToTreeReducer(prefer_original).process(nodes, original_tasks)
