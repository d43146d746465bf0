"""
Synchronization engine for the workflow designer.

1. GraphProjector     - task tree -> positioned canvas graph
2. GraphToTreeReducer - canvas graph -> task tree
3. LayoutEngine       - deterministic snake layout
4. ScenarioTraversal  - ordered per-task test scenarios
"""

from .projector import GraphProjector, project
from .reducer import GraphToTreeReducer, reduce, prefer_richer_original, prefer_local, prefer_original
from .layout import LayoutEngine, LayoutParams, arrange, is_linear_layout, bounding_box
from .canvas import add_task_node, update_task_config, delete_task_node, connect, validate_graph
from .scenarios import ScenarioPolicy, LLMScenarioGenerator, build_workflow_context
from .traversal import ScenarioTraversal, traverse
from .inputs import build_test_input, prepare_scenario

__all__ = [
    "GraphProjector",
    "project",
    "GraphToTreeReducer",
    "reduce",
    "prefer_richer_original",
    "prefer_local",
    "prefer_original",
    "LayoutEngine",
    "LayoutParams",
    "arrange",
    "is_linear_layout",
    "bounding_box",
    "add_task_node",
    "update_task_config",
    "delete_task_node",
    "connect",
    "validate_graph",
    "ScenarioPolicy",
    "LLMScenarioGenerator",
    "build_workflow_context",
    "ScenarioTraversal",
    "traverse",
    "build_test_input",
    "prepare_scenario",
]
