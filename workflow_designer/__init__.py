"""
Workflow Designer

Synchronizes nested workflow definitions with flat, positioned canvas graphs,
auto-arranges them in a deterministic snake layout, and walks the task tree
to generate per-task test scenarios with an optional local or hosted LLM.
"""

__version__ = "0.1.0"
__all__ = [
    "WorkflowDesigner",
    "WorkflowDefinition",
    "WorkflowGraph",
    "GraphNode",
    "GraphEdge",
    "Scenario",
    "DesignerError",
    "GraphValidationError",
    "TaskDefinitionError",
]

from .models import WorkflowDefinition, WorkflowGraph, GraphNode, GraphEdge, Scenario
from .designer import WorkflowDesigner
from .exceptions import DesignerError, GraphValidationError, TaskDefinitionError
