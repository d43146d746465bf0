"""
Workflow Designer

Holds one workflow's canvas state and threads it through the engine:
load (project + optional arrange) -> edit -> reduce back to a definition,
plus scenario generation over the loaded task tree.
"""

from __future__ import annotations
from typing import Any, Dict, List, Optional, Union
import logging

from pydantic import ValidationError

from .engine import (
    GraphProjector,
    GraphToTreeReducer,
    LayoutEngine,
    LayoutParams,
    LLMScenarioGenerator,
    ScenarioPolicy,
    ScenarioTraversal,
    add_task_node,
    build_workflow_context,
    connect,
    delete_task_node,
    is_linear_layout,
    prepare_scenario,
    update_task_config,
    validate_graph,
)
from .engine.reducer import OriginalPreference, prefer_richer_original
from .engine.traversal import ProgressCallback
from .exceptions import TaskDefinitionError
from .models import GraphEdge, GraphNode, Position, Scenario, WorkflowDefinition, WorkflowGraph
from .runtime import LLMRuntime
from .tasks import count_tasks, validate_task_tree

logger = logging.getLogger(__name__)


class WorkflowDesigner:
    """
    Canvas session for a single workflow definition.

    State is explicit: ``nodes`` and ``edges`` are replaced, never mutated,
    by every edit, and the originally loaded tasks are kept so that
    ``to_tasks`` can reconcile edits with the source definition.
    """

    def __init__(
        self,
        layout_params: Optional[LayoutParams] = None,
        prefer_original: OriginalPreference = prefer_richer_original,
        runtime: Optional[LLMRuntime] = None
    ):
        """
        Args:
            layout_params: Snake layout geometry (defaults if None)
            prefer_original: Reconciliation policy used when reducing
            runtime: LLM runtime for scenario generation (policy scenarios if None)
        """
        self.layout = LayoutEngine(layout_params)
        self.reducer = GraphToTreeReducer(prefer_original)
        self.runtime = runtime

        self.definition: Optional[WorkflowDefinition] = None
        self.nodes: List[GraphNode] = []
        self.edges: List[GraphEdge] = []
        self._original_tasks: List[Dict[str, Any]] = []

    @property
    def graph(self) -> WorkflowGraph:
        return WorkflowGraph(nodes=self.nodes, edges=self.edges)

    def load(
        self,
        definition: Union[WorkflowDefinition, Dict[str, Any]],
        stored_nodes: Optional[List[GraphNode]] = None,
        stored_edges: Optional[List[GraphEdge]] = None
    ) -> WorkflowGraph:
        """
        Load a workflow definition onto the canvas.

        A previously stored layout is reused as-is unless it is still the
        initial single-row projection, in which case it is snake-arranged.

        Raises:
            TaskDefinitionError: If the definition envelope or a task is malformed
            GraphValidationError: If top-level reference names are missing or duplicated
        """
        if not isinstance(definition, WorkflowDefinition):
            try:
                definition = WorkflowDefinition.model_validate(definition)
            except ValidationError as e:
                raise TaskDefinitionError(f"Invalid workflow definition: {e}") from e

        validate_task_tree(definition.tasks)
        logger.info(f"Loading workflow '{definition.name}' with {len(definition.tasks)} top-level tasks "
                    f"({count_tasks(definition.tasks)} including nested)")

        if stored_nodes:
            nodes, edges = list(stored_nodes), list(stored_edges or [])
        else:
            projected = GraphProjector.process(definition.tasks)
            nodes, edges = projected.nodes, projected.edges

        if is_linear_layout(nodes):
            logger.info("Auto-arranging linear layout")
            arranged = self.layout.arrange(nodes)
            nodes, edges = arranged.nodes, arranged.edges

        self.definition = definition
        self._original_tasks = list(definition.tasks)
        self.nodes, self.edges = nodes, edges
        return self.graph

    # ==================== Edits ====================

    def add_task(
        self,
        config: Dict[str, Any],
        task_type: Optional[str] = None,
        position: Optional[Position] = None
    ) -> GraphNode:
        self.nodes = add_task_node(self.nodes, config, task_type, position)
        return self.nodes[-1]

    def update_task(self, node_id: str, config: Dict[str, Any]) -> None:
        self.nodes = update_task_config(self.nodes, node_id, config)
        logger.info(f"Updated config of node {node_id}")

    def delete_task(self, node_id: str) -> None:
        self.nodes, self.edges = delete_task_node(self.nodes, self.edges, node_id)

    def connect(self, source: str, target: str) -> None:
        self.edges = connect(self.nodes, self.edges, source, target)

    def arrange(self) -> WorkflowGraph:
        arranged = self.layout.arrange(self.nodes)
        self.nodes, self.edges = arranged.nodes, arranged.edges
        logger.info(f"Arranged {len(self.nodes)} nodes")
        return arranged

    def validate(self) -> None:
        """Raise GraphValidationError if the canvas breaks the node/edge contract."""
        validate_graph(self.nodes, self.edges)

    # ==================== Save ====================

    def to_tasks(self) -> List[Dict[str, Any]]:
        """Rebuild the ordered task list from the current canvas."""
        self.validate()
        tasks = self.reducer.process(self.nodes, self._original_tasks)
        logger.debug(f"Reduced {len(self.nodes)} nodes to {len(tasks)} tasks")
        return tasks

    def to_definition(self) -> WorkflowDefinition:
        """Current definition with its task list replaced by the canvas contents."""
        if self.definition is None:
            raise TaskDefinitionError("No workflow loaded")
        return self.definition.model_copy(update={"tasks": self.to_tasks()})

    # ==================== Scenarios ====================

    async def generate_scenarios(
        self,
        input_json: Optional[Dict[str, Any]] = None,
        additional_context: Optional[str] = None,
        on_progress: Optional[ProgressCallback] = None,
        max_retries: int = 2,
        temperature: float = 0.7,
        max_tokens: int = 1000
    ) -> List[Scenario]:
        """
        Generate scenarios for every task of the current canvas.

        With a runtime, scenarios come from the LLM and fall back to the
        type policy per task; without one, the policy is used directly.
        When ``input_json`` is given each scenario is returned ``ready``
        with a derived input.
        """
        if self.definition is None:
            raise TaskDefinitionError("No workflow loaded")

        tasks = self.to_tasks()
        policy = ScenarioPolicy()

        if self.runtime is not None:
            info = self.runtime.get_model_info()
            logger.info(f"Generating scenarios with runtime: {info.get('name')} ({info.get('type')})")
            definition = self.definition.model_dump(by_alias=True, exclude_none=True)
            definition["tasks"] = tasks
            visitor = LLMScenarioGenerator(
                self.runtime,
                workflow_context=build_workflow_context(definition, input_json),
                additional_context=additional_context,
                fallback=policy,
                max_retries=max_retries,
                temperature=temperature,
                max_tokens=max_tokens,
            )
        else:
            visitor = policy

        traversal = ScenarioTraversal(visitor, on_progress, workflow_name=self.definition.name)
        scenarios = await traversal.process(tasks)

        if input_json is not None:
            scenarios = [
                scenario if scenario.status == "failed" else prepare_scenario(scenario, input_json)
                for scenario in scenarios
            ]

        return scenarios
