"""
ScenarioTraversal (Async, Sequential)

Walks a nested task tree in pre-order and collects the scenarios produced by
a per-task visitor, followed by two whole-workflow scenarios. Visits are
awaited one at a time; scenario numbering and progress depend on it.
"""

from __future__ import annotations
from typing import Any, Awaitable, Callable, Dict, List, Optional
import logging

from ..models import ALL_NODES, Scenario
from ..tasks import iter_tasks
from .scenarios import ScenarioPolicy, display_name, scenario_id, target_of

logger = logging.getLogger(__name__)

# (task, 0-based visit index) -> scenarios for that task
ScenarioVisitor = Callable[[Dict[str, Any], int], Awaitable[List[Scenario]]]

# (message, visits so far, top-level task count)
ProgressCallback = Callable[[str, int, int], None]

E2E_HAPPY_PATH_ID = "llm-e2e-happy-path"
E2E_ERROR_RECOVERY_ID = "llm-e2e-error-recovery"


def end_to_end_scenarios(workflow_name: Optional[str] = None) -> List[Scenario]:
    name = workflow_name or "workflow"
    return [
        Scenario(
            id=E2E_HAPPY_PATH_ID,
            name="End-to-End Happy Path",
            description=(
                f"Complete workflow execution with all tasks succeeding. "
                f"Validates the entire {name} workflow from start to finish."
            ),
            target_node=ALL_NODES,
            test_type="happy_path",
        ),
        Scenario(
            id=E2E_ERROR_RECOVERY_ID,
            name="End-to-End Error Recovery",
            description="Tests workflow error handling and recovery mechanisms across multiple task failures.",
            target_node=ALL_NODES,
            test_type="error_case",
        ),
    ]


class ScenarioTraversal:
    """
    Collect scenarios for every task in a tree.

    Order is the tree's pre-order: a task, then its decision cases in
    insertion order, its default case, its fork branches, its loop body.
    A visitor that raises does not stop the walk; the task gets a single
    failed scenario carrying the error message.
    """

    def __init__(
        self,
        on_visit: ScenarioVisitor,
        on_progress: Optional[ProgressCallback] = None,
        workflow_name: Optional[str] = None
    ):
        self.on_visit = on_visit
        self.on_progress = on_progress
        self.workflow_name = workflow_name

    async def process(self, tasks: List[Dict[str, Any]]) -> List[Scenario]:
        """
        Args:
            tasks: Top-level workflow tasks (read-only)

        Returns:
            Scenarios in visit order, then the two end-to-end scenarios
        """
        if not tasks:
            return []

        total = len(tasks)
        scenarios: List[Scenario] = []
        visits = 0

        for task in iter_tasks(tasks):
            visit_index = visits
            visits += 1

            if self.on_progress:
                self.on_progress(
                    f"Analyzing task \"{display_name(task, visit_index)}\" (#{visits})",
                    visits,
                    total,
                )

            scenarios.extend(await self._visit(task, visit_index))

        scenarios.extend(end_to_end_scenarios(self.workflow_name))
        logger.info(f"Generated {len(scenarios)} scenarios from {visits} tasks ({total} top-level)")
        return scenarios

    async def _visit(self, task: Dict[str, Any], visit_index: int) -> List[Scenario]:
        try:
            return list(await self.on_visit(task, visit_index))
        except Exception as e:
            logger.error(f"Scenario generation failed for task {visit_index}: {e}")
            return [
                Scenario(
                    id=scenario_id(visit_index, 0),
                    name=f"{display_name(task, visit_index)} - Scenario Generation Failed",
                    description="Scenarios could not be generated for this task.",
                    target_node=target_of(task, visit_index),
                    test_type="error_case",
                    status="failed",
                    error=str(e) or type(e).__name__,
                )
            ]


# Convenience function

async def traverse(
    tasks: List[Dict[str, Any]],
    on_visit: Optional[ScenarioVisitor] = None,
    on_progress: Optional[ProgressCallback] = None,
    workflow_name: Optional[str] = None
) -> List[Scenario]:
    """Convenience function to generate scenarios, using ScenarioPolicy by default."""
    traversal = ScenarioTraversal(on_visit or ScenarioPolicy(), on_progress, workflow_name)
    return await traversal.process(tasks)
