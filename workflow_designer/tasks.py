"""
Task tree model for workflow definitions.

A workflow definition is an ordered list of JSON-shaped task dicts. Most task
types are opaque leaves; four structural shapes carry nested child lists:

- Decision  - ``decisionCases`` (label -> tasks) plus ``defaultCase``
- ForkJoin  - ``forkTasks`` (list of branches, each a list of tasks)
- Loop      - ``loopOver`` (loop body tasks)
- Leaf      - everything else

Tasks stay plain dicts so unknown fields round-trip untouched. The variant
classes below are read-only views used for dispatch.
"""

from __future__ import annotations
import json
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from .exceptions import GraphValidationError, TaskDefinitionError

logger = logging.getLogger(__name__)

Task = Dict[str, Any]

# Fields that may arrive as raw JSON strings from the server or a text editor
STRUCTURAL_FIELDS = ("decisionCases", "defaultCase", "forkTasks", "loopOver")

DEFAULT_TASK_COLOR = "#10b981"

TASK_TYPE_COLORS: Dict[str, str] = {
    "HTTP": "#0066cc",
    "SIMPLE": "#10b981",
    "HUMAN": "#f59e0b",
    "INLINE": "#8b5cf6",
    "KAFKA_PUBLISH": "#ec4899",
    "EVENT": "#06b6d4",
    "WAIT": "#6366f1",
    "NOOP": "#6b7280",
    "TERMINATE": "#dc2626",
    "SWITCH": "#f97316",
    "DO_WHILE": "#a855f7",
    "FORK_JOIN": "#0ea5e9",
    "DYNAMIC": "#14b8a6",
    "JOIN": "#7c3aed",
    "SUB_WORKFLOW": "#3b82f6",
    "START_WORKFLOW": "#06b6d4",
}


class WorkflowTask(BaseModel):
    """Common task fields. Variant-specific fields are kept as extras."""
    model_config = ConfigDict(extra="allow")

    name: Optional[str] = Field(None, description="Display identifier")
    taskReferenceName: str = Field(..., description="Stable unique key within the workflow")
    type: str = Field("SIMPLE", description="Task type tag")
    description: Optional[str] = None
    inputParameters: Optional[Dict[str, Any]] = None
    optional: Optional[bool] = None
    asyncComplete: Optional[bool] = None
    retryCount: Optional[int] = None

    @field_validator('taskReferenceName')
    @classmethod
    def validate_reference_name(cls, v):
        if not v or not v.strip():
            raise ValueError("taskReferenceName must be a non-empty string")
        return v


# ==================== Variants ====================

@dataclass(frozen=True)
class Leaf:
    task: Task


@dataclass(frozen=True)
class Decision:
    task: Task
    cases: Dict[str, List[Task]] = field(default_factory=dict)
    default: List[Task] = field(default_factory=list)


@dataclass(frozen=True)
class ForkJoin:
    task: Task
    branches: List[List[Task]] = field(default_factory=list)


@dataclass(frozen=True)
class Loop:
    task: Task
    body: List[Task] = field(default_factory=list)


TaskVariant = Union[Leaf, Decision, ForkJoin, Loop]


def parse_embedded_json(value: Any) -> Any:
    """Parse a JSON string into structured form, returning the value unchanged on failure."""
    if not isinstance(value, str):
        return value
    try:
        return json.loads(value)
    except (json.JSONDecodeError, ValueError):
        logger.debug(f"Keeping unparseable embedded value: {value[:80]!r}")
        return value


def parse_structural_fields(task: Task) -> Task:
    """Return a shallow copy of ``task`` with string-encoded child lists parsed."""
    parsed = dict(task)
    for key in STRUCTURAL_FIELDS:
        if key in parsed:
            parsed[key] = parse_embedded_json(parsed[key])
    return parsed


def variant_of(task: Task) -> TaskVariant:
    """
    Classify a task by the shape of its structural fields.

    Precedence is Decision, then ForkJoin, then Loop. Entries that are not
    lists (case values, fork branches) are skipped rather than rejected.
    """
    decision_cases = parse_embedded_json(task.get("decisionCases"))
    if isinstance(decision_cases, dict):
        default_case = parse_embedded_json(task.get("defaultCase"))
        return Decision(
            task=task,
            cases={label: tasks for label, tasks in decision_cases.items() if isinstance(tasks, list)},
            default=default_case if isinstance(default_case, list) else [],
        )

    fork_tasks = parse_embedded_json(task.get("forkTasks"))
    if isinstance(fork_tasks, list):
        return ForkJoin(task=task, branches=[b for b in fork_tasks if isinstance(b, list)])

    loop_over = parse_embedded_json(task.get("loopOver"))
    if isinstance(loop_over, list):
        return Loop(task=task, body=loop_over)

    return Leaf(task=task)


def child_tasks(variant: TaskVariant) -> Iterator[Task]:
    """Yield a variant's direct children in document order."""
    if isinstance(variant, Decision):
        for case_tasks in variant.cases.values():
            yield from case_tasks
        yield from variant.default
    elif isinstance(variant, ForkJoin):
        for branch in variant.branches:
            yield from branch
    elif isinstance(variant, Loop):
        yield from variant.body


def iter_tasks(tasks: List[Task]) -> Iterator[Task]:
    """
    Pre-order walk over a task list and all nested children.

    Children follow their parent immediately; a sibling comes after every
    descendant of the sibling before it. Entries that are not objects are
    skipped.
    """
    stack = list(reversed(tasks))
    while stack:
        task = stack.pop()
        if not isinstance(task, dict):
            continue
        yield task
        stack.extend(reversed(list(child_tasks(variant_of(task)))))


def count_tasks(tasks: List[Task]) -> int:
    return sum(1 for _ in iter_tasks(tasks))


def task_color(task_type: Optional[str]) -> str:
    return TASK_TYPE_COLORS.get((task_type or "SIMPLE").upper(), DEFAULT_TASK_COLOR)


def reference_of(task: Task, index: int) -> str:
    """Node ID for a top-level task, falling back to a positional ID."""
    return task.get("taskReferenceName") or f"task-{index}"


def validate_task_tree(tasks: Any, include_nested: bool = False) -> List[Task]:
    """
    Validate a task list before it is projected onto the canvas.

    Args:
        tasks: Candidate task list
        include_nested: Also require unique reference names inside branches

    Returns:
        The same task list

    Raises:
        TaskDefinitionError: If the input is not a list of task objects, or a task
            has malformed common fields
        GraphValidationError: If reference names are missing or duplicated
    """
    if not isinstance(tasks, list):
        raise TaskDefinitionError(f"Workflow tasks must be a list, got {type(tasks).__name__}")

    for index, task in enumerate(tasks):
        if not isinstance(task, dict):
            raise TaskDefinitionError(f"Task at index {index} is not an object")

    candidates = list(iter_tasks(tasks)) if include_nested else tasks

    missing = [str(i) for i, task in enumerate(candidates) if not task.get("taskReferenceName")]
    if missing:
        raise GraphValidationError(
            violated_rules=["missing_reference"],
            offending_ids=missing,
            details=f"Tasks without taskReferenceName at positions: {', '.join(missing)}"
        )

    seen = set()
    duplicates = []
    for task in candidates:
        ref = task["taskReferenceName"]
        if ref in seen and ref not in duplicates:
            duplicates.append(ref)
        seen.add(ref)

    if duplicates:
        raise GraphValidationError(
            violated_rules=["duplicate_reference"],
            offending_ids=duplicates,
            details=f"Duplicate taskReferenceName values: {', '.join(duplicates)}"
        )

    for task in candidates:
        try:
            WorkflowTask.model_validate(task)
        except ValidationError as e:
            raise TaskDefinitionError(f"Invalid task '{task['taskReferenceName']}': {e}") from e

    return tasks
