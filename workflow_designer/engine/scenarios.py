"""
Per-task scenario generation.

Two visitors for ScenarioTraversal:

- ScenarioPolicy        - deterministic scenarios from a fixed task-type taxonomy
- LLMScenarioGenerator  - asks an LLM runtime for scenarios, falling back to the policy
"""

from __future__ import annotations
from typing import Any, Dict, List, Optional, Tuple
import asyncio
import json
import logging

from ..exceptions import JSONValidationError, LLMRuntimeError
from ..models import Scenario, ScenarioDraft, ScenarioGenerationResponse
from ..runtime import LLMRuntime
from ..validation import generate_with_validation

logger = logging.getLogger(__name__)

# (name suffix, description, testType); "{name}" is the task's display name
_Template = Tuple[str, str, str]

SCENARIO_TEMPLATES: Dict[str, List[_Template]] = {
    "HTTP": [
        ("Successful API Response",
         "Tests successful HTTP request to {name}. Validates that the API returns 200 OK with expected response structure.",
         "happy_path"),
        ("API Timeout",
         "Tests behavior when the HTTP request times out. Should handle timeout gracefully and trigger retry or error handling.",
         "error_case"),
        ("Invalid Response Format",
         "Tests handling of malformed JSON response from API. Should validate response structure and fail gracefully.",
         "error_case"),
    ],
    "DECISION": [
        ("True Branch Execution",
         "Tests the decision task when condition evaluates to true. Should route to the success/true branch.",
         "happy_path"),
        ("False Branch Execution",
         "Tests the decision task when condition evaluates to false. Should route to the alternate/false branch.",
         "edge_case"),
        ("Null/Missing Decision Parameter",
         "Tests behavior when the decision parameter is null or missing. Should handle gracefully with default behavior.",
         "error_case"),
    ],
    "FORK_JOIN": [
        ("All Parallel Tasks Success",
         "Tests fork/join when all parallel branches complete successfully. Should converge and continue workflow.",
         "happy_path"),
        ("Partial Branch Failure",
         "Tests behavior when one or more parallel branches fail. Should handle partial failures according to join strategy.",
         "error_case"),
        ("Parallel Task Timeout",
         "Tests when one parallel branch times out. Should handle timeout and proceed or fail based on configuration.",
         "edge_case"),
    ],
    "LAMBDA": [
        ("Valid Data Transformation",
         "Tests data transformation with valid input. Should successfully map/transform data to expected output format.",
         "happy_path"),
        ("Empty Input Data",
         "Tests transformation with empty or null input. Should handle gracefully or return empty result.",
         "edge_case"),
        ("Invalid Data Structure",
         "Tests with malformed input data structure. Should validate input and fail with clear error message.",
         "error_case"),
    ],
    "WAIT": [
        ("Signal Received Before Timeout",
         "Tests when signal is received within timeout period. Should proceed immediately upon signal.",
         "happy_path"),
        ("Timeout Expires",
         "Tests behavior when timeout expires without receiving signal. Should proceed or fail based on configuration.",
         "edge_case"),
    ],
    "DO_WHILE": [
        ("Loop Completes Successfully",
         "Tests loop execution with valid condition. Should iterate correct number of times and exit.",
         "happy_path"),
        ("Loop Condition Never Met",
         "Tests when loop condition is never satisfied. Should handle infinite loop prevention.",
         "error_case"),
        ("Maximum Iterations Reached",
         "Tests boundary condition when max iterations limit is reached. Should exit loop gracefully.",
         "boundary"),
    ],
}

DEFAULT_TEMPLATES: List[_Template] = [
    ("Successful Execution",
     "Tests normal successful execution of {name}. Should complete without errors.",
     "happy_path"),
    ("Missing Required Input",
     "Tests behavior when required input parameters are missing. Should fail with validation error.",
     "error_case"),
]

TYPE_ALIASES = {
    "FORK": "FORK_JOIN",
    "MAPPER": "LAMBDA",
    "WAIT_FOR_SIGNAL": "WAIT",
}


def scenario_id(visit_index: int, ordinal: int) -> str:
    return f"llm-task-{visit_index}-scenario-{ordinal}"


def target_of(task: Dict[str, Any], visit_index: int) -> str:
    """Scenario target: reference name, then name, then a positional fallback."""
    return task.get("taskReferenceName") or task.get("name") or f"task_{visit_index}"


def display_name(task: Dict[str, Any], visit_index: int) -> str:
    return task.get("name") or task.get("taskReferenceName") or f"task_{visit_index}"


def category_of(task: Dict[str, Any]) -> str:
    """Upper-cased task type with aliases folded onto their taxonomy key."""
    task_type = str(task.get("type") or "GENERIC").upper()
    return TYPE_ALIASES.get(task_type, task_type)


def scenarios_from_drafts(
    drafts: List[ScenarioDraft],
    task: Dict[str, Any],
    visit_index: int
) -> List[Scenario]:
    """Attach IDs, target and pending status to generator drafts."""
    target = target_of(task, visit_index)
    return [
        Scenario(
            id=scenario_id(visit_index, ordinal),
            name=draft.name,
            description=draft.description,
            target_node=target,
            test_type=draft.testType,
        )
        for ordinal, draft in enumerate(drafts)
    ]


class ScenarioPolicy:
    """
    Deterministic per-task scenarios keyed by task type.

    Usable directly as a traversal visitor: ``await policy(task, index)``.
    """

    def __init__(self, templates: Optional[Dict[str, List[_Template]]] = None):
        self.templates = templates or SCENARIO_TEMPLATES

    def scenarios_for(self, task: Dict[str, Any], visit_index: int) -> List[Scenario]:
        templates = self.templates.get(category_of(task), DEFAULT_TEMPLATES)
        name = display_name(task, visit_index)

        drafts = [
            ScenarioDraft(
                name=f"{name} - {suffix}",
                description=description.format(name=name),
                testType=test_type,
            )
            for suffix, description, test_type in templates
        ]
        return scenarios_from_drafts(drafts, task, visit_index)

    async def __call__(self, task: Dict[str, Any], visit_index: int) -> List[Scenario]:
        return self.scenarios_for(task, visit_index)


# ==================== LLM-backed generation ====================

def extract_task_summary(task: Dict[str, Any]) -> str:
    """Concise JSON summary of a task for prompt context."""
    parameters = task.get("inputParameters") or {}
    summary = {
        "name": task.get("name"),
        "taskReferenceName": task.get("taskReferenceName"),
        "type": task.get("type"),
        "description": task.get("description"),
        "inputParameters": f"{len(parameters)} parameters" if parameters else "none",
        "optional": task.get("optional"),
    }
    return json.dumps(summary, indent=2)


def build_workflow_context(definition: Dict[str, Any], input_json: Optional[Dict[str, Any]] = None) -> str:
    """Short workflow description shared by every per-task prompt."""
    tasks = definition.get("tasks") or []
    sample = json.dumps(input_json or {}, indent=2)[:500]
    return "\n".join([
        f"Workflow Name: {definition.get('name')}",
        f"Description: {definition.get('description') or 'N/A'}",
        f"Total Tasks: {len(tasks)}",
        f"Input Parameters: {json.dumps(definition.get('inputParameters') or [])}",
        f"Sample Input: {sample}...",
    ])


class LLMScenarioGenerator:
    """
    Traversal visitor that asks an LLM for 2-4 scenarios per task.

    Runtimes are synchronous, so each call runs in a worker thread and the
    traversal stays awaitable. When the runtime fails or keeps returning
    invalid JSON the ``fallback`` visitor is used instead; with no fallback
    the error propagates and the traversal records a failed scenario.
    """

    def __init__(
        self,
        runtime: LLMRuntime,
        workflow_context: str = "",
        additional_context: Optional[str] = None,
        fallback: Optional[ScenarioPolicy] = None,
        max_retries: int = 2,
        temperature: float = 0.7,
        max_tokens: int = 1000
    ):
        self.runtime = runtime
        self.workflow_context = workflow_context
        self.additional_context = additional_context
        self.fallback = fallback
        self.max_retries = max_retries
        self.temperature = temperature
        self.max_tokens = max_tokens

    async def __call__(self, task: Dict[str, Any], visit_index: int) -> List[Scenario]:
        prompt = self._build_prompt(task)
        logger.info(f"LLM interaction #{visit_index + 1}: {display_name(task, visit_index)} ({task.get('type')})")

        try:
            response = await asyncio.to_thread(
                generate_with_validation,
                self.runtime,
                prompt,
                ScenarioGenerationResponse,
                max_retries=self.max_retries,
                temperature=self.temperature,
                max_tokens=self.max_tokens,
            )
        except (JSONValidationError, LLMRuntimeError) as e:
            if self.fallback is None:
                raise
            logger.warning(f"Falling back to policy scenarios for task {visit_index}: {e}")
            return self.fallback.scenarios_for(task, visit_index)

        return scenarios_from_drafts(response.scenarios, task, visit_index)

    def _build_prompt(self, task: Dict[str, Any]) -> str:
        context_section = ""
        if self.additional_context:
            context_section = f"\n\nAdditional Business Context:\n{self.additional_context}"

        return f"""You are a QA engineer analyzing a workflow task. Generate test scenarios for this specific task.

WORKFLOW CONTEXT:
{self.workflow_context}

CURRENT TASK:
{extract_task_summary(task)}{context_section}

Generate 2-4 test scenarios for this task covering:
1. Happy path - normal successful execution
2. Edge cases - boundary conditions, empty values, special characters
3. Error cases - invalid inputs, missing required fields, constraint violations
4. Task-specific scenarios based on the task type ({task.get('type')})

Return ONLY valid JSON matching this exact structure (no markdown, no explanations):
{{
  "scenarios": [
    {{
      "name": "Scenario name",
      "description": "Detailed description of what this scenario tests",
      "testType": "happy_path"
    }}
  ]
}}

testType must be one of: happy_path, edge_case, error_case, boundary."""
