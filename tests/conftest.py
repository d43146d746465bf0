"""Pytest configuration and fixtures for workflow designer tests."""

import pytest
from typing import Dict, Any, List

from workflow_designer.runtime import MockLLMRuntime
from workflow_designer.engine import project


@pytest.fixture
def linear_tasks() -> List[Dict[str, Any]]:
    """Three plain top-level tasks."""
    return [
        {"name": "fetch_order", "taskReferenceName": "fetch_order_ref", "type": "HTTP",
         "inputParameters": {"http_request": {"uri": "http://orders/${workflow.input.orderId}", "method": "GET"}}},
        {"name": "wait_for_payment", "taskReferenceName": "wait_ref", "type": "WAIT"},
        {"name": "notify", "taskReferenceName": "notify_ref", "type": "SIMPLE", "optional": True},
    ]


@pytest.fixture
def nested_tasks() -> List[Dict[str, Any]]:
    """Decision with two cases and a default, followed by a fork and a loop."""
    return [
        {
            "name": "route_order",
            "taskReferenceName": "decision",
            "type": "DECISION",
            "caseValueParam": "orderType",
            "decisionCases": {
                "BOPIS": [{"name": "t1", "taskReferenceName": "t1", "type": "SIMPLE"}],
                "SHIP": [{"name": "t2", "taskReferenceName": "t2", "type": "HTTP"}],
            },
            "defaultCase": [{"name": "t3", "taskReferenceName": "t3", "type": "SIMPLE"}],
        },
        {
            "name": "parallel_checks",
            "taskReferenceName": "fork",
            "type": "FORK_JOIN",
            "forkTasks": [
                [{"name": "f1", "taskReferenceName": "f1", "type": "LAMBDA"}],
                [{"name": "f2", "taskReferenceName": "f2", "type": "SIMPLE"}],
            ],
        },
        {
            "name": "poll",
            "taskReferenceName": "loop",
            "type": "DO_WHILE",
            "loopCondition": "$.loop['iteration'] < 3",
            "loopOver": [{"name": "l1", "taskReferenceName": "l1", "type": "WAIT"}],
        },
    ]


@pytest.fixture
def twelve_nodes():
    """Projected nodes for twelve simple tasks (more than two snake rows)."""
    tasks = [{"name": f"task{i}", "taskReferenceName": f"ref{i}", "type": "SIMPLE"} for i in range(12)]
    return project(tasks).nodes


@pytest.fixture
def sample_definition(nested_tasks) -> Dict[str, Any]:
    return {
        "name": "order_fulfillment",
        "description": "Routes and fulfils orders",
        "version": 3,
        "ownerEmail": "team@example.com",
        "inputParameters": ["orderId", "orderType"],
        "tasks": nested_tasks,
    }


@pytest.fixture
def mock_runtime():
    """Create mock LLM runtime with predefined responses."""
    responses = {
        "fetch_order": """
        ```json
        {
          "scenarios": [
            {"name": "Order found", "description": "Order service returns the order", "testType": "happy_path"},
            {"name": "Order service down", "description": "Service returns 503", "testType": "error_case"},
            {"name": "Huge order", "description": "Order with 500 line items", "testType": "boundary"}
          ]
        }
        ```
        """,
        "wait_for_payment": """
        Here's the JSON:
        [
          {"name": "Payment arrives", "description": "Signal before timeout", "testType": "happy_path"},
          {"name": "Payment never arrives", "description": "Timeout expires", "testType": "edge-case"}
        ]
        """,
    }

    return MockLLMRuntime(responses)
