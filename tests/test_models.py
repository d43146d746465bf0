"""Test Pydantic models for validation and wire serialization."""

import pytest
from pydantic import ValidationError

from workflow_designer.models import (
    GraphEdge,
    GraphNode,
    NodeData,
    ScenarioGenerationResponse,
    WorkflowDefinition,
    WorkflowGraph,
)
from workflow_designer.tasks import WorkflowTask


class TestGraphNode:
    """Test GraphNode model validation."""

    def test_accepts_camel_case(self):
        node = GraphNode.model_validate({
            "id": "a",
            "position": {"x": 10.5, "y": 0},
            "data": {"label": "a", "taskType": "HTTP", "sequenceNo": 1, "config": {"taskReferenceName": "a"}},
        })

        assert node.data.task_type == "HTTP"
        assert node.position.x == 10.5
        assert node.draggable is False

    def test_sequence_no_must_be_positive(self):
        with pytest.raises(ValidationError, match="sequenceNo must be a positive integer"):
            NodeData(label="a", sequence_no=0)

    def test_copies_do_not_touch_original(self):
        node = GraphNode(id="a", data=NodeData(label="a", sequence_no=1))
        moved = node.with_position(5, 6).with_sequence_no(3)

        assert (node.position.x, node.sequence_no) == (0, 1)
        assert (moved.position.x, moved.position.y, moved.sequence_no) == (5, 6, 3)

    def test_extra_data_round_trips(self):
        node = GraphNode.model_validate({"id": "a", "data": {"label": "a", "sequenceNo": 1, "onEdit": "handler"}})
        assert node.to_wire()["data"]["onEdit"] == "handler"


class TestGraphEdge:

    def test_invalid_handle(self):
        with pytest.raises(ValidationError):
            GraphEdge(id="e", source="a", target="b", source_handle="middle")

    def test_graph_from_wire(self):
        graph = WorkflowGraph.model_validate({
            "nodes": [],
            "edges": [{"id": "e", "source": "a", "target": "b", "sourceHandle": "bottom", "targetHandle": "top"}],
        })
        assert graph.edges[0].source_handle == "bottom"


class TestWorkflowDefinition:

    def test_unknown_fields_preserved(self):
        definition = WorkflowDefinition.model_validate(
            {"name": "wf", "tasks": [], "schemaVersion": 2, "inputParameters": ["a"]}
        )
        wire = definition.to_wire()

        assert wire["schemaVersion"] == 2
        assert wire["inputParameters"] == ["a"]

    def test_blank_name_fails(self):
        with pytest.raises(ValidationError, match="Workflow name must not be empty"):
            WorkflowDefinition(name="  ")


class TestWorkflowTask:

    def test_extra_fields_allowed(self):
        task = WorkflowTask.model_validate({"taskReferenceName": "a", "type": "HTTP", "sink": "kafka:topic"})
        assert task.model_dump()["sink"] == "kafka:topic"

    def test_blank_reference_fails(self):
        with pytest.raises(ValidationError, match="taskReferenceName must be a non-empty string"):
            WorkflowTask(taskReferenceName=" ")


class TestScenarioGenerationResponse:

    def test_empty_fails(self):
        with pytest.raises(ValidationError, match="At least two scenarios are required"):
            ScenarioGenerationResponse(scenarios=[])

    def test_single_scenario_fails(self):
        with pytest.raises(ValidationError, match="At least two scenarios are required"):
            ScenarioGenerationResponse(scenarios=[{"name": "a", "testType": "happy_path"}])

    def test_invalid_test_type(self):
        with pytest.raises(ValidationError):
            ScenarioGenerationResponse(scenarios=[{"name": "a", "testType": "smoke"}])
