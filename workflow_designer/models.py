"""
Data models for the workflow designer.

These Pydantic models describe the canvas-facing shapes (nodes, edges),
generated test scenarios, and the workflow definition envelope. Field names
are snake_case in Python and camelCase on the wire; serialize with
``model_dump(by_alias=True, exclude_none=True)``.
"""

from __future__ import annotations
from typing import List, Dict, Optional, Literal, Any, Union
from pydantic import BaseModel, ConfigDict, Field, field_validator


Coordinate = Union[int, float]

TestType = Literal["happy_path", "edge_case", "error_case", "boundary"]
ScenarioStatus = Literal["pending", "generating", "ready", "testing", "passed", "failed"]

# Sentinel target for scenarios that cover the whole workflow
ALL_NODES = "all"

EDGE_COLOR = "#00bcd4"


class _WireModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    def to_wire(self) -> Dict[str, Any]:
        """Serialize with camelCase keys, omitting unset optionals."""
        return self.model_dump(by_alias=True, exclude_none=True)


# ==================== Graph Models ====================

class Position(_WireModel):
    """Canvas coordinates of a node's top-left corner."""
    x: Coordinate = 0
    y: Coordinate = 0


class NodeData(_WireModel):
    """Display metadata plus the task payload carried by a canvas node."""
    model_config = ConfigDict(populate_by_name=True, extra="allow")

    label: str = Field(..., description="Text shown on the node")
    task_type: Optional[str] = Field(None, alias="taskType")
    task_name: Optional[str] = Field(None, alias="taskName")
    task_description: Optional[str] = Field(None, alias="taskDescription")
    sequence_no: int = Field(..., alias="sequenceNo", description="UI-only 1-based ordering key")
    color: Optional[str] = None
    config: Optional[Dict[str, Any]] = Field(None, description="Full task definition")

    @field_validator('sequence_no')
    @classmethod
    def validate_sequence_no(cls, v):
        if v < 1:
            raise ValueError("sequenceNo must be a positive integer")
        return v


class GraphNode(_WireModel):
    """One top-level task on the canvas. ``id`` equals the task's reference name."""
    id: str = Field(..., description="Node ID (taskReferenceName)")
    type: str = Field("custom", description="Canvas renderer type")
    position: Position = Field(default_factory=Position)
    draggable: bool = False
    data: NodeData

    @property
    def sequence_no(self) -> int:
        return self.data.sequence_no

    @property
    def config(self) -> Optional[Dict[str, Any]]:
        return self.data.config

    def with_position(self, x: Coordinate, y: Coordinate) -> GraphNode:
        return self.model_copy(update={"position": Position(x=x, y=y)})

    def with_sequence_no(self, sequence_no: int) -> GraphNode:
        return self.model_copy(update={"data": self.data.model_copy(update={"sequence_no": sequence_no})})


class EdgeStyle(_WireModel):
    stroke: str = EDGE_COLOR
    stroke_width: Coordinate = Field(2, alias="strokeWidth")


class GraphEdge(_WireModel):
    """Connection between two consecutive nodes."""
    id: str
    source: str
    target: str
    source_handle: Optional[Literal["left", "right", "top", "bottom"]] = Field(None, alias="sourceHandle")
    target_handle: Optional[Literal["left", "right", "top", "bottom"]] = Field(None, alias="targetHandle")
    animated: bool = True
    type: str = "straight"
    style: EdgeStyle = Field(default_factory=EdgeStyle)


class WorkflowGraph(_WireModel):
    """Nodes and edges as handed to the canvas."""
    nodes: List[GraphNode] = Field(default_factory=list)
    edges: List[GraphEdge] = Field(default_factory=list)


# ==================== Scenario Models ====================

class Scenario(_WireModel):
    """Generated test scenario targeting one task or the whole workflow."""
    id: str = Field(..., description="Stable synthetic ID")
    name: str = Field(..., description="Human-readable scenario title")
    description: str = Field("", description="What the scenario exercises")
    target_node: str = Field(..., alias="targetNode", description="taskReferenceName or 'all'")
    test_type: TestType = Field(..., alias="testType")
    input_json: Optional[Dict[str, Any]] = Field(None, alias="inputJson")
    status: ScenarioStatus = "pending"
    execution_result: Optional[Dict[str, Any]] = Field(None, alias="executionResult")
    error: Optional[str] = None

    @property
    def is_end_to_end(self) -> bool:
        return self.target_node == ALL_NODES

    def with_status(self, status: ScenarioStatus, error: Optional[str] = None) -> Scenario:
        return self.model_copy(update={"status": status, "error": error})

    def with_input(self, input_json: Dict[str, Any]) -> Scenario:
        return self.model_copy(update={"input_json": input_json, "status": "ready", "error": None})

    def with_result(self, execution_result: Dict[str, Any], passed: bool) -> Scenario:
        return self.model_copy(update={
            "execution_result": execution_result,
            "status": "passed" if passed else "failed",
        })


class ScenarioDraft(BaseModel):
    """Scenario as proposed by a generator, before IDs and targets are assigned."""
    name: str
    description: str = ""
    testType: TestType


class ScenarioGenerationResponse(BaseModel):
    """Expected JSON schema for LLM scenario generation."""
    scenarios: List[ScenarioDraft] = Field(..., description="Proposed scenarios for one task")

    @field_validator('scenarios')
    @classmethod
    def validate_scenario_count(cls, v):
        if len(v) < 2:
            raise ValueError("At least two scenarios are required")
        return v[:4]


# ==================== Definition Models ====================

class WorkflowDefinition(_WireModel):
    """Envelope of a declarative workflow definition. Unknown fields are preserved."""
    model_config = ConfigDict(populate_by_name=True, extra="allow")

    name: str = Field(..., description="Workflow name")
    description: Optional[str] = None
    version: Optional[int] = None
    tasks: List[Dict[str, Any]] = Field(default_factory=list)
    input_parameters: List[str] = Field(default_factory=list, alias="inputParameters")

    @field_validator('name')
    @classmethod
    def validate_name(cls, v):
        if not v.strip():
            raise ValueError("Workflow name must not be empty")
        return v

