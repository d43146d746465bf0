"""Test canvas edit operations and graph validation."""

import pytest

from workflow_designer.engine import arrange, project, reduce
from workflow_designer.engine.canvas import (
    add_task_node,
    connect,
    delete_task_node,
    update_task_config,
    validate_graph,
)
from workflow_designer.exceptions import GraphValidationError
from workflow_designer.models import GraphEdge, Position


class TestAddTaskNode:

    def test_appends_with_next_sequence(self, linear_tasks):
        nodes = project(linear_tasks).nodes
        updated = add_task_node(nodes, {"name": "audit", "taskReferenceName": "audit_ref", "type": "INLINE"})

        assert len(nodes) == 3
        assert updated[-1].id == "audit_ref"
        assert updated[-1].sequence_no == 4
        assert updated[-1].data.color == "#8b5cf6"

    def test_generated_id_without_reference(self):
        nodes = add_task_node([], {"name": "draft"}, task_type="HTTP", position=Position(x=10, y=20))

        assert nodes[0].id == "http_1"
        assert nodes[0].position == Position(x=10, y=20)

    def test_sequence_no_not_stored_in_config(self):
        nodes = add_task_node([], {"taskReferenceName": "a", "sequenceNo": 9})
        assert nodes[0].config == {"taskReferenceName": "a"}

    def test_duplicate_reference_rejected(self, linear_tasks):
        nodes = project(linear_tasks).nodes
        with pytest.raises(GraphValidationError) as exc_info:
            add_task_node(nodes, {"taskReferenceName": "wait_ref"})

        assert exc_info.value.violated_rules == ["duplicate_reference"]
        assert exc_info.value.offending_ids == ["wait_ref"]


class TestUpdateTaskConfig:

    def test_id_is_stable(self, linear_tasks):
        nodes = project(linear_tasks).nodes
        config = {**linear_tasks[1], "description": "Wait for the PSP"}
        updated = update_task_config(nodes, "wait_ref", config)

        assert updated[1].id == "wait_ref"
        assert updated[1].config["taskReferenceName"] == "wait_ref"
        assert updated[1].data.task_description == "Wait for the PSP"
        assert nodes[1].config == linear_tasks[1]

    def test_rename_rejected(self, linear_tasks):
        nodes = project(linear_tasks).nodes
        with pytest.raises(GraphValidationError) as exc_info:
            update_task_config(nodes, "wait_ref", {**linear_tasks[1], "taskReferenceName": "fetch_order_ref"})

        assert exc_info.value.violated_rules == ["reference_changed"]
        assert exc_info.value.offending_ids == ["wait_ref"]

    def test_dropping_reference_rejected(self, linear_tasks):
        nodes = project(linear_tasks).nodes
        config = {key: value for key, value in linear_tasks[1].items() if key != "taskReferenceName"}
        with pytest.raises(GraphValidationError, match="reference_changed"):
            update_task_config(nodes, "wait_ref", config)

    def test_generated_node_may_take_its_id(self):
        nodes = add_task_node([], {"name": "draft"}, task_type="HTTP")
        updated = update_task_config(nodes, "http_1", {"name": "draft", "taskReferenceName": "http_1"})

        assert updated[0].config["taskReferenceName"] == "http_1"

    def test_unknown_node(self, linear_tasks):
        with pytest.raises(KeyError):
            update_task_config(project(linear_tasks).nodes, "nope", {})

    def test_edit_survives_reduce(self, linear_tasks):
        nodes = project(linear_tasks).nodes
        config = {**linear_tasks[2], "retryCount": 3}
        tasks = reduce(update_task_config(nodes, "notify_ref", config), linear_tasks)

        assert tasks[2]["retryCount"] == 3


class TestDeleteTaskNode:

    def test_resequences(self, linear_tasks):
        graph = arrange(project(linear_tasks).nodes)
        nodes, edges = delete_task_node(graph.nodes, graph.edges, "wait_ref")

        assert [(n.id, n.sequence_no) for n in nodes] == [("fetch_order_ref", 1), ("notify_ref", 2)]
        assert edges == []

    def test_unknown_node(self, linear_tasks):
        with pytest.raises(KeyError):
            delete_task_node(project(linear_tasks).nodes, [], "nope")


class TestConnect:

    def test_consecutive_allowed(self, linear_tasks):
        nodes = project(linear_tasks).nodes
        edges = connect(nodes, [], "fetch_order_ref", "wait_ref")

        assert [(e.id, e.source_handle, e.target_handle) for e in edges] == [
            ("fetch_order_ref-wait_ref", "right", "left")
        ]

    def test_existing_edge_not_duplicated(self, linear_tasks):
        nodes = project(linear_tasks).nodes
        edges = connect(nodes, [], "fetch_order_ref", "wait_ref")

        assert connect(nodes, edges, "fetch_order_ref", "wait_ref") == edges

    def test_skip_ahead_rejected(self, linear_tasks):
        nodes = project(linear_tasks).nodes
        with pytest.raises(GraphValidationError, match="non_sequential_edge"):
            connect(nodes, [], "fetch_order_ref", "notify_ref")

    def test_backwards_rejected(self, linear_tasks):
        nodes = project(linear_tasks).nodes
        with pytest.raises(GraphValidationError):
            connect(nodes, [], "wait_ref", "fetch_order_ref")

    def test_unknown_node(self, linear_tasks):
        nodes = project(linear_tasks).nodes
        with pytest.raises(GraphValidationError) as exc_info:
            connect(nodes, [], "fetch_order_ref", "ghost")

        assert exc_info.value.violated_rules == ["unknown_node"]
        assert exc_info.value.offending_ids == ["ghost"]


class TestValidateGraph:

    def test_projected_graph_is_valid(self, nested_tasks):
        graph = project(nested_tasks)
        validate_graph(graph.nodes, graph.edges)

    def test_duplicate_ids(self):
        graph = project([{"taskReferenceName": "a"}, {"taskReferenceName": "a"}])
        with pytest.raises(GraphValidationError) as exc_info:
            validate_graph(graph.nodes)

        assert "duplicate_reference" in exc_info.value.violated_rules
        assert exc_info.value.offending_ids == ["a"]

    def test_sequence_gap(self, linear_tasks):
        nodes = project(linear_tasks).nodes
        nodes[2] = nodes[2].with_sequence_no(5)
        with pytest.raises(GraphValidationError) as exc_info:
            validate_graph(nodes)

        assert exc_info.value.violated_rules == ["sequence_gap"]
        assert exc_info.value.offending_ids == ["notify_ref"]

    def test_skip_ahead_and_dangling_edges(self, linear_tasks):
        nodes = project(linear_tasks).nodes
        edges = [
            GraphEdge(id="skip", source="fetch_order_ref", target="notify_ref"),
            GraphEdge(id="dangling", source="wait_ref", target="ghost"),
        ]
        with pytest.raises(GraphValidationError) as exc_info:
            validate_graph(nodes, edges)

        assert exc_info.value.violated_rules == ["non_sequential_edge", "dangling_edge"]
        assert exc_info.value.offending_ids == ["skip", "dangling"]

    def test_config_reference_mismatch(self, linear_tasks):
        nodes = project(linear_tasks).nodes
        renamed = nodes[0].data.model_copy(update={"config": {**linear_tasks[0], "taskReferenceName": "wait_ref"}})
        nodes[0] = nodes[0].model_copy(update={"data": renamed})

        with pytest.raises(GraphValidationError) as exc_info:
            validate_graph(nodes)

        assert exc_info.value.violated_rules == ["duplicate_reference", "reference_mismatch"]
        assert exc_info.value.offending_ids == ["wait_ref", "fetch_order_ref"]
