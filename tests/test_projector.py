"""Test GraphProjector: task tree -> canvas graph."""

import json

from workflow_designer.engine.projector import GraphProjector, LINEAR_SPACING, project


class TestGraphProjector:
    """Test node and edge construction."""

    def test_nodes_are_linear_and_sequenced(self, linear_tasks):
        graph = GraphProjector.process(linear_tasks)

        assert [node.id for node in graph.nodes] == ["fetch_order_ref", "wait_ref", "notify_ref"]
        assert [node.sequence_no for node in graph.nodes] == [1, 2, 3]
        assert [(node.position.x, node.position.y) for node in graph.nodes] == [
            (0, 0), (LINEAR_SPACING, 0), (2 * LINEAR_SPACING, 0)
        ]

    def test_node_data(self, linear_tasks):
        node = project(linear_tasks).nodes[0]

        assert node.type == "custom"
        assert node.data.label == "fetch_order_ref"
        assert node.data.task_type == "HTTP"
        assert node.data.color == "#0066cc"
        assert node.config == linear_tasks[0]
        assert "sequenceNo" not in node.config

    def test_consecutive_edges(self, linear_tasks):
        edges = project(linear_tasks).edges

        assert [(e.id, e.source, e.target) for e in edges] == [
            ("edge-0", "fetch_order_ref", "wait_ref"),
            ("edge-1", "wait_ref", "notify_ref"),
        ]
        assert all(e.type == "straight" and e.animated for e in edges)
        assert edges[0].style.stroke == "#00bcd4"
        assert edges[0].style.stroke_width == 2

    def test_nested_children_stay_in_config(self, nested_tasks):
        graph = project(nested_tasks)

        assert len(graph.nodes) == 3
        assert graph.nodes[0].config["decisionCases"]["SHIP"][0]["taskReferenceName"] == "t2"

    def test_embedded_json_is_parsed(self):
        tasks = [{
            "taskReferenceName": "fork",
            "type": "FORK_JOIN",
            "forkTasks": json.dumps([[{"taskReferenceName": "a"}]]),
        }]
        config = project(tasks).nodes[0].config

        assert config["forkTasks"] == [[{"taskReferenceName": "a"}]]

    def test_malformed_embedded_json_is_kept(self):
        tasks = [{"taskReferenceName": "loop", "type": "DO_WHILE", "loopOver": "[{oops"}]
        config = project(tasks).nodes[0].config

        assert config["loopOver"] == "[{oops"

    def test_input_not_mutated(self, nested_tasks):
        tasks = [{"taskReferenceName": "loop", "loopOver": "[]"}]
        project(tasks)

        assert tasks == [{"taskReferenceName": "loop", "loopOver": "[]"}]

    def test_missing_reference_falls_back(self):
        graph = project([{"type": "SIMPLE"}, {"name": "second"}])

        assert graph.nodes[0].id == "task-0"
        assert graph.nodes[0].data.label == "Task 1"
        assert graph.nodes[1].data.label == "second"

    def test_empty(self):
        graph = project([])
        assert graph.nodes == [] and graph.edges == []

    def test_wire_format(self, linear_tasks):
        wire = project(linear_tasks).to_wire()
        node = wire["nodes"][0]
        edge = wire["edges"][0]

        assert node["data"]["sequenceNo"] == 1
        assert node["data"]["taskType"] == "HTTP"
        assert edge["style"] == {"stroke": "#00bcd4", "strokeWidth": 2}
        assert "sourceHandle" not in edge
