# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Unit tests for workflow validation
"""

import pytest

from drivehub.workflow.exceptions import WorkflowValidationError
from drivehub.workflow.models import Workflow, WorkflowEdge, WorkflowNode
from drivehub.workflow.validation import validate_workflow


def _node(node_id: str) -> WorkflowNode:
    return WorkflowNode(id=node_id, type="variable", properties={"name": node_id, "value": "1"})


def test_valid_workflow():
    """A linear workflow passes"""
    workflow = Workflow(
        nodes={"a": _node("a"), "b": _node("b")},
        edges=[WorkflowEdge(from_="a", to="b")],
        start_node="a",
    )
    validate_workflow(workflow)


def test_cycles_are_allowed():
    """Loops are legal; the executor bounds them"""
    workflow = Workflow(
        nodes={"a": _node("a"), "b": _node("b")},
        edges=[WorkflowEdge(from_="a", to="b"), WorkflowEdge(from_="b", to="a")],
        start_node="a",
    )
    validate_workflow(workflow)


def test_empty_workflow():
    """Empty workflow should raise WorkflowValidationError"""
    workflow = Workflow(nodes={}, edges=[], start_node="a")
    with pytest.raises(WorkflowValidationError, match="at least one node"):
        validate_workflow(workflow)


def test_missing_start_node():
    workflow = Workflow(nodes={"a": _node("a")}, start_node="zzz")
    with pytest.raises(WorkflowValidationError, match="Start node not found") as exc:
        validate_workflow(workflow)
    assert exc.value.field == "startNode"


def test_mismatched_node_key():
    workflow = Workflow(nodes={"a": _node("b")}, start_node="a")
    with pytest.raises(WorkflowValidationError, match="does not match"):
        validate_workflow(workflow)


def test_edge_to_unknown_node():
    workflow = Workflow(
        nodes={"a": _node("a")},
        edges=[WorkflowEdge(from_="a", to="ghost")],
        start_node="a",
    )
    with pytest.raises(WorkflowValidationError, match="non-existent node: ghost"):
        validate_workflow(workflow)


def test_workflow_parses_wire_aliases():
    """startNode and from are accepted as sent by clients"""
    workflow = Workflow.model_validate({
        "nodes": {"a": {"id": "a", "type": "variable", "properties": {"name": "x"}}},
        "edges": [{"from": "a", "to": "a", "condition": "false"}],
        "startNode": "a",
    })
    assert workflow.start_node == "a"
    assert workflow.outgoing_edges("a")[0].from_ == "a"
