# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Workflow Validation

Structural checks run before a workflow starts. Cycles are legal here;
runaway loops are bounded by the executor's node visit cap.
"""

from drivehub.workflow.exceptions import WorkflowValidationError
from drivehub.workflow.models import Workflow


def validate_workflow(workflow: Workflow) -> None:
    """
    Validate workflow structure.

    Raises WorkflowValidationError if validation fails.
    """
    # 1. Empty workflow check
    if len(workflow.nodes) == 0:
        raise WorkflowValidationError("Workflow must have at least one node", field="nodes")

    # 2. Node keys must match node ids
    for key, node in workflow.nodes.items():
        if key != node.id:
            raise WorkflowValidationError(
                f"Node key '{key}' does not match node id '{node.id}'",
                field="nodes"
            )

    # 3. Start node must exist
    if workflow.start_node not in workflow.nodes:
        raise WorkflowValidationError(
            f"Start node not found: {workflow.start_node}",
            field="startNode"
        )

    # 4. Invalid edge references
    for edge in workflow.edges:
        if edge.from_ not in workflow.nodes:
            raise WorkflowValidationError(
                f"Edge references non-existent node: {edge.from_}",
                field="edges"
            )
        if edge.to not in workflow.nodes:
            raise WorkflowValidationError(
                f"Edge references non-existent node: {edge.to}",
                field="edges"
            )
