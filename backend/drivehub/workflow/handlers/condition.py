# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
condition node
"""

from typing import Optional

from drivehub.workflow.conditions import evaluate_condition
from drivehub.workflow.context import ExecutionContext, PromptCallbacks, ServiceContext
from drivehub.workflow.exceptions import NodeExecutionError
from drivehub.workflow.handlers.base import require
from drivehub.workflow.models import HandlerResult, WorkflowNode
from drivehub.workflow.variables import replace_variables


async def handle_condition_node(
    node: WorkflowNode,
    context: ExecutionContext,
    service_context: ServiceContext,
    prompt_callbacks: PromptCallbacks,
) -> Optional[HandlerResult]:
    """
    Evaluate `condition` and report it as the branch.

    Placeholders are substituted first; bare names refer to variables,
    e.g. "{{count}} > 3" or "status == 'done'".
    """
    expression = replace_variables(require(node, "condition"), context)
    try:
        branch = evaluate_condition(expression, context.variables)
    except ValueError as e:
        raise NodeExecutionError(node.id, f"Invalid condition '{expression}': {e}")
    return HandlerResult(branch=branch)
