# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
prompt-value / dialog nodes - pause the run for user input
"""

import json
from typing import Optional

from drivehub.core.cancellation import OperationCancelled
from drivehub.workflow.context import ExecutionContext, PromptCallbacks, ServiceContext
from drivehub.workflow.exceptions import NodeExecutionError
from drivehub.workflow.handlers.base import is_enabled, require, resolve
from drivehub.workflow.models import HandlerResult, WorkflowNode


def _dismissed(node: WorkflowNode, service_context: ServiceContext, message: str) -> Exception:
    """A dismissed prompt is a cancellation when the run itself was stopped"""
    token = service_context.cancel_token
    if token.cancelled:
        return OperationCancelled(token.reason or "Execution cancelled")
    return NodeExecutionError(node.id, message)


async def handle_prompt_value_node(
    node: WorkflowNode,
    context: ExecutionContext,
    service_context: ServiceContext,
    prompt_callbacks: PromptCallbacks,
) -> Optional[HandlerResult]:
    save_to = require(node, "saveTo")
    if prompt_callbacks.prompt_for_value is None:
        raise NodeExecutionError(node.id, "Prompt is not available in this execution")

    value = await prompt_callbacks.prompt_for_value(
        resolve(node, "title", context, "Input"),
        resolve(node, "default", context),
        is_enabled(node.properties.get("multiline")),
    )
    if value is None:
        raise _dismissed(node, service_context, "Input cancelled by user")

    context.set(save_to, value)
    return None


async def handle_dialog_node(
    node: WorkflowNode,
    context: ExecutionContext,
    service_context: ServiceContext,
    prompt_callbacks: PromptCallbacks,
) -> Optional[HandlerResult]:
    """Show a dialog; `saveTo` receives {button, selected, input} as JSON"""
    if prompt_callbacks.prompt_for_dialog is None:
        raise NodeExecutionError(node.id, "Dialog is not available in this execution")

    options = [o.strip() for o in resolve(node, "options", context).split(",") if o.strip()]
    result = await prompt_callbacks.prompt_for_dialog(
        resolve(node, "title", context, "Dialog"),
        resolve(node, "message", context),
        options,
        is_enabled(node.properties.get("multiSelect")),
        resolve(node, "button1", context, "OK"),
        resolve(node, "button2", context) or None,
    )
    if result is None:
        raise _dismissed(node, service_context, "Dialog cancelled by user")

    save_to = node.properties.get("saveTo")
    if save_to:
        context.set(save_to, json.dumps(result.to_dict()))
    return None
