# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
variable / set nodes
"""

import logging
import re
from typing import Any, Dict, Optional, Tuple

from drivehub.workflow.conditions import coerce_value, evaluate_expression
from drivehub.workflow.context import ExecutionContext, PromptCallbacks, ServiceContext
from drivehub.workflow.handlers.base import require, resolve
from drivehub.workflow.models import HandlerResult, WorkflowNode
from drivehub.workflow.variables import PLACEHOLDER_PATTERN

logger = logging.getLogger(__name__)

# Numbers joined by + - * / % and parentheses, nothing else
ARITHMETIC_PATTERN = re.compile(r"^[\d\s.+\-*/%()]+$")
OPERATOR_AFTER_OPERAND = re.compile(r"[\d)]\s*[+\-*/%]")


async def handle_variable_node(
    node: WorkflowNode,
    context: ExecutionContext,
    service_context: ServiceContext,
    prompt_callbacks: PromptCallbacks,
) -> Optional[HandlerResult]:
    """Store the resolved `value` under `name`"""
    name = require(node, "name")
    context.set(name, resolve(node, "value", context))
    return None


def arithmetic_operands(template: str, context: ExecutionContext) -> Optional[Tuple[str, Dict[str, Any]]]:
    """
    Rewrite a set-node template into an expression over bound operands.

    Placeholders become names (`_v0`, `_v1`, ...) bound to the variables'
    numeric values, so operators inside a variable's value are never parsed.
    Returns None unless the template itself is arithmetic and every
    placeholder holds a number.
    """
    # Placeholders stand in as a bare operand when checking the shape
    shape = PLACEHOLDER_PATTERN.sub("0", template)
    if not ARITHMETIC_PATTERN.match(shape) or not OPERATOR_AFTER_OPERAND.search(shape):
        return None

    operands: Dict[str, Any] = {}
    pieces = []
    last = 0
    for match in PLACEHOLDER_PATTERN.finditer(template):
        value = coerce_value(context.variables.get(match.group(1)))
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            return None
        operand = f"_v{len(operands)}"
        operands[operand] = value
        pieces.append(template[last:match.start()])
        pieces.append(operand)
        last = match.end()
    pieces.append(template[last:])
    return "".join(pieces), operands


async def handle_set_node(
    node: WorkflowNode,
    context: ExecutionContext,
    service_context: ServiceContext,
    prompt_callbacks: PromptCallbacks,
) -> Optional[HandlerResult]:
    """
    Like variable, but a value that is pure arithmetic is evaluated:
    {{count}} = "2" and value "{{count}} + 1" stores "3".

    Whether to evaluate is decided on the template, not the substituted
    text, so a variable holding "555-1234" or "2025-1-1" is stored as is.
    """
    name = require(node, "name")
    value = resolve(node, "value", context)

    arithmetic = arithmetic_operands(node.properties.get("value", ""), context)
    if arithmetic is not None:
        expression, operands = arithmetic
        try:
            result = evaluate_expression(expression, operands)
        except ValueError as e:
            logger.debug(f"Keeping literal value for {name}: {e}")
        else:
            if isinstance(result, float) and result.is_integer():
                result = int(result)
            value = str(result)

    context.set(name, value)
    return None
