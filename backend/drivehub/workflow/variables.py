# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Template Variable Substitution

Resolves {{name}} placeholders against an execution's variables.
"""

import re
from typing import Optional

from drivehub.workflow.context import ExecutionContext

# {{ name }}: word characters, dots and dashes; inner whitespace tolerated
PLACEHOLDER_PATTERN = re.compile(r"\{\{\s*([\w.\-]+)\s*\}\}")


def replace_variables(template: Optional[str], context: ExecutionContext) -> str:
    """
    Replace every {{name}} with the variable's value.

    Unknown names stay as literal placeholders. Substituted values are not
    scanned again, so a value containing {{...}} is never expanded.

    Examples:
        >>> ctx = ExecutionContext({"name": "world"})
        >>> replace_variables("hello {{name}}", ctx)
        'hello world'
        >>> replace_variables("{{missing}}", ctx)
        '{{missing}}'
    """
    if not template:
        return ""

    def substitute(match: re.Match) -> str:
        value = context.variables.get(match.group(1))
        if value is None:
            return match.group(0)
        return str(value)

    return PLACEHOLDER_PATTERN.sub(substitute, template)


def find_placeholder(template: Optional[str]) -> Optional[str]:
    """Name of the variable when `template` is exactly one placeholder, e.g. "{{file}}" -> "file" """
    if not template:
        return None
    match = PLACEHOLDER_PATTERN.fullmatch(template.strip())
    return match.group(1) if match else None


def has_unresolved(value: str) -> bool:
    return PLACEHOLDER_PATTERN.search(value) is not None
