# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Errors raised while validating or running a workflow.

The executor turns any of these into an `error` status plus a log entry;
they never reach the API as exceptions.
"""

from typing import Optional


class WorkflowError(Exception):
    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class WorkflowValidationError(WorkflowError):
    """Structural problem (bad start node, dangling edge); `field` points at it"""

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(message)
        self.field = field


class NodeExecutionError(WorkflowError):
    """A handler rejected its node or its side effect failed"""

    def __init__(self, node_id: str, message: str, context: Optional[dict] = None):
        super().__init__(message)
        self.node_id = node_id
        self.context = context or {}


class MaxNodeVisitsExceeded(WorkflowError):
    """Run visited more nodes than the configured cap"""

    def __init__(self, limit: int):
        super().__init__(f"Maximum node visit count exceeded ({limit})")
        self.limit = limit
