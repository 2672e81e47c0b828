# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Workflow Executor

Walks the workflow graph from its start node, one node at a time,
following the first matching outgoing edge after each node.
"""

import logging
import uuid
from dataclasses import dataclass
from typing import Callable, List, Optional

from drivehub.core.cancellation import OperationCancelled
from drivehub.core.config import get_config
from drivehub.workflow.conditions import evaluate_condition
from drivehub.workflow.context import ExecutionContext, PromptCallbacks, ServiceContext
from drivehub.workflow.exceptions import MaxNodeVisitsExceeded, NodeExecutionError
from drivehub.workflow.handlers import get_handler
from drivehub.workflow.models import (
    ExecutionLog,
    ExecutionRecord,
    ExecutionStatus,
    ExecutionStep,
    HandlerResult,
    LogStatus,
    McpAppInfo,
    Workflow,
    WorkflowNode,
)
from drivehub.workflow.validation import validate_workflow
from drivehub.workflow.variables import replace_variables

logger = logging.getLogger(__name__)

LogCallback = Callable[[ExecutionLog], None]


@dataclass
class ExecutionResult:
    """Outcome of one run; `error` is set when the run ended with status error"""
    context: ExecutionContext
    history_record: ExecutionRecord
    error: Optional[str] = None


class WorkflowExecutor:
    """
    Sequential graph executor.

    Args:
        max_node_visits: Upper bound on node executions per run (cycles are legal)
    """

    def __init__(self, max_node_visits: Optional[int] = None):
        self.max_node_visits = max_node_visits or get_config().max_node_visits

    async def execute(
        self,
        workflow: Workflow,
        context: ExecutionContext,
        service_context: ServiceContext,
        on_log: Optional[LogCallback] = None,
        *,
        workflow_id: str = "",
        execution_id: Optional[str] = None,
        prompt_callbacks: Optional[PromptCallbacks] = None,
    ) -> ExecutionResult:
        """
        Run `workflow` to a terminal state.

        Never raises for handler failures: the error is reported in the
        result, in the record status and as a final error log.

        Returns:
            ExecutionResult with the mutated context and the history record
        """
        record = ExecutionRecord(id=execution_id or uuid.uuid4().hex, workflow_id=workflow_id)
        token = service_context.cancel_token
        callbacks = prompt_callbacks or PromptCallbacks()

        def emit(log: ExecutionLog, node: Optional[WorkflowNode] = None, error: Optional[str] = None) -> None:
            context.logs.append(log)
            step = ExecutionStep(**log.model_dump(), error=error)
            if node is not None:
                step.input = dict(node.properties)
                save_to = node.properties.get("saveTo")
                if save_to and log.status == LogStatus.SUCCESS:
                    step.output = context.get(save_to)
            record.steps.append(step)
            if on_log is not None:
                on_log(log)

        current: Optional[WorkflowNode] = None
        visits = 0
        try:
            validate_workflow(workflow)
            next_id: Optional[str] = workflow.start_node

            while next_id is not None:
                token.raise_if_cancelled()
                visits += 1
                if visits > self.max_node_visits:
                    raise MaxNodeVisitsExceeded(self.max_node_visits)

                current = workflow.nodes[next_id]
                emit(ExecutionLog(
                    node_id=current.id,
                    node_type=current.type.value,
                    message=f"Executing {current.type.value} node",
                ), current)

                handler = get_handler(current.type)
                result = await token.run(handler(current, context, service_context, callbacks))
                result = result or HandlerResult()
                context.discovered_rag_stores.update(result.discovered_rag_stores)

                emit(ExecutionLog(
                    node_id=current.id,
                    node_type=current.type.value,
                    message=self._success_message(current, result),
                    status=LogStatus.SUCCESS,
                    mcp_apps=list(result.mcp_apps) or None,
                ), current)

                next_id = self._next_node(workflow, current, result, context)

            token.raise_if_cancelled()
            record.finalize(ExecutionStatus.COMPLETED)
            logger.info(f"Execution {record.id} completed after {visits} node(s)")
            return ExecutionResult(context=context, history_record=record)

        except OperationCancelled as e:
            emit(ExecutionLog(
                node_id=current.id if current else "",
                node_type=current.type.value if current else "",
                message=e.reason,
            ))
            record.finalize(ExecutionStatus.CANCELLED)
            logger.info(f"Execution {record.id} cancelled: {e.reason}")
            return ExecutionResult(context=context, history_record=record)

        except Exception as e:
            message = getattr(e, "message", None) or str(e) or type(e).__name__
            emit(ExecutionLog(
                node_id=current.id if current else "",
                node_type=current.type.value if current else "",
                message=message,
                status=LogStatus.ERROR,
            ), current, error=message)
            record.finalize(ExecutionStatus.ERROR)
            logger.error(f"Execution {record.id} failed at node {current.id if current else '-'}: {message}")
            return ExecutionResult(context=context, history_record=record, error=message)

    @staticmethod
    def _success_message(node: WorkflowNode, result: HandlerResult) -> str:
        if result.branch is not None:
            return f"Condition evaluated to {str(result.branch).lower()}"
        if result.used_model:
            return f"Completed with {result.used_model}"
        return f"{node.type.value} node completed"

    @staticmethod
    def _next_node(
        workflow: Workflow,
        node: WorkflowNode,
        result: HandlerResult,
        context: ExecutionContext,
    ) -> Optional[str]:
        """
        First outgoing edge that matches, in declaration order.

        - no condition: always matches
        - "true" / "false": matches the node's branch result
        - anything else: evaluated against the current variables
        """
        for edge in workflow.outgoing_edges(node.id):
            condition = (edge.condition or "").strip()
            if not condition:
                return edge.to
            if condition in ("true", "false"):
                if result.branch is not None and result.branch == (condition == "true"):
                    return edge.to
                continue
            expression = replace_variables(condition, context)
            try:
                if evaluate_condition(expression, context.variables):
                    return edge.to
            except ValueError as e:
                raise NodeExecutionError(node.id, f"Invalid edge condition '{condition}': {e}")
        return None


def collect_mcp_apps(logs: List[ExecutionLog]) -> List[McpAppInfo]:
    """All MCP app results reported by a run, in log order"""
    apps: List[McpAppInfo] = []
    for log in logs:
        apps.extend(log.mcp_apps or [])
    return apps
