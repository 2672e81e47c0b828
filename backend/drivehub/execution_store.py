# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Execution Store - in-memory registry of live workflow runs

Tracks status, the cancellation token and at most one pending prompt per
run. Terminal runs are kept for `ttl_seconds` so late stop/prompt calls and
event subscribers still find them, then evicted.
"""

import asyncio
import logging
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Optional

from drivehub.core.cancellation import CancellationToken
from drivehub.core.errors import ConflictError
from drivehub.workflow.models import ExecutionStatus

logger = logging.getLogger(__name__)


@dataclass
class PendingPrompt:
    future: "asyncio.Future[Optional[str]]"
    initial_value: str = ""
    metadata: Dict[str, Any] = field(default_factory=dict)


@dataclass
class Execution:
    execution_id: str
    workflow_id: str
    owner_key: Optional[str] = None
    status: ExecutionStatus = ExecutionStatus.RUNNING
    cancel_token: CancellationToken = field(default_factory=CancellationToken)
    pending_prompt: Optional[PendingPrompt] = None
    created_at: float = 0.0
    finished_at: Optional[float] = None


def _resolved(value: Optional[str]) -> "asyncio.Future[Optional[str]]":
    future = asyncio.get_running_loop().create_future()
    future.set_result(value)
    return future


class ExecutionStore:
    """
    Registry of live executions, injected wherever runs are managed.

    Args:
        ttl_seconds: How long terminal executions stay visible
        clock: Monotonic time source (tests pass a fake)
    """

    def __init__(self, ttl_seconds: float = 300, clock: Callable[[], float] = time.monotonic):
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._executions: Dict[str, Execution] = {}

    def create_execution(self, execution_id: str, workflow_id: str, owner_key: Optional[str] = None) -> Execution:
        self.evict_expired()
        execution = Execution(
            execution_id=execution_id,
            workflow_id=workflow_id,
            owner_key=owner_key,
            created_at=self._clock(),
        )
        self._executions[execution_id] = execution
        return execution

    def get_execution(self, execution_id: str) -> Optional[Execution]:
        self.evict_expired()
        return self._executions.get(execution_id)

    def set_status(self, execution_id: str, status: ExecutionStatus) -> None:
        """Record a status; terminal statuses start the eviction clock"""
        execution = self._executions.get(execution_id)
        if execution is None:
            return
        execution.status = status
        if status.is_terminal and execution.finished_at is None:
            execution.finished_at = self._clock()

    def stop_execution(self, execution_id: str) -> bool:
        """
        Cancel a running execution.

        Resolves any pending prompt with None so the waiting handler resumes.

        Returns:
            False when the execution is unknown or already finished
        """
        execution = self.get_execution(execution_id)
        if execution is None or execution.status.is_terminal:
            return False

        execution.cancel_token.cancel("Execution stopped by user")
        self.set_status(execution_id, ExecutionStatus.CANCELLED)

        pending = execution.pending_prompt
        execution.pending_prompt = None
        if pending is not None and not pending.future.done():
            pending.future.set_result(None)

        logger.info(f"Execution {execution_id} stopped")
        return True

    def request_prompt(
        self,
        execution_id: str,
        initial_value: str = "",
        metadata: Optional[Dict[str, Any]] = None,
    ) -> "asyncio.Future[Optional[str]]":
        """
        Register a prompt and return a future for the user's answer.

        The future resolves to None when the execution is missing, cancelled,
        or stopped while waiting.

        Raises:
            ConflictError: If a prompt is already pending for the execution
        """
        execution = self.get_execution(execution_id)
        if execution is None or execution.status == ExecutionStatus.CANCELLED:
            return _resolved(None)
        if execution.pending_prompt is not None:
            raise ConflictError(f"Execution {execution_id} already has a pending prompt", resource="prompt")

        future = asyncio.get_running_loop().create_future()
        execution.pending_prompt = PendingPrompt(future=future, initial_value=initial_value, metadata=metadata or {})
        execution.status = ExecutionStatus.WAITING_PROMPT
        return future

    def resolve_prompt(self, execution_id: str, value: Optional[str]) -> bool:
        """
        Deliver the user's answer to the pending prompt.

        Returns:
            False when there is nothing waiting
        """
        execution = self.get_execution(execution_id)
        if execution is None or execution.pending_prompt is None:
            return False

        pending = execution.pending_prompt
        execution.pending_prompt = None
        if execution.status == ExecutionStatus.WAITING_PROMPT:
            execution.status = ExecutionStatus.RUNNING
        if pending.future.done():
            return False
        pending.future.set_result(value)
        return True

    def is_execution_owned_by(self, execution_id: str, owner_key: Optional[str]) -> bool:
        """Executions created without an owner belong to nobody"""
        execution = self.get_execution(execution_id)
        return execution is not None and execution.owner_key is not None and execution.owner_key == owner_key

    def evict_expired(self) -> int:
        """Drop terminal executions older than the TTL; returns how many"""
        now = self._clock()
        expired = [
            execution_id for execution_id, execution in self._executions.items()
            if execution.finished_at is not None and now - execution.finished_at >= self.ttl_seconds
        ]
        for execution_id in expired:
            del self._executions[execution_id]
        if expired:
            logger.debug(f"Evicted {len(expired)} finished execution(s)")
        return len(expired)
