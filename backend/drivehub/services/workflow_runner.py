# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Workflow Runner Service

Starts workflow runs in the background and bridges them to clients:
- Named events (log, status, prompt-request, complete, ...) per execution,
  replayed to late subscribers and streamed as server-sent events
- Human-in-the-loop prompts parked in the ExecutionStore
- Stop and prompt-response requests
"""

import asyncio
import dataclasses
import json
import uuid
from dataclasses import dataclass
from typing import Any, AsyncIterator, Dict, List, Optional

from drivehub.core.errors import NotFoundError
from drivehub.core.logging import get_service_logger
from drivehub.execution_store import ExecutionStore
from drivehub.workflow.context import (
    DialogResult,
    DriveFileEvent,
    ExecutionContext,
    PromptCallbacks,
    ServiceContext,
)
from drivehub.workflow.executor import WorkflowExecutor, collect_mcp_apps
from drivehub.workflow.history_store import ExecutionHistoryStore
from drivehub.workflow.models import ExecutionLog, ExecutionStatus, Workflow
from drivehub.workflow.validation import validate_workflow

logger = get_service_logger("workflow_runner")


@dataclass
class ExecutionEvent:
    event: str
    data: Dict[str, Any]

    def to_sse(self) -> str:
        return f"event: {self.event}\ndata: {json.dumps(self.data, ensure_ascii=False)}\n\n"


class EventChannel:
    """
    Fan-out of one execution's events.

    Every event is kept so a subscriber that connects late replays the run
    from the beginning before receiving live events.
    """

    def __init__(self):
        self.history: List[ExecutionEvent] = []
        self.subscribers: List[asyncio.Queue] = []
        self.closed = False

    def publish(self, event: str, data: Dict[str, Any]) -> None:
        item = ExecutionEvent(event, data)
        self.history.append(item)
        for queue in self.subscribers:
            queue.put_nowait(item)

    def close(self) -> None:
        self.closed = True
        for queue in self.subscribers:
            queue.put_nowait(None)

    async def subscribe(self, keepalive_seconds: float = 15.0) -> AsyncIterator[Optional[ExecutionEvent]]:
        """
        Yield events until the channel closes.

        Yields None after `keepalive_seconds` of silence so the caller can
        send a keepalive comment.
        """
        queue: asyncio.Queue = asyncio.Queue()
        for item in self.history:
            queue.put_nowait(item)
        if self.closed:
            queue.put_nowait(None)
        else:
            self.subscribers.append(queue)

        try:
            while True:
                try:
                    item = await asyncio.wait_for(queue.get(), timeout=keepalive_seconds)
                except asyncio.TimeoutError:
                    yield None
                    continue
                if item is None:
                    return
                yield item
        finally:
            if queue in self.subscribers:
                self.subscribers.remove(queue)


class WorkflowRunner:
    """
    Service for background workflow execution.

    Args:
        store: Registry of live executions
        history_store: Where finished records are persisted (optional)
        executor: Graph executor; defaults to one built from config
    """

    def __init__(
        self,
        store: ExecutionStore,
        history_store: Optional[ExecutionHistoryStore] = None,
        executor: Optional[WorkflowExecutor] = None,
    ):
        self.store = store
        self.history_store = history_store
        self.executor = executor or WorkflowExecutor()
        self._channels: Dict[str, EventChannel] = {}
        self._tasks: Dict[str, asyncio.Task] = {}

    def start_execution(
        self,
        workflow_id: str,
        workflow: Workflow,
        service_context: ServiceContext,
        variables: Optional[Dict[str, str]] = None,
        owner_key: Optional[str] = None,
    ) -> str:
        """
        Validate and launch a run.

        Returns:
            The new execution id

        Raises:
            WorkflowValidationError: If the workflow is structurally invalid
        """
        validate_workflow(workflow)
        self._prune_channels()

        execution_id = f"exec_{uuid.uuid4().hex}"
        execution = self.store.create_execution(execution_id, workflow_id, owner_key)
        channel = EventChannel()
        self._channels[execution_id] = channel

        run_context = dataclasses.replace(
            service_context,
            cancel_token=execution.cancel_token,
            on_drive_file_created=lambda event: self._publish_drive_event(channel, "drive-file-created", event),
            on_drive_file_updated=lambda event: self._publish_drive_event(channel, "drive-file-updated", event),
        )

        channel.publish("status", {"status": ExecutionStatus.RUNNING.value, "executionId": execution_id})
        task = asyncio.create_task(
            self._run(execution_id, workflow_id, workflow, ExecutionContext(variables), run_context, channel)
        )
        self._tasks[execution_id] = task
        task.add_done_callback(lambda _: self._tasks.pop(execution_id, None))
        logger.info(f"Started execution {execution_id} of workflow {workflow_id}")
        return execution_id

    def _prune_channels(self) -> None:
        """Drop channels of runs the store has evicted"""
        for execution_id in list(self._channels):
            if self.store.get_execution(execution_id) is None:
                del self._channels[execution_id]

    @staticmethod
    def _publish_drive_event(channel: EventChannel, name: str, event: DriveFileEvent) -> None:
        channel.publish(name, event.to_dict())

    def _prompt_callbacks(self, execution_id: str, channel: EventChannel) -> PromptCallbacks:
        async def ask(request: Dict[str, Any], initial_value: str) -> Optional[str]:
            future = self.store.request_prompt(execution_id, initial_value, request)
            if future.done():
                return future.result()
            channel.publish("status", {"status": ExecutionStatus.WAITING_PROMPT.value})
            channel.publish("prompt-request", request)
            value = await future
            execution = self.store.get_execution(execution_id)
            if execution is not None and not execution.status.is_terminal:
                channel.publish("status", {"status": ExecutionStatus.RUNNING.value})
            return value

        async def prompt_for_value(title: str, default_value: str, multiline: bool) -> Optional[str]:
            return await ask(
                {"type": "value", "title": title, "defaultValue": default_value, "multiline": multiline},
                default_value,
            )

        async def prompt_for_dialog(
            title: str,
            message: str,
            options: List[str],
            multi_select: bool,
            button1: str,
            button2: Optional[str],
        ) -> Optional[DialogResult]:
            value = await ask(
                {
                    "type": "dialog",
                    "title": title,
                    "message": message,
                    "options": options,
                    "multiSelect": multi_select,
                    "button1": button1,
                    "button2": button2,
                },
                "",
            )
            if value is None:
                return None
            try:
                answer = json.loads(value)
            except json.JSONDecodeError:
                return DialogResult(button=value)
            if not isinstance(answer, dict):
                return DialogResult(button=str(answer))
            return DialogResult(
                button=answer.get("button", button1),
                selected=list(answer.get("selected") or []),
                input=answer.get("input"),
            )

        return PromptCallbacks(prompt_for_value=prompt_for_value, prompt_for_dialog=prompt_for_dialog)

    async def _run(
        self,
        execution_id: str,
        workflow_id: str,
        workflow: Workflow,
        context: ExecutionContext,
        service_context: ServiceContext,
        channel: EventChannel,
    ) -> None:
        def on_log(log: ExecutionLog) -> None:
            channel.publish("log", log.model_dump(mode="json", by_alias=True, exclude_none=True))

        try:
            result = await self.executor.execute(
                workflow,
                context,
                service_context,
                on_log,
                workflow_id=workflow_id,
                execution_id=execution_id,
                prompt_callbacks=self._prompt_callbacks(execution_id, channel),
            )
            record = result.history_record
            self.store.set_status(execution_id, record.status)

            if record.status == ExecutionStatus.COMPLETED:
                channel.publish("complete", {
                    "status": record.status.value,
                    "variables": context.variables,
                    "mcpApps": [
                        app.model_dump(mode="json", by_alias=True, exclude_none=True)
                        for app in collect_mcp_apps(context.logs)
                    ],
                })
            elif record.status == ExecutionStatus.CANCELLED:
                channel.publish("cancelled", {"status": record.status.value})
            else:
                channel.publish("error", {"status": record.status.value, "error": result.error})

            if self.history_store is not None:
                try:
                    await self.history_store.save(record)
                except OSError as e:
                    logger.error(f"Failed to persist execution {execution_id}: {e}", exc_info=True)
        finally:
            execution = self.store.get_execution(execution_id)
            if execution is not None and not execution.status.is_terminal:
                self.store.set_status(execution_id, ExecutionStatus.ERROR)
            channel.close()

    async def wait(self, execution_id: str) -> None:
        """Wait for a run's background task (no-op once it finished)"""
        task = self._tasks.get(execution_id)
        if task is not None:
            await asyncio.gather(task, return_exceptions=True)

    def get_channel(self, workflow_id: str, execution_id: str) -> EventChannel:
        execution = self.store.get_execution(execution_id)
        channel = self._channels.get(execution_id)
        if execution is None or channel is None or execution.workflow_id != workflow_id:
            raise NotFoundError("Execution", execution_id)
        return channel

    async def stream_events(self, workflow_id: str, execution_id: str) -> AsyncIterator[str]:
        """Server-sent event frames for one execution"""
        channel = self.get_channel(workflow_id, execution_id)
        async for item in channel.subscribe():
            if item is None:
                yield ": keepalive\n\n"
            else:
                yield item.to_sse()

    def stop_execution(self, workflow_id: str, execution_id: str) -> bool:
        """
        Stop a run of `workflow_id`.

        Raises:
            NotFoundError: If the execution is unknown or belongs to another workflow
        """
        execution = self.store.get_execution(execution_id)
        if execution is None or execution.workflow_id != workflow_id:
            raise NotFoundError("Execution", execution_id)
        return self.store.stop_execution(execution_id)

    def submit_prompt_response(self, execution_id: str, value: Optional[str], owner_key: Optional[str]) -> bool:
        """
        Answer the pending prompt of an execution owned by `owner_key`.

        Raises:
            NotFoundError: If the execution is unknown or owned by someone else
        """
        if not self.store.is_execution_owned_by(execution_id, owner_key):
            raise NotFoundError("Execution", execution_id)
        return self.store.resolve_prompt(execution_id, value)

