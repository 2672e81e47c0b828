# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Unit tests for the background workflow runner
"""

import asyncio
import json

import pytest

from drivehub.core.errors import NotFoundError
from drivehub.execution_store import ExecutionStore
from drivehub.services.workflow_runner import WorkflowRunner
from drivehub.workflow.exceptions import WorkflowValidationError
from drivehub.workflow.history_store import ExecutionHistoryStore
from drivehub.workflow.models import ExecutionStatus, Workflow, WorkflowEdge, WorkflowNode


def _greeting_workflow() -> Workflow:
    return Workflow(
        nodes={
            "ask": WorkflowNode(id="ask", type="prompt-value", properties={"title": "Name?", "saveTo": "name"}),
            "greet": WorkflowNode(id="greet", type="variable", properties={"name": "greeting", "value": "hi {{name}}"}),
        },
        edges=[WorkflowEdge(from_="ask", to="greet")],
        start_node="ask",
    )


def _simple_workflow() -> Workflow:
    return Workflow(
        nodes={"a": WorkflowNode(id="a", type="variable", properties={"name": "x", "value": "{{seed}}-1"})},
        start_node="a",
    )


async def _wait_for_prompt(runner: WorkflowRunner, execution_id: str) -> None:
    for _ in range(200):
        execution = runner.store.get_execution(execution_id)
        if execution.pending_prompt is not None:
            return
        await asyncio.sleep(0.01)
    raise AssertionError("prompt was never requested")


@pytest.fixture
def runner(tmp_path):
    """Runner persisting records into a temp directory"""
    return WorkflowRunner(ExecutionStore(), ExecutionHistoryStore(str(tmp_path)))


@pytest.mark.asyncio
async def test_run_publishes_complete(runner, service_context):
    execution_id = runner.start_execution("wf", _simple_workflow(), service_context, {"seed": "7"})
    await runner.wait(execution_id)

    channel = runner.get_channel("wf", execution_id)
    names = [e.event for e in channel.history]
    assert names[0] == "status"
    assert names[-1] == "complete"
    assert names.count("log") == 2

    complete = channel.history[-1].data
    assert complete["status"] == "completed"
    assert complete["variables"] == {"seed": "7", "x": "7-1"}
    assert complete["mcpApps"] == []
    assert runner.store.get_execution(execution_id).status == ExecutionStatus.COMPLETED


@pytest.mark.asyncio
async def test_record_is_persisted(runner, service_context):
    execution_id = runner.start_execution("wf", _simple_workflow(), service_context, {"seed": "1"})
    await runner.wait(execution_id)

    record = await runner.history_store.get(execution_id)
    assert record is not None
    assert record.workflow_id == "wf"
    assert record.status == ExecutionStatus.COMPLETED
    assert [r.id for r in await runner.history_store.list(workflow_id="wf")] == [execution_id]


def test_invalid_workflow_is_rejected(runner, service_context):
    workflow = Workflow(nodes={}, start_node="a")
    with pytest.raises(WorkflowValidationError):
        runner.start_execution("wf", workflow, service_context)


@pytest.mark.asyncio
async def test_prompt_round_trip(runner, service_context):
    execution_id = runner.start_execution("wf", _greeting_workflow(), service_context, owner_key="owner-1")
    await _wait_for_prompt(runner, execution_id)

    channel = runner.get_channel("wf", execution_id)
    request = next(e.data for e in channel.history if e.event == "prompt-request")
    assert request == {"type": "value", "title": "Name?", "defaultValue": "", "multiline": False}
    assert runner.store.get_execution(execution_id).status == ExecutionStatus.WAITING_PROMPT

    with pytest.raises(NotFoundError):
        runner.submit_prompt_response(execution_id, "Mallory", "someone-else")

    assert runner.submit_prompt_response(execution_id, "Ada", "owner-1") is True
    await runner.wait(execution_id)

    complete = channel.history[-1]
    assert complete.event == "complete"
    assert complete.data["variables"]["greeting"] == "hi Ada"


@pytest.mark.asyncio
async def test_stop_while_waiting_for_prompt(runner, service_context):
    execution_id = runner.start_execution("wf", _greeting_workflow(), service_context, owner_key="owner-1")
    await _wait_for_prompt(runner, execution_id)

    assert runner.stop_execution("wf", execution_id) is True
    await runner.wait(execution_id)

    channel = runner.get_channel("wf", execution_id)
    assert channel.history[-1].event == "cancelled"
    assert runner.store.get_execution(execution_id).status == ExecutionStatus.CANCELLED
    assert runner.stop_execution("wf", execution_id) is False

    record = await runner.history_store.get(execution_id)
    assert record.status == ExecutionStatus.CANCELLED


@pytest.mark.asyncio
async def test_stop_unknown_execution(runner):
    with pytest.raises(NotFoundError):
        runner.stop_execution("wf", "exec_missing")


@pytest.mark.asyncio
async def test_channel_belongs_to_its_workflow(runner, service_context):
    execution_id = runner.start_execution("wf", _simple_workflow(), service_context, {"seed": "1"})
    await runner.wait(execution_id)

    with pytest.raises(NotFoundError):
        runner.get_channel("other-wf", execution_id)


@pytest.mark.asyncio
async def test_late_subscriber_replays_events(runner, service_context):
    execution_id = runner.start_execution("wf", _simple_workflow(), service_context, {"seed": "1"})
    await runner.wait(execution_id)

    frames = [frame async for frame in runner.stream_events("wf", execution_id)]

    assert frames[0].startswith("event: status\n")
    assert frames[-1].startswith("event: complete\n")
    payload = json.loads(frames[-1].split("data: ", 1)[1])
    assert payload["variables"]["x"] == "1-1"


@pytest.mark.asyncio
async def test_failed_run_publishes_error(runner, service_context):
    workflow = Workflow(
        nodes={"r": WorkflowNode(id="r", type="drive-read", properties={"path": "ghost", "saveTo": "x"})},
        start_node="r",
    )
    execution_id = runner.start_execution("wf", workflow, service_context)
    await runner.wait(execution_id)

    last = runner.get_channel("wf", execution_id).history[-1]
    assert last.event == "error"
    assert "File not found on Drive: ghost" in last.data["error"]


@pytest.mark.asyncio
async def test_drive_writes_are_streamed(runner, service_context):
    workflow = Workflow(
        nodes={"w": WorkflowNode(id="w", type="drive-file", properties={"path": "out", "content": "hello"})},
        start_node="w",
    )
    execution_id = runner.start_execution("wf", workflow, service_context)
    await runner.wait(execution_id)

    events = runner.get_channel("wf", execution_id).history
    created = [e.data for e in events if e.event == "drive-file-created"]
    assert len(created) == 1
    assert created[0]["fileName"] == "out.md"
    assert created[0]["content"] == "hello"
