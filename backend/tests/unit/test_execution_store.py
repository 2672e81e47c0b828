# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Unit tests for the in-memory execution store
"""

import pytest

from drivehub.core.errors import ConflictError
from drivehub.execution_store import ExecutionStore
from drivehub.workflow.models import ExecutionStatus


class FakeClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def store(clock):
    return ExecutionStore(ttl_seconds=60, clock=clock)


def test_create_and_get(store):
    execution = store.create_execution("e1", "wf", owner_key="owner")

    assert store.get_execution("e1") is execution
    assert execution.status == ExecutionStatus.RUNNING
    assert store.get_execution("missing") is None


class TestPrompts:
    @pytest.mark.asyncio
    async def test_resolve_delivers_value(self, store):
        store.create_execution("e1", "wf")
        future = store.request_prompt("e1", "default", {"type": "value"})

        assert store.get_execution("e1").status == ExecutionStatus.WAITING_PROMPT
        assert store.resolve_prompt("e1", "answer") is True
        assert await future == "answer"
        assert store.get_execution("e1").status == ExecutionStatus.RUNNING

    @pytest.mark.asyncio
    async def test_second_prompt_conflicts(self, store):
        store.create_execution("e1", "wf")
        store.request_prompt("e1")

        with pytest.raises(ConflictError):
            store.request_prompt("e1")

    @pytest.mark.asyncio
    async def test_resolve_without_pending_prompt(self, store):
        store.create_execution("e1", "wf")
        assert store.resolve_prompt("e1", "x") is False
        assert store.resolve_prompt("missing", "x") is False

    @pytest.mark.asyncio
    async def test_missing_execution_resolves_none(self, store):
        assert await store.request_prompt("missing") is None

    @pytest.mark.asyncio
    async def test_prompt_after_stop_resolves_none(self, store):
        store.create_execution("e1", "wf")
        store.stop_execution("e1")

        assert await store.request_prompt("e1") is None

    @pytest.mark.asyncio
    async def test_stop_releases_pending_prompt(self, store):
        execution = store.create_execution("e1", "wf")
        future = store.request_prompt("e1")

        assert store.stop_execution("e1") is True

        assert await future is None
        assert execution.status == ExecutionStatus.CANCELLED
        assert execution.cancel_token.cancelled
        assert execution.pending_prompt is None


class TestStop:
    def test_stop_unknown(self, store):
        assert store.stop_execution("missing") is False

    def test_stop_finished_run(self, store):
        store.create_execution("e1", "wf")
        store.set_status("e1", ExecutionStatus.COMPLETED)

        assert store.stop_execution("e1") is False
        assert store.get_execution("e1").status == ExecutionStatus.COMPLETED


class TestOwnership:
    def test_owner_matches(self, store):
        store.create_execution("e1", "wf", owner_key="alice")

        assert store.is_execution_owned_by("e1", "alice") is True
        assert store.is_execution_owned_by("e1", "bob") is False
        assert store.is_execution_owned_by("missing", "alice") is False

    def test_ownerless_belongs_to_nobody(self, store):
        store.create_execution("e1", "wf")
        assert store.is_execution_owned_by("e1", None) is False


class TestEviction:
    def test_terminal_runs_expire_after_ttl(self, store, clock):
        store.create_execution("done", "wf")
        store.create_execution("live", "wf")
        store.set_status("done", ExecutionStatus.COMPLETED)

        clock.now += 59
        assert store.get_execution("done") is not None

        clock.now += 1
        assert store.get_execution("done") is None
        assert store.get_execution("live") is not None

    def test_evict_returns_count(self, store, clock):
        for execution_id in ("a", "b"):
            store.create_execution(execution_id, "wf")
            store.set_status(execution_id, ExecutionStatus.ERROR)
        clock.now += 120

        assert store.evict_expired() == 2
