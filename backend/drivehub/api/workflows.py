# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Workflow API Routes

Handles workflow execution:
- Start a run and stream its events (server-sent events)
- Stop a run, answer its prompts
- Browse finished runs
"""

from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import StreamingResponse

from drivehub.core.dependencies import get_owner_key, get_service_context, get_workflow_runner
from drivehub.core.errors import NotFoundError
from drivehub.services.workflow_runner import WorkflowRunner
from drivehub.workflow.context import ServiceContext
from drivehub.workflow.exceptions import WorkflowValidationError
from drivehub.workflow.models import PromptResponseRequest, StopExecutionRequest, WorkflowRunRequest

router = APIRouter(prefix="/api", tags=["workflows"])


# Execution Routes
@router.post("/workflows/{workflow_id}/execute")
async def execute_workflow(
    workflow_id: str,
    request: WorkflowRunRequest,
    runner: WorkflowRunner = Depends(get_workflow_runner),
    service_context: ServiceContext = Depends(get_service_context),
    owner_key: Optional[str] = Depends(get_owner_key),
) -> Dict[str, str]:
    """Start a run in the background; events are read from the events stream"""
    try:
        execution_id = runner.start_execution(
            workflow_id,
            request.workflow,
            service_context,
            variables=request.variables,
            owner_key=owner_key,
        )
    except WorkflowValidationError as e:
        raise HTTPException(status_code=400, detail=e.message)
    return {"executionId": execution_id}


@router.get("/workflows/{workflow_id}/executions/{execution_id}/events")
async def stream_execution_events(
    workflow_id: str,
    execution_id: str,
    runner: WorkflowRunner = Depends(get_workflow_runner),
) -> StreamingResponse:
    """Server-sent events of one run, replayed from the start"""
    try:
        runner.get_channel(workflow_id, execution_id)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))

    return StreamingResponse(
        runner.stream_events(workflow_id, execution_id),
        media_type="text/event-stream",
        headers={
            "Cache-Control": "no-cache",
            "Connection": "keep-alive",
            "X-Accel-Buffering": "no",
        },
    )


@router.post("/workflows/{workflow_id}/stop")
async def stop_execution(
    workflow_id: str,
    request: StopExecutionRequest,
    runner: WorkflowRunner = Depends(get_workflow_runner),
) -> Dict[str, Any]:
    """Stop a run; stopping a finished run is a no-op"""
    try:
        stopped = runner.stop_execution(workflow_id, request.execution_id)
    except NotFoundError:
        raise HTTPException(status_code=404, detail="Execution not found")
    return {"success": True, "stopped": stopped}


@router.post("/prompt-response")
async def submit_prompt_response(
    request: PromptResponseRequest,
    runner: WorkflowRunner = Depends(get_workflow_runner),
    owner_key: Optional[str] = Depends(get_owner_key),
) -> Dict[str, Any]:
    """Answer the pending prompt of a run owned by the caller"""
    try:
        resolved = runner.submit_prompt_response(request.execution_id, request.value, owner_key)
    except NotFoundError:
        raise HTTPException(status_code=404, detail="Execution not found")
    if not resolved:
        raise HTTPException(status_code=409, detail="No pending prompt for this execution")
    return {"success": True}


# History Routes
@router.get("/workflows/{workflow_id}/executions")
async def list_executions(
    workflow_id: str,
    status: Optional[str] = None,
    limit: int = 50,
    offset: int = 0,
    runner: WorkflowRunner = Depends(get_workflow_runner),
) -> List[Dict[str, Any]]:
    """Finished runs of a workflow, newest first"""
    if runner.history_store is None:
        return []
    records = await runner.history_store.list(workflow_id=workflow_id, status=status, limit=limit, offset=offset)
    return [r.model_dump(mode="json", by_alias=True, exclude_none=True) for r in records]


@router.get("/executions/{execution_id}")
async def get_execution_record(
    execution_id: str,
    runner: WorkflowRunner = Depends(get_workflow_runner),
) -> Dict[str, Any]:
    """A finished run's record"""
    record = await runner.history_store.get(execution_id) if runner.history_store else None
    if record is None:
        raise HTTPException(status_code=404, detail=f"Execution not found: {execution_id}")
    return record.model_dump(mode="json", by_alias=True, exclude_none=True)
