# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Workflow Models

Pydantic models for workflow graphs, execution logs and execution records.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import List, Dict, Any, Optional
from pydantic import BaseModel, Field, ConfigDict


class NodeType(str, Enum):
    """Closed set of node types; each maps to exactly one handler."""
    VARIABLE = "variable"
    SET = "set"
    CONDITION = "condition"
    COMMAND = "command"
    DRIVE_FILE = "drive-file"
    DRIVE_READ = "drive-read"
    DRIVE_SAVE = "drive-save"
    MCP = "mcp"
    RAG_SYNC = "rag-sync"
    PROMPT_VALUE = "prompt-value"
    DIALOG = "dialog"


class WorkflowNode(BaseModel):
    """Workflow node. Property values may hold {{var}} placeholders."""
    id: str
    type: NodeType
    properties: Dict[str, str] = Field(default_factory=dict)


class WorkflowEdge(BaseModel):
    """Workflow edge"""
    model_config = ConfigDict(populate_by_name=True)  # Allow both 'from' and 'from_'

    from_: str = Field(alias="from")
    to: str
    condition: Optional[str] = None


class Workflow(BaseModel):
    """Workflow graph: nodes keyed by id, ordered edges, a start node"""
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    nodes: Dict[str, WorkflowNode]
    edges: List[WorkflowEdge] = Field(default_factory=list)
    start_node: str = Field(alias="startNode")

    def outgoing_edges(self, node_id: str) -> List[WorkflowEdge]:
        """Edges leaving `node_id`, in declaration order"""
        return [edge for edge in self.edges if edge.from_ == node_id]


class ExecutionStatus(str, Enum):
    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    ERROR = "error"
    CANCELLED = "cancelled"
    WAITING_PROMPT = "waiting-prompt"

    @property
    def is_terminal(self) -> bool:
        return self in (ExecutionStatus.COMPLETED, ExecutionStatus.ERROR, ExecutionStatus.CANCELLED)


class LogStatus(str, Enum):
    INFO = "info"
    SUCCESS = "success"
    ERROR = "error"


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class McpAppInfo(BaseModel):
    """Tool result plus optional UI resource returned by an MCP call"""
    model_config = ConfigDict(populate_by_name=True)

    server_url: str = Field(alias="serverUrl")
    server_headers: Optional[Dict[str, str]] = Field(default=None, alias="serverHeaders")
    tool_result: Dict[str, Any] = Field(default_factory=dict, alias="toolResult")
    ui_resource: Optional[Dict[str, Any]] = Field(default=None, alias="uiResource")


class ExecutionLog(BaseModel):
    """One node-level event. Logs are append-only, in execution order."""
    node_id: str
    node_type: str
    message: str
    status: LogStatus = LogStatus.INFO
    timestamp: str = Field(default_factory=_now_iso)
    mcp_apps: Optional[List[McpAppInfo]] = None


class ExecutionStep(ExecutionLog):
    """Log entry as persisted in an execution record"""
    input: Optional[Dict[str, Any]] = None
    output: Optional[Any] = None
    error: Optional[str] = None


class ExecutionRecord(BaseModel):
    """Durable snapshot of one run"""
    id: str
    workflow_id: str
    start_time: str = Field(default_factory=_now_iso)
    end_time: Optional[str] = None
    status: ExecutionStatus = ExecutionStatus.RUNNING
    steps: List[ExecutionStep] = Field(default_factory=list)

    def finalize(self, status: ExecutionStatus) -> None:
        self.status = status
        self.end_time = _now_iso()


class LastCommandInfo(BaseModel):
    node_id: str
    original_prompt: str
    save_to: Optional[str] = None


class HandlerResult(BaseModel):
    """
    What a handler hands back to the executor besides variable writes.

    branch: outcome of a condition node, used for true/false edges
    discovered_rag_stores: RAG setting name -> store name, merged into the context
    """
    branch: Optional[bool] = None
    used_model: Optional[str] = None
    mcp_apps: List[McpAppInfo] = Field(default_factory=list)
    discovered_rag_stores: Dict[str, str] = Field(default_factory=dict)


class WorkflowRunRequest(BaseModel):
    """Request to run a workflow"""
    model_config = ConfigDict(populate_by_name=True)

    workflow: Workflow
    variables: Dict[str, str] = Field(default_factory=dict)


class PromptResponseRequest(BaseModel):
    """Answer to a pending prompt; value None means the user dismissed it"""
    model_config = ConfigDict(populate_by_name=True)

    execution_id: str = Field(alias="executionId")
    value: Optional[str] = None


class StopExecutionRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    execution_id: str = Field(alias="executionId")
