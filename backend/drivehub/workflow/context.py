# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Workflow Execution Context

Per-run mutable state, and the collaborator bundle handed to every handler.
"""

from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, List, Optional

import httpx

from drivehub.core.cancellation import CancellationToken
from drivehub.drive.store import FileStore
from drivehub.history.remote import EditHistoryRecorder
from drivehub.llm.provider import LLMProvider
from drivehub.rag.provider import RagProvider
from drivehub.settings import UserSettings
from drivehub.sync.meta import RemoteSyncMetaStore
from drivehub.workflow.models import ExecutionLog, LastCommandInfo


class ExecutionContext:
    """
    Execution context for a workflow run.

    Tracks:
    - Variables (last write wins)
    - Logs, in execution order
    - The last command node's prompt, for follow-up chat
    - RAG stores discovered by rag-sync nodes, by setting name
    """

    def __init__(self, variables: Optional[Dict[str, str]] = None):
        self.variables: Dict[str, str] = dict(variables or {})
        self.logs: List[ExecutionLog] = []
        self.last_command_info: Optional[LastCommandInfo] = None
        self.discovered_rag_stores: Dict[str, str] = {}

    def get(self, name: str) -> Optional[str]:
        return self.variables.get(name)

    def set(self, name: str, value: Any) -> None:
        self.variables[name] = value if isinstance(value, str) else str(value)


@dataclass
class DriveFileEvent:
    """Payload of drive-file-created / drive-file-updated events"""
    file_id: str
    file_name: str
    content: str
    md5_checksum: str = ""
    modified_time: str = ""

    def to_dict(self) -> Dict[str, str]:
        return {
            "fileId": self.file_id,
            "fileName": self.file_name,
            "content": self.content,
            "md5Checksum": self.md5_checksum,
            "modifiedTime": self.modified_time,
        }


@dataclass
class DialogResult:
    button: str
    selected: List[str] = field(default_factory=list)
    input: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {"button": self.button, "selected": self.selected, "input": self.input}


# (title, default_value, multiline) -> value or None when dismissed
PromptForValue = Callable[[str, str, bool], Awaitable[Optional[str]]]
# (title, message, options, multi_select, button1, button2) -> result or None
PromptForDialog = Callable[[str, str, List[str], bool, str, Optional[str]], Awaitable[Optional[DialogResult]]]


@dataclass
class PromptCallbacks:
    """Human-in-the-loop hooks. Either may be None when no UI is attached."""
    prompt_for_value: Optional[PromptForValue] = None
    prompt_for_dialog: Optional[PromptForDialog] = None


@dataclass
class ServiceContext:
    """
    Collaborators shared by all handlers of one run. Read-mostly: handlers
    report discoveries through HandlerResult, not by mutating settings.
    """
    file_store: FileStore
    root_folder_id: str
    history_folder_id: str = ""
    gemini_api_key: Optional[str] = None
    settings: Optional[UserSettings] = None
    llm: Optional[LLMProvider] = None
    rag: Optional[RagProvider] = None
    cancel_token: CancellationToken = field(default_factory=CancellationToken)
    edit_history: Optional[EditHistoryRecorder] = None
    sync_meta: Optional[RemoteSyncMetaStore] = None
    http_transport: Optional[httpx.AsyncBaseTransport] = None
    on_drive_file_created: Optional[Callable[[DriveFileEvent], None]] = None
    on_drive_file_updated: Optional[Callable[[DriveFileEvent], None]] = None
