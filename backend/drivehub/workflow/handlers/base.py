# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Shared helpers for node handlers.
"""

import json
import re
from typing import Any, Awaitable, Callable, Dict, Optional

from drivehub.drive.models import DriveFile
from drivehub.workflow.context import (
    DriveFileEvent,
    ExecutionContext,
    PromptCallbacks,
    ServiceContext,
)
from drivehub.workflow.exceptions import NodeExecutionError
from drivehub.workflow.models import HandlerResult, WorkflowNode
from drivehub.workflow.variables import has_unresolved, replace_variables

NodeHandler = Callable[
    [WorkflowNode, ExecutionContext, ServiceContext, PromptCallbacks],
    Awaitable[Optional[HandlerResult]],
]

# Leading {{var}} of a path property, used to find a picker's <var>_fileId
LEADING_VARIABLE = re.compile(r"^\{\{(\w+)\}\}")


def require(node: WorkflowNode, key: str) -> str:
    """Raw property value; raises when missing or blank"""
    value = node.properties.get(key, "")
    if not value.strip():
        raise NodeExecutionError(node.id, f"{node.type.value} node missing '{key}' property")
    return value


def resolve(node: WorkflowNode, key: str, context: ExecutionContext, default: str = "") -> str:
    """Property value with {{var}} placeholders substituted"""
    return replace_variables(node.properties.get(key, default), context)


def require_resolved(node: WorkflowNode, key: str, context: ExecutionContext) -> str:
    """
    Substituted value of a required property.

    Raises:
        NodeExecutionError: If the property is missing, resolves to blank, or
            still holds a {{var}} placeholder with no matching variable
    """
    value = replace_variables(require(node, key), context)
    if not value.strip():
        raise NodeExecutionError(node.id, f"{node.type.value} node '{key}' resolved to an empty value")
    if has_unresolved(value):
        raise NodeExecutionError(node.id, f"{node.type.value} node '{key}' has unresolved variables: {value}")
    return value


def is_enabled(value: Optional[str]) -> bool:
    """Flag properties are on when present and not "false" """
    return bool(value) and value != "false"


def parse_json_property(node: WorkflowNode, key: str, context: ExecutionContext, label: str) -> Dict[str, Any]:
    """Substitute then parse a JSON object property; empty means {}"""
    raw = node.properties.get(key, "")
    if not raw:
        return {}
    text = replace_variables(raw, context)
    try:
        value = json.loads(text)
    except json.JSONDecodeError:
        raise NodeExecutionError(node.id, f"Invalid JSON in {label}: {text}")
    if not isinstance(value, dict):
        raise NodeExecutionError(node.id, f"Invalid JSON in {label}: expected an object")
    return value


def picker_file_id(node: WorkflowNode, context: ExecutionContext, exact: bool = False) -> Optional[str]:
    """
    File id left by a drive-file picker in <var>_fileId when the path
    property starts with {{var}} (or is exactly {{var}} when `exact`).
    """
    raw = node.properties.get("path", "").strip()
    match = LEADING_VARIABLE.fullmatch(raw) if exact else LEADING_VARIABLE.match(raw)
    if not match:
        return None
    return context.get(f"{match.group(1)}_fileId") or None


async def find_drive_file(
    service_context: ServiceContext,
    name: str,
    md_fallback: bool = False,
) -> Optional[DriveFile]:
    """
    Locate a file by name: root folder search first, then exact name anywhere.

    With `md_fallback`, "<name>.md" is also accepted.
    """
    store = service_context.file_store
    candidates = {name, f"{name}.md"} if md_fallback else {name}

    matches = await store.search(service_context.root_folder_id, name)
    for file in matches:
        if file.name in candidates:
            return file

    file = await store.find_by_exact_name(name)
    if file is None and md_fallback and not name.endswith(".md"):
        file = await store.find_by_exact_name(f"{name}.md")
    return file


async def publish_drive_write(
    service_context: ServiceContext,
    file: DriveFile,
    content: str,
    created: bool,
) -> None:
    """Record the write in the remote sync meta and notify listeners"""
    if service_context.sync_meta is not None:
        await service_context.sync_meta.upsert_file(file)

    callback = service_context.on_drive_file_created if created else service_context.on_drive_file_updated
    if callback is not None:
        callback(DriveFileEvent(
            file_id=file.id,
            file_name=file.name,
            content=content,
            md5_checksum=file.md5_checksum or "",
            modified_time=file.modified_time or "",
        ))
