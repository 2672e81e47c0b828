# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
drive-file / drive-read nodes
"""

import logging
import re
from typing import Optional

from drivehub.core.errors import DriveHubError
from drivehub.drive.models import DriveFile
from drivehub.workflow.context import ExecutionContext, PromptCallbacks, ServiceContext
from drivehub.workflow.exceptions import NodeExecutionError
from drivehub.workflow.handlers.base import (
    find_drive_file,
    is_enabled,
    picker_file_id,
    publish_drive_write,
    require,
    require_resolved,
    resolve,
)
from drivehub.workflow.models import HandlerResult, WorkflowNode

logger = logging.getLogger(__name__)

# Bare Drive file ids are long runs of id characters
DRIVE_FILE_ID_PATTERN = re.compile(r"^[A-Za-z0-9_-]{20,}$")

WRITE_MODES = ("overwrite", "create", "append")


def with_default_extension(path: str) -> str:
    """Append .md only when the last path segment has no extension"""
    base_name = path.rsplit("/", 1)[-1]
    return path if "." in base_name else f"{path}.md"


async def handle_drive_file_node(
    node: WorkflowNode,
    context: ExecutionContext,
    service_context: ServiceContext,
    prompt_callbacks: PromptCallbacks,
) -> Optional[HandlerResult]:
    """
    Write `content` to a Drive file.

    Properties:
        path: Required file name; ".md" is added when it has no extension
        content: Text to write
        mode: "overwrite" (default), "create" (skip if the file exists) or "append"
        confirm: Ask the user before writing; a cancel skips the write
        history: Record a remote edit-history entry
    """
    path = require_resolved(node, "path", context)
    content = resolve(node, "content", context)
    mode = node.properties.get("mode") or "overwrite"
    if mode not in WRITE_MODES:
        raise NodeExecutionError(node.id, f"Unknown drive-file mode: {mode}")

    if is_enabled(node.properties.get("confirm")) and prompt_callbacks.prompt_for_dialog:
        answer = await prompt_callbacks.prompt_for_dialog(
            "Confirm Write", f'Write to "{path}"?', [], False, "OK", "Cancel"
        )
        if answer is None or answer.button == "Cancel":
            logger.info(f"Write to {path} skipped by user")
            return None

    store = service_context.file_store
    file_name = with_default_extension(path)

    existing: Optional[DriveFile] = None
    picked_id = picker_file_id(node, context)
    if picked_id:
        existing = await store.get_file(picked_id)
    if existing is None:
        existing = await find_drive_file(service_context, file_name)

    record_history = is_enabled(node.properties.get("history")) and service_context.edit_history is not None
    old_content = ""
    if existing and (record_history or mode == "append"):
        old_content = await store.read(existing.id)

    if mode == "create" and existing:
        logger.info(f"{file_name} already exists, create skipped")
        return None

    final_content = content
    if existing:
        if mode == "append":
            final_content = old_content + "\n" + content
        written = await store.update(existing.id, final_content, "text/markdown")
    else:
        written = await store.create(file_name, content, service_context.root_folder_id, "text/markdown")

    if record_history:
        try:
            await service_context.edit_history.save_edit(written.name, old_content, final_content, source="workflow")
        except DriveHubError as e:
            logger.warning(f"Edit history for {written.name} not recorded: {e.message}")

    await publish_drive_write(service_context, written, final_content, created=existing is None)
    return None


async def handle_drive_read_node(
    node: WorkflowNode,
    context: ExecutionContext,
    service_context: ServiceContext,
    prompt_callbacks: PromptCallbacks,
) -> Optional[HandlerResult]:
    """Read a Drive file (by id, picker variable or name) into `saveTo`"""
    save_to = require(node, "saveTo")
    path = require_resolved(node, "path", context)
    store = service_context.file_store

    if DRIVE_FILE_ID_PATTERN.match(path):
        context.set(save_to, await store.read(path))
        return None

    picked_id = picker_file_id(node, context, exact=True)
    if picked_id:
        context.set(save_to, await store.read(picked_id))
        return None

    file = await find_drive_file(service_context, path, md_fallback=True)
    if file is None:
        raise NodeExecutionError(node.id, f"File not found on Drive: {path}")

    context.set(save_to, await store.read(file.id))
    return None
