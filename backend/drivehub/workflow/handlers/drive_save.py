# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
drive-save node - persist a file held in a variable
"""

import binascii
from typing import Optional

from drivehub.drive.models import FileExplorerData
from drivehub.workflow.context import ExecutionContext, PromptCallbacks, ServiceContext
from drivehub.workflow.exceptions import NodeExecutionError
from drivehub.workflow.handlers.base import publish_drive_write, require, require_resolved
from drivehub.workflow.models import HandlerResult, WorkflowNode
from drivehub.workflow.variables import replace_variables


async def handle_drive_save_node(
    node: WorkflowNode,
    context: ExecutionContext,
    service_context: ServiceContext,
    prompt_callbacks: PromptCallbacks,
) -> Optional[HandlerResult]:
    """
    Save the file JSON found in `source` to Drive under `path`.

    `source` names a variable (optionally through {{...}}); when no such
    variable exists the resolved text itself is parsed. Binary content is
    base64 and is written as bytes. The stored name goes to `savePathTo`.
    """
    source_raw = require(node, "source")
    path = require_resolved(node, "path", context)

    resolved = replace_variables(source_raw, context)
    source_value = context.get(resolved)
    if source_value is None:
        source_value = resolved

    try:
        file_data = FileExplorerData.from_variable(source_value)
    except ValueError:
        raise NodeExecutionError(node.id, f"Variable '{source_raw}' does not contain valid file data JSON")

    file_name = path
    if "." not in file_name and file_data.extension:
        file_name = f"{file_name}.{file_data.extension}"

    store = service_context.file_store
    matches = await store.search(service_context.root_folder_id, file_name)
    existing = next((f for f in matches if f.name == file_name), None)

    binary = file_data.content_type == "binary"
    if binary:
        try:
            data = file_data.content_bytes()
        except binascii.Error:
            raise NodeExecutionError(node.id, f"Variable '{source_raw}' holds invalid base64 data")
        if existing:
            written = await store.update_binary(existing.id, data, file_data.mime_type)
        else:
            written = await store.create_binary(file_name, data, service_context.root_folder_id, file_data.mime_type)
    else:
        if existing:
            written = await store.update(existing.id, file_data.data, file_data.mime_type)
        else:
            written = await store.create(file_name, file_data.data, service_context.root_folder_id, file_data.mime_type)

    await publish_drive_write(service_context, written, "" if binary else file_data.data, created=existing is None)

    save_path_to = node.properties.get("savePathTo")
    if save_path_to:
        context.set(save_path_to, written.name)
    return None
