# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
rag-sync node - upload one Drive file to a RAG store
"""

import json
from typing import Optional

from drivehub.sync.meta import utc_timestamp
from drivehub.workflow.context import ExecutionContext, PromptCallbacks, ServiceContext
from drivehub.workflow.exceptions import NodeExecutionError
from drivehub.workflow.handlers.base import find_drive_file, require_resolved
from drivehub.workflow.models import HandlerResult, WorkflowNode


async def handle_rag_sync_node(
    node: WorkflowNode,
    context: ExecutionContext,
    service_context: ServiceContext,
    prompt_callbacks: PromptCallbacks,
) -> Optional[HandlerResult]:
    """
    Upload the file at `path` to the store named by `ragSetting`.

    The store is created when missing and reported back as a discovered
    store so later command nodes in the same run can ground on it.
    """
    path = require_resolved(node, "path", context)
    rag_setting = require_resolved(node, "ragSetting", context)

    api_key = service_context.gemini_api_key
    if not api_key:
        raise NodeExecutionError(node.id, "Gemini API key not configured")
    if service_context.rag is None:
        raise NodeExecutionError(node.id, "RAG provider not configured")

    file = await find_drive_file(service_context, path, md_fallback=True)
    if file is None:
        raise NodeExecutionError(node.id, f"File not found on Drive: {path}")

    store_name = await service_context.rag.get_or_create_store(api_key, rag_setting)
    content = await service_context.file_store.read_bytes(file.id)
    document_id = await service_context.rag.upload_file(api_key, store_name, file.name, content)

    save_to = node.properties.get("saveTo")
    if save_to:
        context.set(save_to, json.dumps({
            "path": path,
            "ragSetting": rag_setting,
            "fileId": document_id or file.id,
            "mode": "upload",
            "syncedAt": utc_timestamp(),
        }))

    return HandlerResult(discovered_rag_stores={rag_setting: store_name})
