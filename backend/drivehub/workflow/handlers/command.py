# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
command node - one LLM turn with optional Drive, MCP and RAG tools
"""

import logging
import time
from typing import Any, Dict, List, Optional

from drivehub.core.config import get_config
from drivehub.core.errors import MCPError
from drivehub.drive.models import FileExplorerData
from drivehub.drive.tools import DRIVE_TOOL_NAMES, drive_tools_for_mode, execute_drive_tool
from drivehub.llm.provider import (
    Attachment,
    ChatMessage,
    ChatOptions,
    StreamChunk,
    ToolDefinition,
    is_image_generation_model,
)
from drivehub.mcp.tools import execute_mcp_tool, get_mcp_tool_definitions
from drivehub.settings import select_mcp_servers
from drivehub.workflow.context import ExecutionContext, PromptCallbacks, ServiceContext
from drivehub.workflow.exceptions import NodeExecutionError
from drivehub.workflow.handlers.base import require_resolved, resolve
from drivehub.workflow.models import HandlerResult, LastCommandInfo, McpAppInfo, WorkflowNode

logger = logging.getLogger(__name__)

WEB_SEARCH_SETTING = "__websearch__"
NO_RAG_SETTING = "__none__"


def _resolve_model(node: WorkflowNode, context: ExecutionContext, service_context: ServiceContext) -> str:
    """node `model` -> settings.selected_model -> plan default"""
    if node.properties.get("model"):
        return resolve(node, "model", context)
    settings = service_context.settings
    if settings and settings.selected_model:
        return settings.selected_model
    return get_config().get_default_model(settings.api_plan if settings else "paid")


def _resolve_rag_store_ids(rag_setting: str, context: ExecutionContext, service_context: ServiceContext) -> Optional[List[str]]:
    if not rag_setting or rag_setting in (NO_RAG_SETTING, WEB_SEARCH_SETTING):
        return None
    discovered = context.discovered_rag_stores.get(rag_setting)
    if discovered:
        return [discovered]
    settings = service_context.settings
    if settings and rag_setting in settings.rag_settings:
        return settings.rag_settings[rag_setting].effective_store_ids() or None
    return None


def _collect_attachments(node: WorkflowNode, context: ExecutionContext) -> List[Attachment]:
    """Attachments from variables holding file JSON; other values are skipped"""
    attachments: List[Attachment] = []
    names = [n.strip() for n in resolve(node, "attachments", context).split(",") if n.strip()]
    for name in names:
        raw = context.get(name)
        if not raw:
            continue
        try:
            file_data = FileExplorerData.from_variable(raw)
        except ValueError:
            logger.debug(f"Variable {name} is not a file, skipping attachment")
            continue
        if not file_data.data or not file_data.mime_type:
            continue
        if file_data.mime_type.startswith("image/"):
            kind = "image"
        elif file_data.mime_type == "application/pdf":
            kind = "pdf"
        else:
            kind = "text"
        attachments.append(Attachment(
            name=file_data.basename or file_data.name or "file",
            type=kind,
            mime_type=file_data.mime_type,
            data=file_data.data,
        ))
    return attachments


def _raise_on_error(node: WorkflowNode, chunk: StreamChunk, fallback: str) -> None:
    if chunk.type == "error":
        raise NodeExecutionError(node.id, chunk.error or fallback)


def _store_response(node: WorkflowNode, context: ExecutionContext, prompt: str, response: str) -> None:
    save_to = node.properties.get("saveTo")
    if save_to:
        context.set(save_to, response)
        context.last_command_info = LastCommandInfo(node_id=node.id, original_prompt=prompt, save_to=save_to)


async def handle_command_node(
    node: WorkflowNode,
    context: ExecutionContext,
    service_context: ServiceContext,
    prompt_callbacks: PromptCallbacks,
) -> Optional[HandlerResult]:
    """
    Send the resolved prompt to the model and store the full response.

    Properties:
        prompt: Required user prompt
        model: Model override
        systemPrompt: Optional system instruction
        driveToolMode: "all" | "noSearch" | "none" (default)
        mcpServers: Comma-separated MCP server names from settings
        ragSetting: RAG setting name, "__websearch__" or "__none__"
        attachments: Comma-separated variables holding file JSON
        saveTo: Variable receiving the response text
        saveImageTo: Variable receiving a generated image (image models)

    Returns:
        HandlerResult with the model used and any MCP app results
    """
    prompt = require_resolved(node, "prompt", context)

    api_key = service_context.gemini_api_key
    if not api_key:
        raise NodeExecutionError(node.id, "Gemini API key not configured")
    if service_context.llm is None:
        raise NodeExecutionError(node.id, "LLM provider not configured")

    settings = service_context.settings
    token = service_context.cancel_token
    model = _resolve_model(node, context, service_context)

    messages = [ChatMessage(
        role="user",
        content=prompt,
        timestamp=time.time() * 1000,
        attachments=_collect_attachments(node, context),
    )]
    system_prompt = resolve(node, "systemPrompt", context) or None

    if is_image_generation_model(model):
        return await _run_image_generation(node, context, service_context, model, messages, system_prompt, prompt)

    rag_setting = node.properties.get("ragSetting", "")
    tools: List[ToolDefinition] = drive_tools_for_mode(node.properties.get("driveToolMode", "none"))
    drive_tool_names = {t.name for t in tools} & DRIVE_TOOL_NAMES

    mcp_servers = select_mcp_servers(node.properties.get("mcpServers"), settings.mcp_servers if settings else [])
    mcp_tool_names = set()
    if mcp_servers:
        try:
            mcp_tools = await get_mcp_tool_definitions(mcp_servers, service_context.http_transport)
        except MCPError as e:
            logger.error(f"Failed to get MCP tool definitions for command node {node.id}: {e.message}")
            mcp_tools = []
        tools.extend(mcp_tools)
        mcp_tool_names = {t.name for t in mcp_tools}

    collected_apps: List[McpAppInfo] = []

    async def execute_tool(name: str, args: Dict[str, Any]) -> Any:
        token.raise_if_cancelled()
        if name in drive_tool_names:
            return await execute_drive_tool(name, args, service_context.file_store, service_context.root_folder_id)
        if name in mcp_tool_names:
            result = await execute_mcp_tool(mcp_servers, name, args, service_context.http_transport)
            if result.mcp_app:
                collected_apps.append(result.mcp_app)
            return result.text_result
        return {"error": f"Unknown tool: {name}"}

    options = ChatOptions(
        web_search_enabled=rag_setting == WEB_SEARCH_SETTING,
        max_function_calls=(settings.max_function_calls if settings and settings.max_function_calls
                            else get_config().max_function_calls),
        cancel_token=token,
    )

    response = ""
    stream = service_context.llm.stream_chat(
        api_key,
        model,
        messages,
        tools=tools,
        system_prompt=system_prompt,
        tool_executor=execute_tool if tools else None,
        rag_store_ids=_resolve_rag_store_ids(rag_setting, context, service_context),
        options=options,
    )
    async for chunk in stream:
        token.raise_if_cancelled()
        _raise_on_error(node, chunk, "LLM error")
        if chunk.type == "text" and chunk.content:
            response += chunk.content
        elif chunk.type == "done":
            break

    _store_response(node, context, prompt, response)
    return HandlerResult(used_model=model, mcp_apps=collected_apps)


async def _run_image_generation(
    node: WorkflowNode,
    context: ExecutionContext,
    service_context: ServiceContext,
    model: str,
    messages: List[ChatMessage],
    system_prompt: Optional[str],
    prompt: str,
) -> HandlerResult:
    """Image models skip tools; generated images go to `saveImageTo`"""
    token = service_context.cancel_token
    save_image_to = node.properties.get("saveImageTo")
    response = ""

    stream = service_context.llm.generate_image_stream(
        service_context.gemini_api_key,
        model,
        messages,
        system_prompt=system_prompt,
        options=ChatOptions(cancel_token=token),
    )
    async for chunk in stream:
        token.raise_if_cancelled()
        _raise_on_error(node, chunk, "Image generation error")
        if chunk.type == "text" and chunk.content:
            response += chunk.content
        elif chunk.type == "image_generated" and chunk.generated_image and save_image_to:
            image = chunk.generated_image
            extension = "png" if image.mime_type == "image/png" else "jpg"
            context.set(save_image_to, FileExplorerData(
                path=f"generated.{extension}",
                basename=f"generated.{extension}",
                name="generated",
                extension=extension,
                mime_type=image.mime_type,
                content_type="binary",
                data=image.data,
            ).to_variable())
        elif chunk.type == "done":
            break

    _store_response(node, context, prompt, response)
    return HandlerResult(used_model=model)
