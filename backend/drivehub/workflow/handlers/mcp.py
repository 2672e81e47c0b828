# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
mcp node - call one tool on a remote MCP server
"""

import json
import logging
from typing import Optional

from drivehub.core.config import get_config
from drivehub.core.errors import MCPError
from drivehub.mcp.client import McpClient
from drivehub.mcp.tools import extract_text
from drivehub.workflow.context import ExecutionContext, PromptCallbacks, ServiceContext
from drivehub.workflow.exceptions import NodeExecutionError
from drivehub.workflow.handlers.base import parse_json_property, require_resolved
from drivehub.workflow.models import HandlerResult, McpAppInfo, WorkflowNode

logger = logging.getLogger(__name__)


async def handle_mcp_node(
    node: WorkflowNode,
    context: ExecutionContext,
    service_context: ServiceContext,
    prompt_callbacks: PromptCallbacks,
) -> Optional[HandlerResult]:
    """
    initialize -> tools/call -> resources/read (optional) -> close

    Properties:
        url: Required server endpoint
        tool: Required tool name
        args: JSON object of tool arguments
        headers: JSON object of HTTP headers (e.g. Authorization)
        saveTo: Variable receiving the text result
        saveUiTo: Variable receiving the UI resource JSON

    Returns:
        HandlerResult carrying an McpAppInfo when the tool exposes a UI resource
    """
    url = require_resolved(node, "url", context)
    tool = require_resolved(node, "tool", context)
    headers = parse_json_property(node, "headers", context, "MCP headers")
    args = parse_json_property(node, "args", context, "MCP args")

    config = get_config()
    client = McpClient(
        "workflow",
        url,
        headers,
        transport=service_context.http_transport,
        timeout_init=config.mcp_init_timeout,
    )
    try:
        try:
            await client.initialize()
            result = await client.call_tool(tool, args, timeout=config.mcp_call_timeout)
        except MCPError as e:
            raise NodeExecutionError(node.id, f"MCP tool '{tool}' failed: {e.message}")

        content = result.get("content") or []
        save_to = node.properties.get("saveTo")
        if save_to:
            context.set(save_to, extract_text(content))

        resource_uri = ((result.get("_meta") or {}).get("ui") or {}).get("resourceUri")
        if not resource_uri:
            return None

        ui_resource = None
        try:
            ui_resource = await client.read_resource(resource_uri)
        except MCPError as e:
            logger.warning(f"UI resource {resource_uri} unavailable: {e.message}")

        save_ui_to = node.properties.get("saveUiTo")
        if ui_resource and save_ui_to:
            context.set(save_ui_to, json.dumps({
                "serverUrl": url,
                "resourceUri": resource_uri,
                "mimeType": ui_resource.get("mimeType") or "text/html",
                "content": ui_resource.get("text") or ui_resource.get("blob") or "",
            }))

        app = McpAppInfo(
            server_url=url,
            server_headers=headers or None,
            tool_result={"content": content, "_meta": {"ui": {"resourceUri": resource_uri}}},
            ui_resource=ui_resource,
        )
        return HandlerResult(mcp_apps=[app])
    finally:
        await client.close()
