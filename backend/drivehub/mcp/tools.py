# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
MCP tools exposed to the LLM.

Tools of every selected server are offered under a prefixed name,
mcp_<server>_<tool>, so two servers may publish the same tool name.
"""

import json
import logging
import re
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple

import httpx

from drivehub.core.errors import MCPError
from drivehub.llm.provider import ToolDefinition
from drivehub.mcp.client import McpClient
from drivehub.settings import McpServerConfig
from drivehub.workflow.models import McpAppInfo

logger = logging.getLogger(__name__)


@dataclass
class McpToolResult:
    text_result: str
    mcp_app: Optional[McpAppInfo] = None


def _slug(value: str) -> str:
    return re.sub(r"[^A-Za-z0-9_]", "_", value)


def mcp_tool_name(server: McpServerConfig, tool: str) -> str:
    return f"mcp_{_slug(server.name)}_{_slug(tool)}"


def extract_text(content: List[Dict[str, Any]]) -> str:
    """Text parts joined by newlines; JSON of the content when there are none"""
    parts = [c["text"] for c in content if c.get("type") == "text" and c.get("text")]
    if parts:
        return "\n".join(parts)
    return json.dumps(content, ensure_ascii=False)


async def get_mcp_tool_definitions(
    servers: List[McpServerConfig],
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> List[ToolDefinition]:
    """
    Collect tool definitions from every server.

    A server that fails to answer is skipped with a warning.
    """
    definitions: List[ToolDefinition] = []
    for server in servers:
        client = McpClient(server.name, server.url, server.headers, transport=transport)
        try:
            tools = await client.list_tools()
        except MCPError as e:
            logger.warning(f"Skipping MCP server {server.name}: {e.message}")
            continue
        finally:
            await client.close()

        for tool in tools:
            definitions.append(ToolDefinition(
                name=mcp_tool_name(server, tool["name"]),
                description=tool.get("description") or f"{tool['name']} ({server.name})",
                parameters=tool.get("inputSchema") or {"type": "object", "properties": {}},
            ))
    return definitions


def _resolve_tool(servers: List[McpServerConfig], name: str) -> Tuple[McpServerConfig, str]:
    for server in servers:
        prefix = f"mcp_{_slug(server.name)}_"
        if name.startswith(prefix):
            return server, name[len(prefix):]
    raise MCPError(f"Unknown MCP tool: {name}")


async def execute_mcp_tool(
    servers: List[McpServerConfig],
    name: str,
    args: Dict[str, Any],
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> McpToolResult:
    """Run a prefixed tool; UI-bearing results also return an McpAppInfo"""
    server, tool = _resolve_tool(servers, name)
    client = McpClient(server.name, server.url, server.headers, transport=transport)
    try:
        result = await client.call_tool(tool, args)
        content = result.get("content") or []
        resource_uri = ((result.get("_meta") or {}).get("ui") or {}).get("resourceUri")
        mcp_app = None
        if resource_uri:
            ui_resource = None
            try:
                ui_resource = await client.read_resource(resource_uri)
            except MCPError as e:
                logger.warning(f"UI resource {resource_uri} unavailable: {e.message}")
            mcp_app = McpAppInfo(
                server_url=server.url,
                server_headers=server.headers or None,
                tool_result={"content": content, "_meta": {"ui": {"resourceUri": resource_uri}}},
                ui_resource=ui_resource,
            )
        return McpToolResult(text_result=extract_text(content), mcp_app=mcp_app)
    finally:
        await client.close()
