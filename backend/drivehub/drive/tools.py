# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Drive tools exposed to the LLM during command nodes.
"""

import logging
from typing import Any, Dict, List

from drivehub.core.errors import DriveHubError
from drivehub.drive.store import FileStore
from drivehub.llm.provider import ToolDefinition

logger = logging.getLogger(__name__)


def _schema(properties: Dict[str, Any], required: List[str]) -> Dict[str, Any]:
    return {"type": "object", "properties": properties, "required": required}


DRIVE_TOOL_DEFINITIONS: List[ToolDefinition] = [
    ToolDefinition(
        name="read_drive_file",
        description="Read the text content of a Drive file by id",
        parameters=_schema({"fileId": {"type": "string"}}, ["fileId"]),
    ),
    ToolDefinition(
        name="search_drive_files",
        description="Search Drive files whose name contains the query",
        parameters=_schema({"query": {"type": "string"}}, ["query"]),
    ),
    ToolDefinition(
        name="list_drive_files",
        description="List files in the user's Drive folder",
        parameters=_schema({}, []),
    ),
    ToolDefinition(
        name="create_drive_file",
        description="Create a new text file in Drive",
        parameters=_schema(
            {"name": {"type": "string"}, "content": {"type": "string"}},
            ["name", "content"],
        ),
    ),
    ToolDefinition(
        name="update_drive_file",
        description="Replace the content of an existing Drive file",
        parameters=_schema(
            {"fileId": {"type": "string"}, "content": {"type": "string"}},
            ["fileId", "content"],
        ),
    ),
]

DRIVE_SEARCH_TOOL_NAMES = {"search_drive_files", "list_drive_files"}
DRIVE_TOOL_NAMES = {tool.name for tool in DRIVE_TOOL_DEFINITIONS}


def drive_tools_for_mode(mode: str) -> List[ToolDefinition]:
    """'all' -> every tool, 'noSearch' -> no search/list tools, anything else -> none"""
    if mode == "all":
        return list(DRIVE_TOOL_DEFINITIONS)
    if mode == "noSearch":
        return [t for t in DRIVE_TOOL_DEFINITIONS if t.name not in DRIVE_SEARCH_TOOL_NAMES]
    return []


async def execute_drive_tool(
    name: str,
    args: Dict[str, Any],
    file_store: FileStore,
    root_folder_id: str,
) -> Dict[str, Any]:
    """
    Run one Drive tool call.

    Failures are returned as {"error": ...} so the model can recover.
    """
    try:
        if name == "read_drive_file":
            file = await file_store.get_file(args["fileId"])
            return {"name": file.name, "content": await file_store.read(file.id)}
        if name == "search_drive_files":
            files = await file_store.search(root_folder_id, args.get("query", ""))
            return {"files": [{"id": f.id, "name": f.name} for f in files]}
        if name == "list_drive_files":
            files = await file_store.list_files(root_folder_id)
            return {"files": [{"id": f.id, "name": f.name} for f in files]}
        if name == "create_drive_file":
            file = await file_store.create(args["name"], args.get("content", ""), root_folder_id, "text/markdown")
            return {"id": file.id, "name": file.name}
        if name == "update_drive_file":
            file = await file_store.update(args["fileId"], args.get("content", ""))
            return {"id": file.id, "name": file.name}
    except KeyError as e:
        return {"error": f"Missing argument: {e.args[0]}"}
    except DriveHubError as e:
        logger.warning(f"Drive tool {name} failed: {e.message}")
        return {"error": e.message}
    return {"error": f"Unknown tool: {name}"}
