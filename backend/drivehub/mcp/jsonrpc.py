# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
JSON-RPC 2.0 framing for MCP over streamable HTTP.

Builds requests and notifications, splits server-sent event bodies into
messages, and unwraps results.
"""

import json
import logging
from typing import Any, Dict, Iterator, Optional

from drivehub.mcp.exceptions import MCPProtocolError

logger = logging.getLogger(__name__)

JSONRPC_VERSION = "2.0"


def rpc_request(request_id: int, method: str, params: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    message: Dict[str, Any] = {"jsonrpc": JSONRPC_VERSION, "id": request_id, "method": method}
    if params is not None:
        message["params"] = params
    return message


def rpc_notification(method: str) -> Dict[str, Any]:
    """Notifications carry no id and get no response"""
    return {"jsonrpc": JSONRPC_VERSION, "method": method}


def iter_sse_messages(text: str) -> Iterator[Dict[str, Any]]:
    """
    JSON payloads of a buffered event stream, in order.

    Multi-line `data:` fields are joined with newlines; an event ends at a
    blank line. Events whose data is not JSON are logged and skipped.
    """
    data_lines = []
    for raw_line in text.split("\n") + [""]:
        line = raw_line.rstrip("\r")
        if line.startswith("data:"):
            data_lines.append(line[5:].lstrip())
            continue
        if line or not data_lines:
            continue
        payload = "\n".join(data_lines)
        data_lines = []
        try:
            yield json.loads(payload)
        except json.JSONDecodeError as e:
            logger.warning(f"Skipping non-JSON event data: {e}")


def first_response(text: str, server_url: str) -> Dict[str, Any]:
    """
    The first response (result or error) in an event stream.

    Server-initiated notifications ahead of it are logged and dropped.

    Raises:
        MCPProtocolError: If the stream has no response
    """
    for message in iter_sse_messages(text):
        if "result" in message or "error" in message:
            return message
        if "method" in message:
            logger.info(f"Server notification from {server_url}: {message['method']}")
    raise MCPProtocolError("SSE stream ended without JSON-RPC response", server_url=server_url)


def unwrap_result(message: Dict[str, Any], method: str, server_url: str) -> Dict[str, Any]:
    """`result` of a response; an `error` member becomes MCPProtocolError"""
    error = message.get("error")
    if error is not None:
        code = error.get("code") if isinstance(error, dict) else None
        text = error.get("message", "Unknown error") if isinstance(error, dict) else str(error)
        raise MCPProtocolError(f"{method} error: {text}", server_url=server_url, code=code)
    return message.get("result") or {}
