# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
MCP Client
Single-server MCP lifecycle over streamable HTTP:
initialize -> tools/list | tools/call -> resources/read -> close
"""

import json
import logging
from typing import Dict, Any, Optional, List

import httpx

from drivehub.mcp.exceptions import MCPInitializationError, MCPSessionExpiredError, MCPProtocolError
from drivehub.mcp.jsonrpc import first_response, rpc_notification, rpc_request, unwrap_result

logger = logging.getLogger(__name__)

PROTOCOL_VERSION = "2024-11-05"
CLIENT_INFO = {"name": "DriveHub", "version": "1.0.0"}


class McpClient:
    """
    One MCP server connection.

    Session state (`session_id`, negotiated `protocol_version`, server
    `capabilities`) is filled in by initialize() and cleared by close().

    Args:
        name: Display name used in logs
        url: Streamable HTTP endpoint
        headers: Extra headers sent on every request (e.g. Authorization)
        transport: Optional httpx transport (tests pass a MockTransport)
        timeout_init: Seconds allowed for the handshake
    """

    def __init__(
        self,
        name: str,
        url: str,
        headers: Optional[Dict[str, str]] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        timeout_init: float = 30.0,
    ):
        self.name = name
        self.url = url
        self.headers = dict(headers or {})
        self.timeout_init = timeout_init
        self.initialized = False
        self.session_id: Optional[str] = None
        self.protocol_version: Optional[str] = None
        self.capabilities: Dict[str, Any] = {}
        self._last_id = 0
        self._http = httpx.AsyncClient(transport=transport)

    def _headers(self) -> Dict[str, str]:
        headers = {
            "Accept": "application/json, text/event-stream",
            "Content-Type": "application/json",
            **self.headers,
        }
        if self.protocol_version:
            headers["MCP-Protocol-Version"] = self.protocol_version
        if self.session_id:
            headers["Mcp-Session-Id"] = self.session_id
        return headers

    def _message(self, method: str, params: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        self._last_id += 1
        return rpc_request(self._last_id, method, params)

    async def initialize(self) -> None:
        """
        Handshake: `initialize`, then the `notifications/initialized` notification.

        Raises:
            MCPInitializationError: On transport failure, non-200 status or
                a JSON-RPC error
        """
        logger.info(f"Initializing MCP session for {self.name} ({self.url})")
        message = self._message("initialize", {
            "protocolVersion": PROTOCOL_VERSION,
            "capabilities": {},
            "clientInfo": CLIENT_INFO,
        })
        try:
            response = await self._http.post(
                self.url, json=message, headers=self._headers(), timeout=self.timeout_init
            )
            if response.status_code != 200:
                raise MCPInitializationError(
                    f"Initialize failed with status {response.status_code}", server_url=self.url
                )
            try:
                result = unwrap_result(self._decode(response), "initialize", self.url)
            except MCPProtocolError as e:
                raise MCPInitializationError(e.message, server_url=self.url)

            self.session_id = response.headers.get("Mcp-Session-Id")
            self.protocol_version = result.get("protocolVersion") or PROTOCOL_VERSION
            self.capabilities = result.get("capabilities") or {}

            ack = await self._http.post(
                self.url,
                json=rpc_notification("notifications/initialized"),
                headers=self._headers(),
                timeout=self.timeout_init,
            )
            if ack.status_code != 202:
                logger.warning(f"Initialized notification returned {ack.status_code}")
        except httpx.TimeoutException:
            raise MCPInitializationError(f"Initialize timeout for {self.url}", server_url=self.url)
        except httpx.HTTPError as e:
            raise MCPInitializationError(f"Initialize failed: {e}", server_url=self.url)

        self.initialized = True
        logger.info(f"MCP session initialized for {self.name}")

    async def _call(self, method: str, params: Dict[str, Any], timeout: float) -> Dict[str, Any]:
        if not self.initialized:
            await self.initialize()
        try:
            response = await self._http.post(
                self.url, json=self._message(method, params), headers=self._headers(), timeout=timeout
            )
        except httpx.TimeoutException:
            raise MCPProtocolError(f"{method} timeout for {self.url}", server_url=self.url)
        except httpx.HTTPError as e:
            raise MCPProtocolError(f"{method} failed: {e}", server_url=self.url)

        if response.status_code == 404:
            raise MCPSessionExpiredError(self.url)
        if response.status_code >= 400:
            raise MCPProtocolError(f"{method} failed with status {response.status_code}", server_url=self.url)
        return unwrap_result(self._decode(response), method, self.url)

    async def list_tools(self, timeout: float = 10.0) -> List[Dict[str, Any]]:
        result = await self._call("tools/list", {}, timeout)
        return result.get("tools", [])

    async def call_tool(self, tool_name: str, arguments: Dict[str, Any], timeout: float = 60.0) -> Dict[str, Any]:
        """
        Call a tool and return the raw result.

        The result keeps `content` and any `_meta.ui.resourceUri` pointing at
        an MCP Apps UI resource.
        """
        return await self._call("tools/call", {"name": tool_name, "arguments": arguments}, timeout)

    async def read_resource(self, uri: str, timeout: float = 30.0) -> Optional[Dict[str, Any]]:
        """
        First entry of resources/read contents, or None when there are none.

        Raises:
            MCPProtocolError: If `contents` is not a list of objects
        """
        result = await self._call("resources/read", {"uri": uri}, timeout)
        contents = result.get("contents") or []
        if not isinstance(contents, list):
            raise MCPProtocolError(f"resources/read returned malformed contents for {uri}", server_url=self.url)
        if not contents:
            return None
        if not isinstance(contents[0], dict):
            raise MCPProtocolError(f"resources/read returned a non-object entry for {uri}", server_url=self.url)
        return contents[0]

    async def close(self) -> None:
        """Terminate the server session (DELETE) and release the HTTP client"""
        try:
            if self.session_id:
                try:
                    await self._http.delete(self.url, headers=self._headers(), timeout=5.0)
                except httpx.HTTPError as e:
                    logger.warning(f"Failed to close MCP session for {self.name}: {e}")
        finally:
            self.initialized = False
            self.session_id = None
            self.protocol_version = None
            await self._http.aclose()

    def _decode(self, response: httpx.Response) -> Dict[str, Any]:
        """A plain JSON body or the first response in an event stream"""
        if "text/event-stream" in response.headers.get("Content-Type", ""):
            return first_response(response.text, self.url)
        try:
            return response.json()
        except json.JSONDecodeError as e:
            raise MCPProtocolError(f"Invalid JSON-RPC response: {e}", server_url=self.url)
