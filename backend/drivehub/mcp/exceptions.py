# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
MCP failure modes, all MCPError subclasses so the API maps them to 502.
"""

from typing import Optional

from drivehub.core.errors import MCPError


class MCPInitializationError(MCPError):
    """Handshake (initialize + initialized notification) failed"""


class MCPSessionExpiredError(MCPError):
    """The server no longer knows our Mcp-Session-Id (HTTP 404)"""

    def __init__(self, server_url: str):
        super().__init__(f"Session expired for {server_url}", server_url=server_url)


class MCPProtocolError(MCPError):
    """
    Transport failure, unreadable response or JSON-RPC error.

    `code` holds the JSON-RPC error code when the server sent one.
    """

    def __init__(self, message: str, server_url: Optional[str] = None, code: Optional[int] = None):
        details = {"code": code} if code is not None else None
        super().__init__(message, server_url=server_url, details=details)
        self.code = code
