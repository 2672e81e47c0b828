# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Test doubles for the LLM, RAG and MCP collaborators.
"""

import json
from typing import Any, Dict, List, Optional, Tuple

import httpx

from drivehub.core.errors import ServiceUnavailableError
from drivehub.llm.provider import (
    ChatMessage,
    ChatOptions,
    GeneratedImage,
    LLMProvider,
    StreamChunk,
    ToolDefinition,
)
from drivehub.rag.provider import RagProvider, RagRegistration, calculate_checksum


class FakeLLM(LLMProvider):
    """
    Streams canned chunks. Tool calls listed in `tool_calls` are run through
    the handler's tool executor before streaming, results kept in order.
    """

    def __init__(
        self,
        chunks: Optional[List[StreamChunk]] = None,
        tool_calls: Optional[List[Tuple[str, Dict[str, Any]]]] = None,
    ):
        self.chunks = chunks if chunks is not None else [
            StreamChunk(type="text", content="Hello "),
            StreamChunk(type="text", content="world"),
            StreamChunk(type="done"),
        ]
        self.tool_calls = tool_calls or []
        self.tool_results: List[Any] = []
        self.calls: List[Dict[str, Any]] = []

    async def stream_chat(
        self,
        api_key: str,
        model: str,
        messages: List[ChatMessage],
        tools: Optional[List[ToolDefinition]] = None,
        system_prompt: Optional[str] = None,
        tool_executor=None,
        rag_store_ids: Optional[List[str]] = None,
        options: Optional[ChatOptions] = None,
    ):
        self.calls.append({
            "model": model,
            "messages": messages,
            "tools": [t.name for t in tools or []],
            "system_prompt": system_prompt,
            "rag_store_ids": rag_store_ids,
            "options": options,
        })
        if tool_executor is not None:
            for name, args in self.tool_calls:
                self.tool_results.append(await tool_executor(name, args))
        for chunk in self.chunks:
            yield chunk

    async def generate_image_stream(
        self,
        api_key: str,
        model: str,
        messages: List[ChatMessage],
        system_prompt: Optional[str] = None,
        options: Optional[ChatOptions] = None,
    ):
        self.calls.append({"model": model, "messages": messages, "image": True})
        yield StreamChunk(type="text", content="Here is your image")
        yield StreamChunk(
            type="image_generated",
            generated_image=GeneratedImage(mime_type="image/png", data="aW1hZ2U="),
        )
        yield StreamChunk(type="done")


class FakeRagProvider(RagProvider):
    """Records every store call; registration can be made to fail"""

    def __init__(self):
        self.stores: Dict[str, str] = {}
        self.uploads: List[Tuple[str, str, bytes]] = []
        self.registered: List[Tuple[str, str, bytes, Optional[str]]] = []
        self.deleted: List[str] = []
        self.fail_register = False
        self.refuse_delete = False

    async def get_or_create_store(self, api_key: str, display_name: str) -> str:
        name = f"fileSearchStores/{display_name}"
        self.stores[display_name] = name
        return name

    async def upload_file(self, api_key: str, store_name: str, file_name: str, content: bytes) -> Optional[str]:
        self.uploads.append((store_name, file_name, content))
        return f"doc-{len(self.uploads)}"

    async def register_file(
        self,
        api_key: str,
        store_name: str,
        file_name: str,
        content: bytes,
        existing_document_id: Optional[str] = None,
    ) -> RagRegistration:
        if self.fail_register:
            raise ServiceUnavailableError("RAG backend unavailable", service="rag")
        self.registered.append((store_name, file_name, content, existing_document_id))
        return RagRegistration(checksum=calculate_checksum(content), file_id=f"doc-{file_name}")

    async def delete_document(self, api_key: str, document_id: str) -> bool:
        self.deleted.append(document_id)
        return not self.refuse_delete


class FakeMcpServer:
    """
    Streamable-HTTP MCP server behind an httpx.MockTransport.

    Every request is recorded; the session is terminated by a DELETE.
    """

    def __init__(
        self,
        tools: Optional[List[Dict[str, Any]]] = None,
        call_result: Optional[Dict[str, Any]] = None,
        resource: Any = None,
        session_id: Optional[str] = "session-1",
        use_sse: bool = False,
        call_error: Optional[Dict[str, Any]] = None,
        call_status: int = 200,
    ):
        self.tools = tools or [{"name": "echo", "description": "Echo input", "inputSchema": {"type": "object"}}]
        self.call_result = call_result or {"content": [{"type": "text", "text": "ok"}]}
        self.resource = resource
        self.session_id = session_id
        self.use_sse = use_sse
        self.call_error = call_error
        self.call_status = call_status
        self.requests: List[httpx.Request] = []
        self.tool_calls: List[Dict[str, Any]] = []

    @property
    def methods(self) -> List[str]:
        """HTTP DELETEs as "DELETE", JSON-RPC posts as their method name"""
        names = []
        for request in self.requests:
            if request.method == "DELETE":
                names.append("DELETE")
            else:
                names.append(json.loads(request.content)["method"])
        return names

    def _reply(self, request_id: int, result: Dict[str, Any], headers: Optional[Dict[str, str]] = None) -> httpx.Response:
        message = {"jsonrpc": "2.0", "id": request_id, "result": result}
        if self.use_sse:
            body = f"event: message\ndata: {json.dumps(message)}\n\n"
            return httpx.Response(
                200,
                text=body,
                headers={"Content-Type": "text/event-stream", **(headers or {})},
            )
        return httpx.Response(200, json=message, headers=headers)

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if request.method == "DELETE":
            return httpx.Response(200)

        payload = json.loads(request.content)
        method = payload["method"]
        if method == "initialize":
            headers = {"Mcp-Session-Id": self.session_id} if self.session_id else None
            return self._reply(payload["id"], {"protocolVersion": "2024-11-05", "capabilities": {}}, headers)
        if method == "notifications/initialized":
            return httpx.Response(202)
        if method == "tools/list":
            return self._reply(payload["id"], {"tools": self.tools})
        if method == "tools/call":
            self.tool_calls.append(payload["params"])
            if self.call_status != 200:
                return httpx.Response(self.call_status, text="boom")
            if self.call_error:
                return httpx.Response(200, json={"jsonrpc": "2.0", "id": payload["id"], "error": self.call_error})
            return self._reply(payload["id"], self.call_result)
        if method == "resources/read":
            contents = [self.resource] if self.resource else []
            return self._reply(payload["id"], {"contents": contents})
        return httpx.Response(400, json={"error": f"unexpected method {method}"})

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)
