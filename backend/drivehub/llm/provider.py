# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
LLM Provider Interface

Shapes consumed by the command handler: chat messages, tool definitions,
and the chunk stream a provider yields while generating.
"""

from abc import ABC, abstractmethod
from typing import Any, AsyncIterator, Awaitable, Callable, Dict, List, Literal, Optional
from pydantic import BaseModel, ConfigDict, Field

from drivehub.core.cancellation import CancellationToken
from drivehub.workflow.models import McpAppInfo

ChunkType = Literal[
    "text", "thinking", "tool_call", "tool_result", "error", "done",
    "rag_used", "web_search_used", "image_generated", "mcp_app",
]

# (tool name, arguments) -> JSON-serializable result
ToolExecutor = Callable[[str, Dict[str, Any]], Awaitable[Any]]


class GeneratedImage(BaseModel):
    mime_type: str
    data: str  # base64


class Attachment(BaseModel):
    name: str
    type: Literal["image", "pdf", "text"]
    mime_type: str
    data: str  # base64


class ToolCall(BaseModel):
    id: str
    name: str
    args: Dict[str, Any] = Field(default_factory=dict)


class ChatMessage(BaseModel):
    role: Literal["user", "assistant"]
    content: str
    timestamp: float = 0
    attachments: List[Attachment] = Field(default_factory=list)


class ToolDefinition(BaseModel):
    """Function declaration offered to the model"""
    name: str
    description: str
    parameters: Dict[str, Any] = Field(default_factory=lambda: {"type": "object", "properties": {}})


class StreamChunk(BaseModel):
    type: ChunkType
    content: Optional[str] = None
    error: Optional[str] = None
    tool_call: Optional[ToolCall] = None
    generated_image: Optional[GeneratedImage] = None
    mcp_app: Optional[McpAppInfo] = None
    rag_sources: List[str] = Field(default_factory=list)


class ChatOptions(BaseModel):
    """Per-call knobs that are not part of the conversation itself"""
    model_config = ConfigDict(arbitrary_types_allowed=True)

    web_search_enabled: bool = False
    max_function_calls: int = 20
    cancel_token: Optional[CancellationToken] = None


class LLMProvider(ABC):
    """Streaming chat client. Implementations honour options.cancel_token."""

    @abstractmethod
    def stream_chat(
        self,
        api_key: str,
        model: str,
        messages: List[ChatMessage],
        tools: Optional[List[ToolDefinition]] = None,
        system_prompt: Optional[str] = None,
        tool_executor: Optional[ToolExecutor] = None,
        rag_store_ids: Optional[List[str]] = None,
        options: Optional[ChatOptions] = None,
    ) -> AsyncIterator[StreamChunk]:
        """Yield chunks until a `done` or `error` chunk"""

    @abstractmethod
    def generate_image_stream(
        self,
        api_key: str,
        model: str,
        messages: List[ChatMessage],
        system_prompt: Optional[str] = None,
        options: Optional[ChatOptions] = None,
    ) -> AsyncIterator[StreamChunk]:
        """Yield `image_generated` chunks (and optional text) for image models"""


def is_image_generation_model(model: str) -> bool:
    """Image models take a separate generation path with no tools"""
    return "image" in model.lower()
