"""
kbchat - HTTP Request/Response Models
======================================
Pydantic bodies for the chat route.  JSON uses camelCase for
``threadId`` to match what browser clients already send.
"""

from __future__ import annotations

from typing import Literal

from langchain_core.messages import AIMessage, BaseMessage, HumanMessage, SystemMessage
from pydantic import BaseModel, ConfigDict, Field

from kbchat.src.core.runtime import ActionExecution

Role = Literal["system", "user", "assistant"]

_MESSAGE_TYPES: dict[str, type[BaseMessage]] = {
    "system": SystemMessage,
    "user": HumanMessage,
    "assistant": AIMessage,
}


class ChatMessage(BaseModel):
    role: Role = Field(..., description="Role of the message sender")
    content: str = Field(..., description="Message content")

    def to_langchain(self) -> BaseMessage:
        return _MESSAGE_TYPES[self.role](content=self.content)


class ChatRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    messages: list[ChatMessage] = Field(..., min_length=1, description="Full conversation history, oldest first")
    thread_id: str | None = Field(default=None, alias="threadId", description="Client conversation id; generated when omitted")


class ChatResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    thread_id: str = Field(..., alias="threadId")
    message: ChatMessage
    actions: list[ActionExecution] = Field(default_factory=list)


class HealthResponse(BaseModel):
    status: str = "healthy"
    indexing: Literal["pending", "running", "done", "failed", "disabled"]
