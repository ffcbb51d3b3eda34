"""Wire models for the chat endpoint: conversation parts and stream events."""

from __future__ import annotations

from typing import Annotated, Any, Literal

from pydantic import BaseModel, Field


class TextPart(BaseModel):
    type: Literal["text"] = "text"
    text: str


class ToolInvocationPart(BaseModel):
    type: Literal["tool-invocation"] = "tool-invocation"
    tool_call_id: str
    tool_name: str
    state: Literal["pending", "completed"] = "pending"
    input: dict[str, Any] = Field(default_factory=dict)
    # ToolResult payload ({success, message, data?}) once completed.
    output: dict[str, Any] | None = None
    error_text: str | None = None


Part = Annotated[TextPart | ToolInvocationPart, Field(discriminator="type")]


class ConversationMessage(BaseModel):
    id: str
    role: Literal["user", "assistant"]
    parts: list[Part] = Field(default_factory=list)


class ChatRequest(BaseModel):
    messages: list[ConversationMessage]


class StartEvent(BaseModel):
    type: Literal["start"] = "start"
    message_id: str


class TextDeltaEvent(BaseModel):
    type: Literal["text-delta"] = "text-delta"
    delta: str


class ToolInputEvent(BaseModel):
    type: Literal["tool-input-available"] = "tool-input-available"
    tool_call_id: str
    tool_name: str
    input: dict[str, Any] = Field(default_factory=dict)


class ToolOutputEvent(BaseModel):
    type: Literal["tool-output-available"] = "tool-output-available"
    tool_call_id: str
    output: dict[str, Any]


class ToolErrorEvent(BaseModel):
    """Tool call rejected before execution (unknown tool or invalid input)."""

    type: Literal["tool-output-error"] = "tool-output-error"
    tool_call_id: str
    error_text: str


class ErrorEvent(BaseModel):
    type: Literal["error"] = "error"
    error_text: str


class FinishEvent(BaseModel):
    type: Literal["finish"] = "finish"


StreamEvent = Annotated[
    StartEvent
    | TextDeltaEvent
    | ToolInputEvent
    | ToolOutputEvent
    | ToolErrorEvent
    | ErrorEvent
    | FinishEvent,
    Field(discriminator="type"),
]
