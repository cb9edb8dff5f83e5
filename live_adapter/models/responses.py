from typing import Literal

from pydantic import BaseModel, Field


# The live backend reports no token counts at response time
UNKNOWN_TOKENS = -1


class TokenUsage(BaseModel):
    """Sentinel usage block; not suitable for billing."""

    prompt_tokens: int = UNKNOWN_TOKENS
    completion_tokens: int = UNKNOWN_TOKENS
    total_tokens: int = UNKNOWN_TOKENS


class AssistantMessage(BaseModel):
    role: Literal["assistant"] = "assistant"
    content: str


class CompletionChoice(BaseModel):
    index: int = 0
    message: AssistantMessage
    finish_reason: str | None = "stop"


class ChatCompletionResponse(BaseModel):
    """Non-streaming completion returned as a single JSON object."""

    id: str
    object: Literal["chat.completion"] = "chat.completion"
    created: int
    model: str
    choices: list[CompletionChoice]
    usage: TokenUsage = Field(default_factory=TokenUsage)


class ChunkChoice(BaseModel):
    index: int = 0
    delta: dict[str, str] = Field(default_factory=dict)
    finish_reason: str | None = None


class ChatCompletionChunk(BaseModel):
    """Single SSE frame of a streaming completion."""

    id: str
    object: Literal["chat.completion.chunk"] = "chat.completion.chunk"
    created: int
    model: str
    choices: list[ChunkChoice]


class ErrorDetail(BaseModel):
    message: str
    type: str


class ErrorResponse(BaseModel):
    error: ErrorDetail


class HealthResponse(BaseModel):
    status: str = "ok"
    service: str
