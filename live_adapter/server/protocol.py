import json
import time
import uuid

from pydantic import ValidationError as PydanticValidationError

from live_adapter.core.errors import ValidationError
from live_adapter.models.requests import ChatRequest
from live_adapter.models.responses import (
    AssistantMessage,
    ChatCompletionChunk,
    ChatCompletionResponse,
    ChunkChoice,
    CompletionChoice,
    TokenUsage,
)
from live_adapter.utils.logging import get_logger


logger = get_logger("protocol")

SSE_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",
}
DONE_FRAME = "data: [DONE]\n\n"


def format_validation_errors(error: PydanticValidationError) -> str:
    """Join pydantic errors into one client-facing message."""
    messages = []
    for item in error.errors():
        location = ".".join(str(part) for part in item["loc"])
        messages.append(f"{location}: {item['msg']}" if location else item["msg"])
    return ", ".join(messages)


def parse_chat_request(data: bytes | str, default_model: str | None = None) -> ChatRequest:
    """
    Deserialize and validate a chat completion request body.

    Args:
        data: Raw HTTP request body
        default_model: Model used when the body names none

    Returns:
        Validated ChatRequest

    Raises:
        ValidationError: If the body is not JSON or fails schema/range checks
    """
    try:
        parsed = json.loads(data)
    except json.JSONDecodeError as e:
        raise ValidationError(f"Invalid JSON body: {e.msg}") from e
    except UnicodeDecodeError as e:
        raise ValidationError("Request body must be UTF-8 encoded JSON") from e

    if not isinstance(parsed, dict):
        raise ValidationError("Request body must be a JSON object")

    if default_model and not parsed.get("model"):
        parsed["model"] = default_model

    try:
        return ChatRequest.model_validate(parsed)
    except PydanticValidationError as e:
        message = format_validation_errors(e)
        logger.debug(f"Rejected request body: {message}")
        raise ValidationError(message) from e


def new_completion_id() -> str:
    return f"chatcmpl-{uuid.uuid4().hex}"


def format_sse(payload: dict) -> str:
    """Encode one Server-Sent Events data frame."""
    return f"data: {json.dumps(payload, separators=(',', ':'))}\n\n"


def create_chunk(completion_id: str, created: int, model: str, content: str) -> ChatCompletionChunk:
    """Create streaming chunk carrying one text delta."""
    return ChatCompletionChunk(
        id=completion_id,
        created=created,
        model=model,
        choices=[ChunkChoice(delta={"content": content})],
    )


def create_final_chunk(completion_id: str, created: int, model: str) -> ChatCompletionChunk:
    """Create the terminal chunk: empty delta, finish reason ``stop``."""
    return ChatCompletionChunk(
        id=completion_id,
        created=created,
        model=model,
        choices=[ChunkChoice(delta={}, finish_reason="stop")],
    )


def create_completion(model: str, content: str) -> ChatCompletionResponse:
    """Create complete non-streaming response."""
    return ChatCompletionResponse(
        id=new_completion_id(),
        created=int(time.time()),
        model=model,
        choices=[CompletionChoice(message=AssistantMessage(content=content), finish_reason="stop")],
        usage=TokenUsage(),
    )
