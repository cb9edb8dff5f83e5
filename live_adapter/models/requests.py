from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, StrictBool, StrictInt, field_validator

from live_adapter.models.config import DEFAULT_MODEL


class Message(BaseModel):
    """Single conversation message from an OpenAI-style client."""

    model_config = ConfigDict(frozen=True)

    role: Literal["user", "assistant", "system"]
    content: str = Field(..., min_length=1)


class ChatRequest(BaseModel):
    """Body of ``POST /v1/chat/completions``. Unknown OpenAI fields are ignored."""

    model_config = ConfigDict(extra="ignore")

    model: str = Field(default=DEFAULT_MODEL, min_length=1)
    messages: list[Message] = Field(..., min_length=1)
    stream: StrictBool = False
    temperature: float | None = Field(default=None, ge=0, le=2)
    max_tokens: StrictInt | None = Field(default=None, gt=0)

    @field_validator("max_tokens", mode="before")
    @classmethod
    def integral_float_max_tokens(cls, value):
        # JSON clients may serialize 100 as 100.0
        if isinstance(value, float) and value.is_integer():
            return int(value)
        return value

    def generation_params(self) -> dict:
        """Generation settings the client actually sent, in backend naming."""
        params = {}
        if self.temperature is not None:
            params["temperature"] = self.temperature
        if self.max_tokens is not None:
            params["max_output_tokens"] = self.max_tokens
        return params
