from google.genai import types

from live_adapter.models.requests import Message


# OpenAI names the model-authored role "assistant", the Live API calls it "model"
ROLE_MAP = {"assistant": "model"}


def to_live_turns(messages: list[Message]) -> list[types.Content]:
    """Convert OpenAI-style messages to Live API turns, preserving order."""
    return [
        types.Content(
            role=ROLE_MAP.get(message.role, message.role),
            parts=[types.Part(text=message.content)],
        )
        for message in messages
    ]


def build_final_turn(messages: list[Message]) -> types.Content:
    """
    Build the single turn transmitted to the backend.

    Each request opens a fresh single-turn session, so only the last message
    of the conversation is sent. Earlier turns are not replayed.

    Args:
        messages: Validated, non-empty conversation from the client

    Returns:
        Content for ``send_client_content(turns=..., turn_complete=True)``
    """
    return to_live_turns(messages)[-1]
