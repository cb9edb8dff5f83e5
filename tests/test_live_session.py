import asyncio
from contextlib import asynccontextmanager
from types import SimpleNamespace

import pytest
from google.genai import errors
from google.genai.live import AsyncSession

from fakes import HANG, FakeLiveConnection, FakeWebSocket, backend_close, connection_closed, hello_script
from live_adapter.core.errors import BackendError
from live_adapter.core.live_session import (
    BackendFailure,
    LiveSession,
    SessionClosed,
    SessionState,
    TextDelta,
    TurnComplete,
    is_connection_close,
)
from live_adapter.core.message_builder import build_final_turn
from live_adapter.models.requests import ChatRequest, Message
from live_adapter.server.bridge import SessionBridge


def _request() -> ChatRequest:
    return ChatRequest(model="gemini-live-test", messages=[Message(role="user", content="Say hello")])


def _text_frame(text: str) -> dict:
    return {"serverContent": {"modelTurn": {"role": "model", "parts": [{"text": text}]}}}


TURN_COMPLETE_FRAME = {"serverContent": {"turnComplete": True}}


class SdkSessionBackend:
    """Serves the SDK's real ``AsyncSession`` over a scripted websocket."""

    def __init__(self, frames, close=None):
        self.frames = frames
        self.close = close
        self.sockets: list[FakeWebSocket] = []

    @asynccontextmanager
    async def open_session(self, api_key, model, params):
        ws = FakeWebSocket(self.frames, self.close)
        self.sockets.append(ws)
        live = LiveSession(AsyncSession(api_client=SimpleNamespace(vertexai=False), websocket=ws))
        try:
            yield live
        finally:
            await live.close()


def test_is_connection_close():
    assert is_connection_close(connection_closed())
    assert is_connection_close(backend_close(1011, "internal"))
    assert not is_connection_close(errors.APIError(400, {"message": "bad request"}))
    assert not is_connection_close(RuntimeError("boom"))


def test_sdk_session_completes_turn():
    backend = SdkSessionBackend([_text_frame("Hel"), _text_frame("lo"), TURN_COMPLETE_FRAME])
    bridge = SessionBridge(backend, session_timeout_sec=5)

    completion = asyncio.run(bridge.complete(_request(), "key", ""))

    assert completion.choices[0].message.content == "Hello"
    ws = backend.sockets[0]
    assert len(ws.sent) == 1
    assert "client_content" in ws.sent[0]
    assert "Say hello" in str(ws.sent[0])
    assert ws.closed


def test_sdk_session_early_close_reports_closed_connection():
    backend = SdkSessionBackend([_text_frame("Hel")])
    bridge = SessionBridge(backend, session_timeout_sec=5)

    with pytest.raises(BackendError) as exc_info:
        asyncio.run(bridge.complete(_request(), "key", ""))

    assert exc_info.value.message == "connection closed before completion"
    assert backend.sockets[0].closed


def test_sdk_session_abnormal_close_reports_closed_connection():
    backend = SdkSessionBackend([], close=connection_closed(1011, "internal error"))
    bridge = SessionBridge(backend, session_timeout_sec=5)

    with pytest.raises(BackendError, match="connection closed before completion"):
        asyncio.run(bridge.complete(_request(), "key", ""))


def test_sdk_session_error_payload_keeps_backend_message():
    backend = SdkSessionBackend([{"code": 429, "message": "quota exceeded"}])
    bridge = SessionBridge(backend, session_timeout_sec=5)

    with pytest.raises(BackendError) as exc_info:
        asyncio.run(bridge.complete(_request(), "key", ""))

    assert "quota exceeded" in exc_info.value.message
    assert "connection closed" not in exc_info.value.message


def test_events_arrive_in_order_with_single_terminal_event():
    async def run():
        live = LiveSession(FakeLiveConnection(hello_script()))
        await live.send_turn(build_final_turn(_request().messages))
        events = [await live.next_event() for _ in range(3)]
        await live.close()
        return live, events

    live, events = asyncio.run(run())

    assert events == [TextDelta("Hel"), TextDelta("lo"), TurnComplete()]
    assert live.state == SessionState.CLOSED


def test_backend_close_event_and_failure_event():
    async def first_terminal(script):
        live = LiveSession(FakeLiveConnection(script))
        await live.send_turn(build_final_turn(_request().messages))
        event = await live.next_event()
        state = live.state
        await live.close()
        return event, state

    event, state = asyncio.run(first_terminal([backend_close()]))
    assert event == SessionClosed()
    assert state == SessionState.FAILED

    event, state = asyncio.run(first_terminal([RuntimeError("boom")]))
    assert event == BackendFailure("boom")
    assert state == SessionState.FAILED


def test_close_waits_for_receiver_task():
    connection = FakeLiveConnection([HANG])

    async def run():
        live = LiveSession(connection)
        await live.send_turn(build_final_turn(_request().messages))
        await asyncio.sleep(0)
        receiver = live._receiver
        await live.close()
        await live.close()
        return receiver

    receiver = asyncio.run(run())

    assert receiver.done()
    assert receiver.cancelled()
    assert connection.closed
