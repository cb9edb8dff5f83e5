import asyncio
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager, suppress
from dataclasses import dataclass
from enum import Enum
from typing import Any

import websockets
from google import genai
from google.genai import errors, types

from live_adapter.utils.logging import get_logger


logger = get_logger("live")


class SessionState(str, Enum):
    OPENED = "opened"
    STREAMING = "streaming"
    COMPLETED = "completed"
    FAILED = "failed"
    CLOSED = "closed"


@dataclass(frozen=True)
class TextDelta:
    text: str


@dataclass(frozen=True)
class TurnComplete:
    pass


@dataclass(frozen=True)
class BackendFailure:
    message: str


@dataclass(frozen=True)
class SessionClosed:
    """Backend closed the connection without signalling turn completion."""


BackendEvent = TextDelta | TurnComplete | BackendFailure | SessionClosed


def is_connection_close(exc: BaseException) -> bool:
    """
    Whether ``exc`` reports the websocket closing rather than an error payload.

    The SDK re-raises ``ConnectionClosed`` from ``receive()`` as an ``APIError``
    carrying the close code and reason, chained to the original exception.
    """
    if isinstance(exc, websockets.ConnectionClosed):
        return True
    return isinstance(exc, errors.APIError) and isinstance(exc.__context__, websockets.ConnectionClosed)


class LiveSession:
    """
    Single-use wrapper around a Live API session.

    A receiver task turns SDK messages into ``BackendEvent`` values on a queue,
    in the order the backend produced them. Exactly one terminal event
    (``TurnComplete``, ``BackendFailure`` or ``SessionClosed``) ends the queue.
    """

    def __init__(self, session: Any):
        self._session = session
        self._events: asyncio.Queue[BackendEvent] = asyncio.Queue()
        self._receiver: asyncio.Task | None = None
        self.state = SessionState.OPENED

    async def send_turn(self, turn: types.Content) -> None:
        """Send the user's turn marked complete and start receiving."""
        await self._session.send_client_content(turns=turn, turn_complete=True)
        self.state = SessionState.STREAMING
        self._receiver = asyncio.create_task(self._receive())

    async def _receive(self) -> None:
        try:
            async for message in self._session.receive():
                text = message.text
                if text:
                    self._events.put_nowait(TextDelta(text))

                server_content = message.server_content
                if server_content is not None and server_content.turn_complete:
                    self._events.put_nowait(TurnComplete())
                    return

        except Exception as e:
            if is_connection_close(e):
                logger.warning(f"Live session closed by backend before turn completion: {e}")
                self._events.put_nowait(SessionClosed())
            else:
                logger.error(f"Live session error: {e}")
                self._events.put_nowait(BackendFailure(str(e) or "Live API error"))
            return

        self._events.put_nowait(SessionClosed())

    async def next_event(self) -> BackendEvent:
        """Wait for the next backend event."""
        event = await self._events.get()
        if isinstance(event, TurnComplete):
            self.state = SessionState.COMPLETED
        elif isinstance(event, (BackendFailure, SessionClosed)):
            self.state = SessionState.FAILED
        return event

    async def close(self) -> None:
        """Close the backend session. Safe to call more than once."""
        if self.state == SessionState.CLOSED:
            return
        self.state = SessionState.CLOSED

        if self._receiver is not None and not self._receiver.done():
            self._receiver.cancel()
            with suppress(asyncio.CancelledError):
                await self._receiver

        await self._session.close()


class GeminiLiveBackend:
    """Opens Gemini Live API sessions on behalf of a caller's API key."""

    def __init__(self, http_options: types.HttpOptions | None = None):
        self.http_options = http_options

    @staticmethod
    def build_connect_config(params: dict[str, Any]) -> types.LiveConnectConfig:
        """Text-only session config; generation settings only when given."""
        return types.LiveConnectConfig(
            response_modalities=[types.Modality.TEXT],
            **params,
        )

    @asynccontextmanager
    async def open_session(
        self,
        api_key: str,
        model: str,
        params: dict[str, Any],
    ) -> AsyncIterator[LiveSession]:
        client = genai.Client(api_key=api_key, http_options=self.http_options)
        config = self.build_connect_config(params)

        async with client.aio.live.connect(model=model, config=config) as session:
            logger.info(f"Live session opened: model={model}")
            live = LiveSession(session)
            try:
                yield live
            finally:
                await live.close()
                logger.info(f"Live session closed: model={model}")
