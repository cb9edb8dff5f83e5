import asyncio
import time
from collections.abc import AsyncIterator, Awaitable, Callable
from contextlib import AsyncExitStack, aclosing
from typing import TypeVar

from live_adapter.core.errors import BackendError, BackendTimeoutError, GatewayError, InternalError
from live_adapter.core.live_session import (
    BackendFailure,
    GeminiLiveBackend,
    LiveSession,
    SessionClosed,
    TextDelta,
    TurnComplete,
)
from live_adapter.core.message_builder import build_final_turn
from live_adapter.models.requests import ChatRequest
from live_adapter.models.responses import ChatCompletionResponse
from live_adapter.server.protocol import (
    DONE_FRAME,
    create_chunk,
    create_completion,
    create_final_chunk,
    format_sse,
    new_completion_id,
)
from live_adapter.utils.logging import get_logger


logger = get_logger("bridge")

T = TypeVar("T")


class SessionBridge:
    """
    Adapts one chat request to one single-use Live API session.

    The session is opened per request, fed only the final message, drained in
    event order, and closed as soon as the turn completes or fails.
    """

    def __init__(self, backend: GeminiLiveBackend, session_timeout_sec: float):
        self.backend = backend
        self.session_timeout_sec = session_timeout_sec

    async def _before(self, deadline: float, awaitable: Awaitable[T]) -> T:
        """Await ``awaitable``, giving up once the session deadline passes."""
        remaining = deadline - asyncio.get_running_loop().time()
        try:
            return await asyncio.wait_for(awaitable, max(remaining, 0))
        except asyncio.TimeoutError:
            raise BackendTimeoutError(self.session_timeout_sec) from None

    async def _drain(self, session: LiveSession, deadline: float) -> AsyncIterator[str]:
        """Yield text deltas until turn completion; raise on failure or timeout."""
        while True:
            event = await self._before(deadline, session.next_event())

            if isinstance(event, TextDelta):
                yield event.text
            elif isinstance(event, TurnComplete):
                return
            elif isinstance(event, BackendFailure):
                raise BackendError(event.message)
            elif isinstance(event, SessionClosed):
                raise BackendError("connection closed before completion")

    async def run(self, request: ChatRequest, api_key: str, client_ip: str = "") -> AsyncIterator[str]:
        """
        Open a live session for ``request`` and yield text deltas in arrival order.

        Args:
            request: Validated chat request
            api_key: Caller's backend API key, used for this session only
            client_ip: Resolved client address, for logging

        Raises:
            BackendError: Backend error event, early close, timeout or connect failure
        """
        params = request.generation_params()
        deadline = asyncio.get_running_loop().time() + self.session_timeout_sec
        try:
            async with AsyncExitStack() as stack:
                # One deadline covers connect, setup reply, send and the whole reply
                session = await self._before(
                    deadline,
                    stack.enter_async_context(self.backend.open_session(api_key, request.model, params)),
                )
                stack.push_async_callback(session.close)

                await self._before(deadline, session.send_turn(build_final_turn(request.messages)))
                async with aclosing(self._drain(session, deadline)) as deltas:
                    async for text in deltas:
                        yield text

        except GatewayError:
            raise
        except Exception as e:
            logger.error(f"Live session failed for {client_ip}: {e}")
            raise BackendError(str(e) or "Live API error") from e

    async def complete(self, request: ChatRequest, api_key: str, client_ip: str = "") -> ChatCompletionResponse:
        """Run the session to completion and return one JSON completion."""
        full_response: list[str] = []

        async with aclosing(self.run(request, api_key, client_ip)) as deltas:
            async for text in deltas:
                full_response.append(text)

        content = "".join(full_response)
        logger.info(f"Completion for {client_ip}: {len(content)} chars (non-streaming)")
        return create_completion(request.model, content)

    async def stream(
        self,
        request: ChatRequest,
        api_key: str,
        client_ip: str = "",
        is_disconnected: Callable[[], Awaitable[bool]] | None = None,
    ) -> AsyncIterator[str]:
        """
        Run the session and yield SSE frames.

        ``is_disconnected`` is polled after every chunk so a vanished client
        releases its backend session without waiting for the turn to finish.

        Headers are already sent once the first frame goes out, so failures are
        reported in-band as an error frame and the stream simply ends.
        """
        completion_id = new_completion_id()
        created = int(time.time())
        full_response: list[str] = []

        try:
            async with aclosing(self.run(request, api_key, client_ip)) as deltas:
                async for text in deltas:
                    full_response.append(text)
                    chunk = create_chunk(completion_id, created, request.model, text)
                    yield format_sse(chunk.model_dump())
                    if is_disconnected is not None and await is_disconnected():
                        logger.info(f"Client {client_ip} disconnected mid-stream, closing backend session")
                        return

            final_chunk = create_final_chunk(completion_id, created, request.model)
            yield format_sse(final_chunk.model_dump())
            yield DONE_FRAME
            logger.info(f"Completion for {client_ip}: {len(''.join(full_response))} chars (streaming)")

        except (asyncio.CancelledError, GeneratorExit):
            logger.info(f"Client {client_ip} disconnected mid-stream, backend session closed")
            raise

        except GatewayError as e:
            logger.error(f"Stream failed for {client_ip}: {e.message}")
            yield format_sse(e.to_body())

        except Exception as e:
            logger.exception(f"Unexpected stream error for {client_ip}: {e}")
            yield format_sse(InternalError().to_body())
