from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse, StreamingResponse

from live_adapter.core.errors import AuthenticationError, GatewayError, InternalError
from live_adapter.server.bridge import SessionBridge
from live_adapter.server.protocol import SSE_HEADERS, parse_chat_request
from live_adapter.utils.logging import get_logger


logger = get_logger("chat")
router = APIRouter(tags=["chat"])


def get_session_bridge(request: Request) -> SessionBridge:
    """Get the session bridge configured at startup."""
    return request.app.state.bridge


def get_client_ip(request: Request) -> str:
    """Client address resolved by the access-control middleware."""
    client_ip = getattr(request.state, "client_ip", None)
    if client_ip is not None:
        return client_ip
    return request.client.host if request.client else ""


def extract_api_key(authorization: str | None) -> str:
    """Pull the backend API key out of a ``Bearer`` Authorization header."""
    if not authorization:
        raise AuthenticationError("Missing Authorization header")

    scheme, _, token = authorization.partition(" ")
    token = token.strip()
    if scheme.lower() != "bearer" or not token:
        raise AuthenticationError("Authorization header must be 'Bearer <api key>'")
    return token


@router.post("/v1/chat/completions")
async def chat_completions(
    request: Request,
    bridge: SessionBridge = Depends(get_session_bridge),
):
    """OpenAI-compatible chat completions backed by a single-use live session."""
    client_ip = get_client_ip(request)

    try:
        api_key = extract_api_key(request.headers.get("authorization"))
        chat_request = parse_chat_request(
            await request.body(),
            default_model=request.app.state.config.backend.default_model,
        )
        logger.info(
            f"Request from {client_ip}: model={chat_request.model}, "
            f"stream={chat_request.stream}, messages={len(chat_request.messages)}"
        )

        if chat_request.stream:
            return StreamingResponse(
                bridge.stream(chat_request, api_key, client_ip, request.is_disconnected),
                media_type="text/event-stream",
                headers=SSE_HEADERS,
            )

        completion = await bridge.complete(chat_request, api_key, client_ip)
        return JSONResponse(completion.model_dump())

    except GatewayError:
        raise

    except Exception as e:
        logger.exception(f"Unexpected error for {client_ip}: {e}")
        raise InternalError() from e
