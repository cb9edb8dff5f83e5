from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from live_adapter.core.errors import GatewayError
from live_adapter.core.live_session import GeminiLiveBackend
from live_adapter.models.config import SERVICE_NAME, AppConfig
from live_adapter.server.access import AccessControlMiddleware
from live_adapter.server.bridge import SessionBridge
from live_adapter.utils.config import get_config
from live_adapter.utils.logging import get_logger, setup_logging


logger = get_logger("app")


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Application lifespan manager."""
    config: AppConfig = app.state.config

    logger.info(f"Starting {SERVICE_NAME} on {config.server.host}:{config.server.port}")
    logger.info("Endpoints: POST /v1/chat/completions, GET /health")

    yield

    logger.info("Server stopped")


async def gateway_error_handler(request: Request, exc: GatewayError) -> JSONResponse:
    client_ip = getattr(request.state, "client_ip", "")
    logger.error(f"{exc.error_type} for {client_ip}: {exc.message}")
    return JSONResponse(exc.to_body(), status_code=exc.status_code)


def create_app(
    config: AppConfig | None = None,
    backend: GeminiLiveBackend | None = None,
) -> FastAPI:
    """Create and configure FastAPI application."""
    if config is None:
        config = get_config()

    setup_logging(config.server.log_level)

    app = FastAPI(
        title="Gemini Live OpenAI Adapter",
        description="OpenAI-compatible chat completions over the Gemini Live API",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.state.config = config
    app.state.bridge = SessionBridge(
        backend=backend or GeminiLiveBackend(),
        session_timeout_sec=config.backend.session_timeout_sec,
    )

    # Browser-based OpenAI clients; preflights still pass the access gate first
    if config.server.cors_origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=list(config.server.cors_origins),
            allow_methods=["*"],
            allow_headers=["*"],
        )
    # Added last so it wraps everything else
    app.add_middleware(AccessControlMiddleware, config=config.access)
    app.add_exception_handler(GatewayError, gateway_error_handler)

    # Import and include routers
    from live_adapter.api.routes import health
    from live_adapter.server.chat import router as chat_router

    app.include_router(health.router)
    app.include_router(chat_router)

    return app
