import uvicorn

from live_adapter.server.app import create_app
from live_adapter.utils.config import get_config


def main() -> None:
    """Entry point for the Gemini Live OpenAI adapter."""
    config = get_config()

    app = create_app(config)

    uvicorn.run(
        app,
        host=config.server.host,
        port=config.server.port,
        # Forwarding headers are interpreted by the access-control middleware only
        proxy_headers=False,
        log_level=config.server.log_level.lower(),
    )


if __name__ == "__main__":
    main()
