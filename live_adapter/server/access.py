from collections.abc import Collection, Sequence

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse

from live_adapter.core.cidr import in_range, unmap_ipv4
from live_adapter.core.client_ip import resolve_client_ip
from live_adapter.core.errors import AccessDeniedError
from live_adapter.models.config import AccessConfig
from live_adapter.utils.logging import get_logger


logger = get_logger("access")


def is_allowed(client_ip: str, allowed_ips: Sequence[str]) -> bool:
    """Match a client address against exact-IP and CIDR rules."""
    candidates = [client_ip]
    unmapped = unmap_ipv4(client_ip)
    if unmapped:
        candidates.append(unmapped)

    for candidate in candidates:
        if candidate in allowed_ips:
            return True
        for rule in allowed_ips:
            if "/" in rule and in_range(candidate, rule):
                return True
    return False


def authorize(client_ip: str, config: AccessConfig) -> None:
    """
    Allow or deny a resolved client address.

    An empty allow-list disables the check entirely.

    Raises:
        AccessDeniedError: If the address matches no configured rule
    """
    if not config.allowed_ips:
        return
    if is_allowed(client_ip, config.allowed_ips):
        return

    logger.warning(
        f"Access denied for IP: {client_ip or '<unknown>'} "
        f"(not in allowed list: {', '.join(config.allowed_ips)})"
    )
    raise AccessDeniedError()


class AccessControlMiddleware(BaseHTTPMiddleware):
    """Resolve the client address and reject it before any routing or body parsing."""

    def __init__(self, app, config: AccessConfig, exempt_paths: Collection[str] = ("/health",)):
        super().__init__(app)
        self.config = config
        self.exempt_paths = frozenset(exempt_paths)

        if config.allowed_ips:
            logger.info(f"IP allow-list enabled: {', '.join(config.allowed_ips)}")
        if config.reverse_proxy_mode:
            logger.info(f"Reverse proxy mode, trusted proxies: {', '.join(sorted(config.trusted_proxy_ips)) or '<none>'}")

    async def dispatch(self, request: Request, call_next):
        client_ip = resolve_client_ip(
            request.client.host if request.client else None,
            request.headers,
            self.config.reverse_proxy_mode,
            self.config.trusted_proxy_ips,
        )
        request.state.client_ip = client_ip

        if request.url.path not in self.exempt_paths:
            try:
                authorize(client_ip, self.config)
            except AccessDeniedError as e:
                return JSONResponse(e.to_body(), status_code=e.status_code)

        return await call_next(request)
