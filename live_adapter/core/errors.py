from live_adapter.models.responses import ErrorDetail, ErrorResponse


class GatewayError(Exception):
    """Base error rendered to clients as ``{"error": {"message", "type"}}``."""

    status_code: int = 500
    error_type: str = "server_error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_body(self) -> dict:
        return ErrorResponse(error=ErrorDetail(message=self.message, type=self.error_type)).model_dump()


class ValidationError(GatewayError):
    status_code = 400
    error_type = "invalid_request_error"


class AuthenticationError(GatewayError):
    status_code = 401
    error_type = "authentication_error"


class AccessDeniedError(GatewayError):
    status_code = 403
    error_type = "access_denied"

    def __init__(self, message: str = "Access denied: IP not allowed"):
        super().__init__(message)


class BackendError(GatewayError):
    """Live session failed, errored, or closed before the turn completed."""


class BackendTimeoutError(BackendError):
    def __init__(self, timeout_sec: float):
        super().__init__(f"backend did not complete within {timeout_sec:g} seconds")
        self.timeout_sec = timeout_sec


class InternalError(GatewayError):
    def __init__(self, message: str = "Internal server error"):
        super().__init__(message)
