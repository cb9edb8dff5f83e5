from pydantic import BaseModel, ConfigDict, Field


SERVICE_NAME = "gemini-live-openai-adapter"
DEFAULT_PORT = 3000
DEFAULT_MODEL = "gemini-live-2.5-flash-preview"


class ServerConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    host: str = "0.0.0.0"
    port: int = Field(default=DEFAULT_PORT, ge=1, le=65535)
    log_level: str = "INFO"
    cors_origins: tuple[str, ...] = ("*",)


class AccessConfig(BaseModel):
    """Allow-list and proxy trust settings, fixed for the process lifetime."""

    model_config = ConfigDict(frozen=True)

    allowed_ips: tuple[str, ...] = ()
    trusted_proxy_ips: frozenset[str] = frozenset()
    reverse_proxy_mode: bool = False


class BackendConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    default_model: str = DEFAULT_MODEL
    session_timeout_sec: float = Field(default=120, gt=0)


class AppConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    server: ServerConfig = Field(default_factory=ServerConfig)
    access: AccessConfig = Field(default_factory=AccessConfig)
    backend: BackendConfig = Field(default_factory=BackendConfig)
