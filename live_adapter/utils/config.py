import json
import os
from collections.abc import Mapping
from pathlib import Path
from typing import Any

from dotenv import load_dotenv

from live_adapter.models.config import AppConfig


_config: AppConfig | None = None


def get_project_root() -> Path:
    """Get project root directory."""
    return Path(__file__).parent.parent.parent


def split_list(raw: str | None) -> list[str]:
    """Split a comma-separated setting, dropping blank entries."""
    if not raw:
        return []
    return [item.strip() for item in raw.split(",") if item.strip()]


def _env_overrides(environ: Mapping[str, str]) -> dict[str, dict[str, Any]]:
    overrides: dict[str, dict[str, Any]] = {"server": {}, "access": {}, "backend": {}}

    if environ.get("HOST"):
        overrides["server"]["host"] = environ["HOST"]
    if environ.get("PORT"):
        overrides["server"]["port"] = environ["PORT"]
    if environ.get("LOG_LEVEL"):
        overrides["server"]["log_level"] = environ["LOG_LEVEL"].upper()
    if "CORS_ORIGINS" in environ:
        overrides["server"]["cors_origins"] = split_list(environ["CORS_ORIGINS"])

    if "ALLOWED_IPS" in environ:
        overrides["access"]["allowed_ips"] = split_list(environ["ALLOWED_IPS"])
    if "TRUSTED_PROXY_IPS" in environ:
        overrides["access"]["trusted_proxy_ips"] = split_list(environ["TRUSTED_PROXY_IPS"])
    if "REVERSE_PROXY_MODE" in environ:
        # Anything other than an explicit "true" keeps the resolver on the transport peer
        overrides["access"]["reverse_proxy_mode"] = environ["REVERSE_PROXY_MODE"].strip().lower() == "true"

    if environ.get("DEFAULT_MODEL"):
        overrides["backend"]["default_model"] = environ["DEFAULT_MODEL"]
    if environ.get("SESSION_TIMEOUT_SEC"):
        overrides["backend"]["session_timeout_sec"] = environ["SESSION_TIMEOUT_SEC"]

    return overrides


def load_config(
    config_path: Path | None = None,
    environ: Mapping[str, str] | None = None,
) -> AppConfig:
    """Load configuration from an optional JSON file, then environment variables."""
    global _config

    if config_path is None:
        config_path = get_project_root() / "config.json"

    if environ is None:
        load_dotenv(get_project_root() / ".env")
        environ = os.environ

    data: dict[str, Any] = {}
    if config_path.exists():
        with open(config_path, "r", encoding="utf-8") as f:
            data = json.load(f)

    for section, values in _env_overrides(environ).items():
        data[section] = {**data.get(section, {}), **values}

    _config = AppConfig.model_validate(data)
    return _config


def get_config() -> AppConfig:
    """Get current configuration. Loads it on first use."""
    if _config is None:
        return load_config()
    return _config
