"""Gateway configuration with Pydantic models.

- Load from YAML file
- Override with environment variables
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Optional

import yaml
from pydantic import BaseModel, Field

from relay.config import RelayConfig, apply_env_overrides


class ServerConfig(BaseModel):
    """HTTP server configuration."""
    host: str = Field("0.0.0.0", description="Server bind address")
    port: int = Field(5000, description="Server port")


class CorsConfig(BaseModel):
    """CORS configuration."""
    origins: list[str] = Field(
        default_factory=lambda: ["http://localhost:3000"],
        description="Allowed origins for CORS",
    )
    allow_credentials: bool = Field(True, description="Allow credentials")


class LoggingConfig(BaseModel):
    """Logging configuration."""
    level: str = Field("INFO", description="Root log level")
    service_name: str = Field("chat-relay", description="Log stream name")


class AppConfig(BaseModel):
    """Application configuration."""
    server: ServerConfig = Field(default_factory=ServerConfig)
    cors: CorsConfig = Field(default_factory=CorsConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    relay: RelayConfig = Field(default_factory=RelayConfig)


def _default_config_path() -> Path:
    return Path(__file__).resolve().parents[2] / "config.yaml"


def load_config(path: Optional[Path | str] = None) -> AppConfig:
    """Load configuration from YAML file and environment variables.

    Environment variables take precedence over YAML values:
    - RELAY_CONFIG: Path of the YAML file (when ``path`` is not given)
    - HOST / PORT: HTTP bind address
    - CLIENT_URL: Extra allowed CORS origin
    - LOG_LEVEL: Root log level
    - READ_RECEIPT_DELAY_MS / TYPING_TIMEOUT_MS: see ``relay.config``
    """
    if path is None:
        path = os.environ.get("RELAY_CONFIG") or None
    config_path = Path(path) if path is not None else _default_config_path()

    if not config_path.is_file():
        config = AppConfig()
    else:
        with config_path.open("r", encoding="utf-8") as f:
            raw = yaml.safe_load(f) or {}
        if not isinstance(raw, dict):
            raise ValueError(f"Config at {config_path} must be a mapping.")
        config = AppConfig.model_validate(raw)

    # Environment variables override YAML config
    if host := os.environ.get("HOST"):
        config.server.host = host
    if port := os.environ.get("PORT"):
        config.server.port = int(port)
    if client_url := os.environ.get("CLIENT_URL"):
        if client_url not in config.cors.origins:
            config.cors.origins.append(client_url)
    if level := os.environ.get("LOG_LEVEL"):
        config.logging.level = level

    apply_env_overrides(config.relay)
    return config
