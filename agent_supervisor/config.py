"""Configuration management for the supervisor host process."""
from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import List, Mapping, Optional, Tuple

from agent_supervisor.core.errors import EnvironmentValidationError
from agent_supervisor.core.log import StructuredLogger

logger = StructuredLogger(__name__, service="config")

ENVIRONMENTS = ("development", "production", "test")
LOG_LEVELS = ("debug", "info", "warning", "error")
SECRET_VARIABLES = ("API_KEY", "JWT_SECRET")
MIN_SECRET_LENGTH = 16


@dataclass(frozen=True)
class Config:
    """Application configuration loaded from environment variables."""

    port: int = 8000
    environment: str = "development"
    log_level: str = "info"
    log_json: bool = False
    allowed_origins: Tuple[str, ...] = ("http://localhost:3000",)
    heartbeat_interval: float = 30.0
    api_key: Optional[str] = field(default=None, repr=False)
    jwt_secret: Optional[str] = field(default=None, repr=False)

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> Config:
        """Load and validate configuration, collecting every problem before failing."""
        env = os.environ if environ is None else environ
        errors: List[str] = []
        defaults = cls()

        def read(name: str, default: str) -> str:
            raw = env.get(name, "").strip()
            if not raw:
                logger.warn("Using default value", {"name": name, "default": default})
                return default
            return raw

        environment = read("ENVIRONMENT", defaults.environment).lower()
        if environment not in ENVIRONMENTS:
            errors.append(f"Invalid value for ENVIRONMENT: {environment!r} (one of {', '.join(ENVIRONMENTS)})")

        log_level = read("LOG_LEVEL", defaults.log_level).lower()
        if log_level == "warn":
            log_level = "warning"
        if log_level not in LOG_LEVELS:
            errors.append(f"Invalid value for LOG_LEVEL: {log_level!r} (one of {', '.join(LOG_LEVELS)})")

        port = defaults.port
        raw_port = read("PORT", str(defaults.port))
        try:
            port = int(raw_port)
        except ValueError:
            errors.append(f"Invalid value for PORT: {raw_port!r} (HTTP server port)")
        else:
            if not 0 < port < 65536:
                errors.append(f"Invalid value for PORT: {raw_port!r} (HTTP server port)")

        origins = tuple(
            origin.strip()
            for origin in env.get("ALLOWED_ORIGINS", "").split(",")
            if origin.strip()
        ) or defaults.allowed_origins
        for origin in origins:
            if not origin.startswith(("http://", "https://")):
                errors.append(f"Invalid origin in ALLOWED_ORIGINS: {origin!r}")

        heartbeat_interval = defaults.heartbeat_interval
        raw_interval = env.get("HEARTBEAT_INTERVAL", "").strip()
        if raw_interval:
            try:
                heartbeat_interval = float(raw_interval)
            except ValueError:
                errors.append(f"Invalid value for HEARTBEAT_INTERVAL: {raw_interval!r}")
            else:
                if heartbeat_interval <= 0:
                    errors.append(f"Invalid value for HEARTBEAT_INTERVAL: {raw_interval!r} (must be positive)")

        log_json = env.get("LOG_JSON", "").strip().lower() in {"1", "true", "yes", "on"}

        secrets = {name: read_secret(name, errors, env) for name in SECRET_VARIABLES}

        if errors:
            raise EnvironmentValidationError(errors)

        return cls(
            port=port,
            environment=environment,
            log_level=log_level,
            log_json=log_json,
            allowed_origins=origins,
            heartbeat_interval=heartbeat_interval,
            api_key=secrets["API_KEY"],
            jwt_secret=secrets["JWT_SECRET"],
        )


def read_secret(name: str, errors: List[str], environ: Optional[Mapping[str, str]] = None) -> Optional[str]:
    """Read an optional secret, warning when it is short and rejecting placeholders."""
    env = os.environ if environ is None else environ
    value = env.get(name, "").strip()
    if not value:
        return None
    if len(value) < MIN_SECRET_LENGTH:
        logger.warn(
            f"{name} appears to be weak",
            {"name": name, "min_length": MIN_SECRET_LENGTH},
        )
    if value == f"your_{name.lower()}" or "example" in value:
        errors.append(f"{name} contains placeholder value - please set a real value")
    return value
