"""FastAPI entry-point hosting the agent registry."""
from __future__ import annotations

import time
from contextlib import asynccontextmanager
from typing import Awaitable, Callable, Optional

import uvicorn
from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from agent_supervisor.api.routes import health_router
from agent_supervisor.api.routes import router as agents_router
from agent_supervisor.config import Config
from agent_supervisor.core.correlation import (
    CORRELATION_HEADER,
    create_correlation_id,
    extract_correlation_id,
    is_valid_correlation_id,
    set_correlation_id,
)
from agent_supervisor.core.log import configure_logging
from agent_supervisor.orchestration.registry import AgentRegistry
from agent_supervisor.runtime import VERSION, get_config, get_logger, get_registry


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Start every registered agent on startup and stop them all on shutdown."""
    config: Config = app.state.config
    configure_logging(config.log_level, json_output=config.log_json)
    logger = get_logger()
    if app.state.registry is None:
        app.state.registry = get_registry()
    registry: AgentRegistry = app.state.registry
    app.state.started_monotonic = time.monotonic()

    logger.info("Starting agent supervisor", {"port": config.port, "environment": config.environment})
    result = await registry.start_all()
    if result.failed:
        logger.warn("Some agents failed to start", {"failed": result.failed, "errors": result.errors})
    yield
    logger.info("Shutting down agent supervisor")
    await registry.stop_all()


def create_app(
    registry: Optional[AgentRegistry] = None,
    config: Optional[Config] = None,
) -> FastAPI:
    """Build the HTTP surface; ``registry`` defaults to the runtime's shared one."""
    config = config or get_config()
    application = FastAPI(title="Agent Supervisor", version=VERSION, lifespan=lifespan)
    application.state.config = config
    application.state.registry = registry
    application.state.started_monotonic = time.monotonic()

    application.add_middleware(
        CORSMiddleware,
        allow_origins=list(config.allowed_origins),
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE"],
        allow_headers=["Content-Type", "Authorization", CORRELATION_HEADER],
    )

    @application.middleware("http")
    async def correlation_middleware(
        request: Request, call_next: Callable[[Request], Awaitable[Response]]
    ) -> Response:
        incoming = extract_correlation_id(dict(request.headers))
        if incoming and is_valid_correlation_id(incoming):
            correlation_id = incoming
        else:
            correlation_id = create_correlation_id()
        set_correlation_id(correlation_id)
        request.state.correlation_id = correlation_id
        logger = get_logger()
        logger.info(
            "HTTP request received",
            {
                "method": request.method,
                "path": request.url.path,
                "user_agent": request.headers.get("user-agent"),
                "client_ip": request.client.host if request.client else None,
            },
        )
        try:
            response = await call_next(request)
        except Exception as exc:  # noqa: BLE001
            logger.error(
                "HTTP error occurred",
                {"error": str(exc), "path": request.url.path, "method": request.method},
            )
            response = JSONResponse(
                status_code=500,
                content={"error": "Internal Server Error", "correlation_id": correlation_id},
            )
        response.headers[CORRELATION_HEADER] = correlation_id
        return response

    application.include_router(health_router)
    application.include_router(agents_router)
    return application


app = create_app()


def serve() -> None:
    """Run the HTTP host with uvicorn on the configured port."""
    config = get_config()
    uvicorn.run("agent_supervisor.main:app", host="0.0.0.0", port=config.port, log_config=None)
