"""HTTP API exposing registry state and per-agent lifecycle controls."""
from __future__ import annotations

import time
from datetime import datetime
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException, Request, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from agent_supervisor.agents.base import SupervisedAgent
from agent_supervisor.core.errors import (
    InvalidStateTransitionError,
    ShutdownFailureError,
    StartupFailureError,
)
from agent_supervisor.core.models import AgentInfo, AgentState, HealthCheck, HealthStatus, utcnow
from agent_supervisor.orchestration.registry import AgentRegistry
from agent_supervisor.runtime import VERSION, get_registry

router = APIRouter(prefix="/agents", tags=["agents"])
health_router = APIRouter(tags=["health"])


def get_app_registry(request: Request) -> AgentRegistry:
    registry = request.app.state.registry
    if registry is None:
        registry = get_registry()
        request.app.state.registry = registry
    return registry


class HealthCheckResponse(BaseModel):
    status: str
    timestamp: datetime
    message: Optional[str] = None
    details: Optional[Dict[str, Any]] = None

    @classmethod
    def from_health(cls, health: HealthCheck) -> "HealthCheckResponse":
        return cls(
            status=health.status.value,
            timestamp=health.timestamp,
            message=health.message,
            details=health.details,
        )


class AgentResponse(BaseModel):
    id: str
    name: str
    state: str
    health: HealthCheckResponse
    started_at: Optional[datetime]
    last_seen: datetime
    metadata: Dict[str, Any]

    @classmethod
    def from_info(cls, info: AgentInfo) -> "AgentResponse":
        return cls(
            id=info.id,
            name=info.name,
            state=info.state.value,
            health=HealthCheckResponse.from_health(info.health),
            started_at=info.started_at,
            last_seen=info.last_seen,
            metadata=info.metadata,
        )


class AgentListResponse(BaseModel):
    agents: List[AgentResponse]
    timestamp: datetime
    correlation_id: Optional[str] = None


def _correlation_id(request: Request) -> Optional[str]:
    return getattr(request.state, "correlation_id", None)


def _require_agent(registry: AgentRegistry, agent_id: str) -> SupervisedAgent:
    agent = registry.get(agent_id)
    if agent is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Unknown agent")
    return agent


@health_router.get("/health")
async def health(request: Request, registry: AgentRegistry = Depends(get_app_registry)) -> JSONResponse:
    """Aggregate health: degraded (503) unless every agent reports healthy."""
    agents = registry.get_all()
    healthy = [info for info in agents if info.health.status is HealthStatus.HEALTHY]
    is_healthy = len(healthy) == len(agents)
    started = getattr(request.app.state, "started_monotonic", time.monotonic())
    body = {
        "status": "healthy" if is_healthy else "degraded",
        "timestamp": utcnow().isoformat(),
        "version": VERSION,
        "agents": {
            "total": len(agents),
            "healthy": len(healthy),
            "unhealthy": len(agents) - len(healthy),
        },
        "uptime": round(time.monotonic() - started, 3),
        "correlation_id": _correlation_id(request),
    }
    code = status.HTTP_200_OK if is_healthy else status.HTTP_503_SERVICE_UNAVAILABLE
    return JSONResponse(status_code=code, content=body)


@health_router.get("/ready")
async def ready(request: Request, registry: AgentRegistry = Depends(get_app_registry)) -> JSONResponse:
    """Ready (200) only when there is at least one agent and all are running."""
    agents = registry.get_all()
    running = [info for info in agents if info.state is AgentState.RUNNING]
    body: Dict[str, Any] = {
        "timestamp": utcnow().isoformat(),
        "correlation_id": _correlation_id(request),
    }
    if agents and len(running) == len(agents):
        body["status"] = "ready"
        return JSONResponse(status_code=status.HTTP_200_OK, content=body)
    body["status"] = "not-ready"
    body["message"] = "Not all agents are running"
    return JSONResponse(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, content=body)


@router.get("", response_model=AgentListResponse)
async def list_agents(
    request: Request, registry: AgentRegistry = Depends(get_app_registry)
) -> AgentListResponse:
    return AgentListResponse(
        agents=[AgentResponse.from_info(info) for info in registry.get_all()],
        timestamp=utcnow(),
        correlation_id=_correlation_id(request),
    )


@router.get("/{agent_id}", response_model=AgentResponse)
async def get_agent(agent_id: str, registry: AgentRegistry = Depends(get_app_registry)) -> AgentResponse:
    return AgentResponse.from_info(_require_agent(registry, agent_id).get_info())


@router.post("/{agent_id}/health", response_model=HealthCheckResponse)
async def check_agent_health(
    agent_id: str, registry: AgentRegistry = Depends(get_app_registry)
) -> HealthCheckResponse:
    agent = _require_agent(registry, agent_id)
    return HealthCheckResponse.from_health(await agent.check_health())


@router.post("/{agent_id}/start", response_model=AgentResponse)
async def start_agent(agent_id: str, registry: AgentRegistry = Depends(get_app_registry)) -> AgentResponse:
    agent = _require_agent(registry, agent_id)
    try:
        await agent.start()
    except InvalidStateTransitionError as exc:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc)) from exc
    except StartupFailureError as exc:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(exc)) from exc
    return AgentResponse.from_info(agent.get_info())


@router.post("/{agent_id}/stop", response_model=AgentResponse)
async def stop_agent(agent_id: str, registry: AgentRegistry = Depends(get_app_registry)) -> AgentResponse:
    agent = _require_agent(registry, agent_id)
    try:
        await agent.stop()
    except ShutdownFailureError as exc:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(exc)) from exc
    return AgentResponse.from_info(agent.get_info())
