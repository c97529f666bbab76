"""Core data models shared across supervision components."""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class AgentState(str, Enum):
    """Lifecycle states for a supervised agent."""

    STOPPED = "stopped"
    STARTING = "starting"
    RUNNING = "running"
    STOPPING = "stopping"
    ERROR = "error"


class HealthStatus(str, Enum):
    """Self-reported health of an agent, independent of its lifecycle state."""

    HEALTHY = "healthy"
    UNHEALTHY = "unhealthy"
    DEGRADED = "degraded"
    UNKNOWN = "unknown"


class AgentEventType(str, Enum):
    """Events published by a supervised agent."""

    STARTED = "started"
    STOPPED = "stopped"
    UNHEALTHY = "unhealthy"
    STATE_CHANGED = "state_changed"


class RegistryEventType(str, Enum):
    """Events re-published by the registry on behalf of its agents."""

    AGENT_STARTED = "agent_started"
    AGENT_STOPPED = "agent_stopped"
    AGENT_UNHEALTHY = "agent_unhealthy"


@dataclass(frozen=True, slots=True)
class AgentConfig:
    """Immutable configuration supplied when constructing an agent.

    ``dependencies``, ``max_retries`` and ``timeout`` are informational: the
    supervisor exposes them but does not enforce ordering, retries or timeouts.
    """

    id: str
    name: str
    version: str
    enabled: bool = True
    dependencies: Tuple[str, ...] = ()
    health_check_interval: float = 30.0
    max_retries: int = 3
    timeout: float = 10.0


@dataclass(frozen=True, slots=True)
class HealthCheck:
    """Result of a single health check."""

    status: HealthStatus
    timestamp: datetime = field(default_factory=utcnow)
    message: Optional[str] = None
    details: Optional[Dict[str, Any]] = None

    @classmethod
    def unknown(cls, message: str = "No health check performed yet") -> HealthCheck:
        return cls(status=HealthStatus.UNKNOWN, message=message)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "status": self.status.value,
            "timestamp": self.timestamp.isoformat(),
            "message": self.message,
            "details": self.details,
        }


@dataclass(frozen=True, slots=True)
class AgentInfo:
    """Read-only snapshot of an agent returned to callers."""

    id: str
    name: str
    state: AgentState
    health: HealthCheck
    started_at: Optional[datetime]
    last_seen: datetime
    metadata: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True, slots=True)
class AgentEvent:
    """Payload delivered to event subscribers."""

    type: str
    agent_id: str
    correlation_id: str
    timestamp: datetime = field(default_factory=utcnow)
    data: Dict[str, Any] = field(default_factory=dict)


@dataclass(slots=True)
class StartAllResult:
    """Outcome of a registry-wide start attempt."""

    successful: List[str] = field(default_factory=list)
    failed: List[str] = field(default_factory=list)
    errors: Dict[str, str] = field(default_factory=dict)

    @property
    def all_started(self) -> bool:
        return not self.failed
