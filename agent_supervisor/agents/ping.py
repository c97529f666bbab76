"""Minimal agent used by the hosting process and the demo."""
from __future__ import annotations

from typing import Optional

from agent_supervisor.agents.base import SupervisedAgent
from agent_supervisor.core.models import HealthCheck, HealthStatus, utcnow


class PingAgent(SupervisedAgent):
    """Agent that counts its own heartbeats to demonstrate lifecycle control."""

    _booted_at: Optional[str] = None
    _beats: int = 0

    async def on_start(self) -> None:
        self._booted_at = utcnow().isoformat()
        self._beats = 0

    async def on_stop(self) -> None:
        self._booted_at = None

    async def perform_health_check(self) -> HealthCheck:
        if self._booted_at is None:
            return HealthCheck(status=HealthStatus.UNHEALTHY, message="agent not running")
        self._beats += 1
        return HealthCheck(
            status=HealthStatus.HEALTHY,
            message=f"{self.config.name} is alive",
            details={"beats": self._beats, "booted_at": self._booted_at},
        )
