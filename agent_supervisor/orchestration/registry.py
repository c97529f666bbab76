"""Registry responsible for supervising a fleet of agents as a unit."""
from __future__ import annotations

import asyncio
import threading
from typing import Callable, Dict, List, Optional, Tuple

from agent_supervisor.agents.base import SupervisedAgent
from agent_supervisor.core.errors import DuplicateAgentError, UnknownAgentError
from agent_supervisor.core.events import EventEmitter, EventHandler, EventName
from agent_supervisor.core.log import StructuredLogger
from agent_supervisor.core.models import (
    AgentEvent,
    AgentEventType,
    AgentInfo,
    RegistryEventType,
    StartAllResult,
)

_FORWARDED_EVENTS: Tuple[Tuple[AgentEventType, RegistryEventType], ...] = (
    (AgentEventType.STARTED, RegistryEventType.AGENT_STARTED),
    (AgentEventType.STOPPED, RegistryEventType.AGENT_STOPPED),
    (AgentEventType.UNHEALTHY, RegistryEventType.AGENT_UNHEALTHY),
)


class AgentRegistry:
    """Keep agents by id and run bulk lifecycle operations with per-agent isolation."""

    def __init__(self, *, logger: Optional[StructuredLogger] = None) -> None:
        self._logger = logger or StructuredLogger(__name__, service="agent-registry")
        self._agents: Dict[str, SupervisedAgent] = {}
        self._forwarders: Dict[str, List[Tuple[AgentEventType, EventHandler]]] = {}
        self._events = EventEmitter(self._logger)
        self._lock = threading.Lock()

    def __len__(self) -> int:
        return len(self._agents)

    def __contains__(self, agent_id: object) -> bool:
        return agent_id in self._agents

    def subscribe(self, event: EventName, handler: EventHandler) -> None:
        self._events.subscribe(event, handler)

    def unsubscribe(self, event: EventName, handler: EventHandler) -> bool:
        return self._events.unsubscribe(event, handler)

    def register(self, agent: SupervisedAgent) -> None:
        """Add ``agent`` and forward its lifecycle events as registry events."""
        agent_id = agent.agent_id
        with self._lock:
            if agent_id in self._agents:
                raise DuplicateAgentError(agent_id)
            self._agents[agent_id] = agent
            forwarders = []
            for source, target in _FORWARDED_EVENTS:
                handler = self._forwarder(target)
                agent.subscribe(source, handler)
                forwarders.append((source, handler))
            self._forwarders[agent_id] = forwarders

        self._logger.info("Agent registered", {"agent_id": agent_id, "name": agent.config.name})

    def unregister(self, agent_id: str) -> None:
        """Remove an agent. The agent is not stopped; that is the caller's job."""
        with self._lock:
            agent = self._agents.pop(agent_id, None)
            if agent is None:
                raise UnknownAgentError(agent_id)
            for source, handler in self._forwarders.pop(agent_id, []):
                agent.unsubscribe(source, handler)

        self._logger.info("Agent unregistered", {"agent_id": agent_id})

    def get(self, agent_id: str) -> Optional[SupervisedAgent]:
        return self._agents.get(agent_id)

    def get_all(self) -> List[AgentInfo]:
        return [agent.get_info() for agent in self._snapshot()]

    def ids(self) -> List[str]:
        with self._lock:
            return list(self._agents)

    async def start_all(self) -> StartAllResult:
        """Start every agent concurrently; one failure never aborts the others."""
        agents = self._snapshot()
        outcomes = await asyncio.gather(
            *(agent.start() for agent in agents), return_exceptions=True
        )

        result = StartAllResult()
        for agent, outcome in zip(agents, outcomes):
            if isinstance(outcome, BaseException):
                self._logger.error(
                    "Failed to start agent", {"agent_id": agent.agent_id, "error": str(outcome)}
                )
                result.failed.append(agent.agent_id)
                result.errors[agent.agent_id] = str(outcome)
            else:
                result.successful.append(agent.agent_id)

        self._logger.info(
            "Agent startup completed",
            {
                "successful": len(result.successful),
                "failed": len(result.failed),
                "total": len(agents),
            },
        )
        return result

    async def stop_all(self) -> None:
        """Give every agent a best-effort stop; never raises."""
        agents = self._snapshot()
        outcomes = await asyncio.gather(
            *(agent.stop() for agent in agents), return_exceptions=True
        )
        for agent, outcome in zip(agents, outcomes):
            if isinstance(outcome, BaseException):
                self._logger.error(
                    "Failed to stop agent", {"agent_id": agent.agent_id, "error": str(outcome)}
                )
        self._logger.info("All agents stopped", {"count": len(agents)})

    def _snapshot(self) -> List[SupervisedAgent]:
        with self._lock:
            return list(self._agents.values())

    def _forwarder(self, target: RegistryEventType) -> Callable[[AgentEvent], None]:
        def forward(event: AgentEvent) -> None:
            self._events.emit(target, event)

        return forward
