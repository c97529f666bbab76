"""Base supervised agent: lifecycle state machine plus scheduled health checks."""
from __future__ import annotations

import abc
import asyncio
from datetime import datetime
from typing import Any, Callable, Dict, Mapping, Optional, Union

from agent_supervisor.core.correlation import create_correlation_id
from agent_supervisor.core.errors import (
    InvalidStateTransitionError,
    ShutdownFailureError,
    StartupFailureError,
)
from agent_supervisor.core.events import EventEmitter, EventHandler, EventName
from agent_supervisor.core.log import PerformanceLogger, StructuredLogger
from agent_supervisor.core.models import (
    AgentConfig,
    AgentEvent,
    AgentEventType,
    AgentInfo,
    AgentState,
    HealthCheck,
    HealthStatus,
    utcnow,
)
from agent_supervisor.core.validation import validate_agent_config


class SupervisedAgent(abc.ABC):
    """Abstract agent whose lifecycle is driven by the supervisor.

    Concrete agents implement ``on_start``, ``on_stop`` and
    ``perform_health_check``. Everything else (state transitions, the
    health-check timer, event publication) lives here.
    """

    def __init__(
        self,
        config: Union[AgentConfig, Mapping[str, Any]],
        *,
        logger: Optional[StructuredLogger] = None,
        correlation_id_factory: Callable[[], str] = create_correlation_id,
    ) -> None:
        self._config = validate_agent_config(config)
        self._logger = logger or StructuredLogger(
            f"agent_supervisor.agents.{self._config.id}",
            service=f"agent-{self._config.name}",
            agent_id=self._config.id,
        )
        self._new_correlation_id = correlation_id_factory
        self._events = EventEmitter(self._logger)
        self._state = AgentState.STOPPED
        self._transition_lock = asyncio.Lock()
        self._started_at: Optional[datetime] = None
        self._last_health: Optional[HealthCheck] = None
        self._health_timer: Optional[asyncio.Task[None]] = None
        self._scheduled_check: Optional[asyncio.Task[HealthCheck]] = None

    @property
    def agent_id(self) -> str:
        return self._config.id

    @property
    def config(self) -> AgentConfig:
        return self._config

    @property
    def state(self) -> AgentState:
        return self._state

    @property
    def logger(self) -> StructuredLogger:
        return self._logger

    def subscribe(self, event: EventName, handler: EventHandler) -> None:
        self._events.subscribe(event, handler)

    def unsubscribe(self, event: EventName, handler: EventHandler) -> bool:
        return self._events.unsubscribe(event, handler)

    async def start(self) -> None:
        """Start the agent and begin health monitoring.

        Raises ``InvalidStateTransitionError`` unless the agent is ``stopped``
        and ``StartupFailureError`` if ``on_start`` fails, in which case the
        agent is left in ``error`` until a caller stops it.
        """
        if self._state is not AgentState.STOPPED:
            raise InvalidStateTransitionError(self.agent_id, self._state, "start")

        async with self._transition_lock:
            if self._state is not AgentState.STOPPED:
                raise InvalidStateTransitionError(self.agent_id, self._state, "start")

            self._set_state(AgentState.STARTING)
            self._started_at = utcnow()
            self._logger.info("Starting agent")
            timer = PerformanceLogger(self._logger, "agent_start")
            try:
                await self.on_start()
            except Exception as exc:  # noqa: BLE001
                timer.fail(exc)
                self._set_state(AgentState.ERROR)
                self._logger.error("Failed to start agent", {"error": str(exc)})
                raise StartupFailureError(self.agent_id, exc) from exc

            timer.complete()
            self._set_state(AgentState.RUNNING)
            self._start_health_monitoring()
            self._emit(AgentEventType.STARTED)
            self._logger.info("Agent started successfully")

    async def stop(self) -> None:
        """Stop the agent gracefully. Stopping a stopped agent is a no-op."""
        if self._state in (AgentState.STOPPED, AgentState.STOPPING):
            return

        async with self._transition_lock:
            # A start() may have been in flight while we waited for the lock.
            if self._state in (AgentState.STOPPED, AgentState.STOPPING):
                return

            self._set_state(AgentState.STOPPING)
            self._logger.info("Stopping agent")
            await self._stop_health_monitoring()
            timer = PerformanceLogger(self._logger, "agent_stop")
            try:
                await self.on_stop()
            except Exception as exc:  # noqa: BLE001
                timer.fail(exc)
                self._set_state(AgentState.ERROR)
                self._logger.error("Failed to stop agent gracefully", {"error": str(exc)})
                raise ShutdownFailureError(self.agent_id, exc) from exc

            timer.complete()
            self._set_state(AgentState.STOPPED)
            self._emit(AgentEventType.STOPPED)
            self._logger.info("Agent stopped successfully")

    async def check_health(self) -> HealthCheck:
        """Run ``perform_health_check`` and cache the result.

        Never raises for hook failures: an exception becomes an ``unhealthy``
        result so a flaky hook cannot take down the supervisor. So does a
        hook that returns anything other than a ``HealthCheck``.
        """
        timer = PerformanceLogger(self._logger, "health_check")
        try:
            health = await self.perform_health_check()
            if not isinstance(health, HealthCheck):
                raise TypeError(
                    f"perform_health_check returned {type(health).__name__}, expected HealthCheck"
                )
        except Exception as exc:  # noqa: BLE001
            timer.fail(exc)
            health = HealthCheck(
                status=HealthStatus.UNHEALTHY,
                message=str(exc) or "Health check failed",
                details={"error": repr(exc)},
            )
            self._last_health = health
            self._logger.error("Health check threw error", {"error": str(exc)})
            self._emit(AgentEventType.UNHEALTHY, health.to_dict())
            return health

        timer.complete({"status": health.status.value})
        self._last_health = health
        if health.status is HealthStatus.UNHEALTHY:
            self._logger.warn(
                "Agent health check failed",
                {"status": health.status.value, "message": health.message},
            )
            self._emit(AgentEventType.UNHEALTHY, health.to_dict())
        return health

    def get_info(self) -> AgentInfo:
        now = utcnow()
        uptime_ms = 0
        if self._started_at is not None:
            uptime_ms = int((now - self._started_at).total_seconds() * 1000)
        return AgentInfo(
            id=self._config.id,
            name=self._config.name,
            state=self._state,
            health=self._last_health or HealthCheck.unknown(),
            started_at=self._started_at,
            last_seen=now,
            metadata={
                "version": self._config.version,
                "dependencies": list(self._config.dependencies),
                "uptime_ms": uptime_ms,
            },
        )

    @abc.abstractmethod
    async def on_start(self) -> None:
        """Hook executed while the agent is ``starting``."""

    @abc.abstractmethod
    async def on_stop(self) -> None:
        """Hook executed while the agent is ``stopping``, after health checks are cancelled."""

    @abc.abstractmethod
    async def perform_health_check(self) -> HealthCheck:
        """Probe the agent and report its health."""

    def _set_state(self, new_state: AgentState) -> None:
        old_state = self._state
        self._state = new_state
        self._logger.debug(
            "Agent state changed", {"from": old_state.value, "to": new_state.value}
        )
        self._emit(
            AgentEventType.STATE_CHANGED,
            {"old_state": old_state, "new_state": new_state, "timestamp": utcnow()},
        )

    def _emit(self, event: AgentEventType, data: Optional[Dict[str, Any]] = None) -> None:
        payload = AgentEvent(
            type=event.value,
            agent_id=self.agent_id,
            correlation_id=self._new_correlation_id(),
            data=dict(data or {}),
        )
        self._events.emit(event, payload)

    def _start_health_monitoring(self) -> None:
        if self._health_timer is not None:
            self._health_timer.cancel()
        # Initial check right away, through the same guard as timer ticks.
        self._trigger_scheduled_check()
        self._health_timer = asyncio.create_task(
            self._health_loop(), name=f"health-timer-{self.agent_id}"
        )

    async def _health_loop(self) -> None:
        interval = self._config.health_check_interval
        while True:
            await asyncio.sleep(interval)
            self._trigger_scheduled_check()

    def _trigger_scheduled_check(self) -> None:
        if self._scheduled_check is not None and not self._scheduled_check.done():
            self._logger.debug("Skipping health check - previous check still in progress")
            return
        self._scheduled_check = asyncio.create_task(
            self.check_health(), name=f"health-check-{self.agent_id}"
        )

    async def _stop_health_monitoring(self) -> None:
        timer, self._health_timer = self._health_timer, None
        check, self._scheduled_check = self._scheduled_check, None
        pending = [task for task in (timer, check) if task is not None]
        for task in pending:
            task.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)
