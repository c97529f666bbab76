"""Shared fixtures: a scriptable agent and polling helpers."""
from __future__ import annotations

import asyncio
from typing import Any, Awaitable, Callable, Optional, Union

import pytest

from agent_supervisor.agents.base import SupervisedAgent
from agent_supervisor.core.models import AgentConfig, HealthCheck, HealthStatus


class ScriptedAgent(SupervisedAgent):
    """Agent whose hooks behave as configured by the test."""

    def __init__(
        self,
        config: Any,
        *,
        fail_start: bool = False,
        fail_stop: bool = False,
        health: Union[HealthCheck, Exception, None] = None,
        start_delay: float = 0.0,
        health_delay: float = 0.0,
        **kwargs: Any,
    ) -> None:
        super().__init__(config, **kwargs)
        self.fail_start = fail_start
        self.fail_stop = fail_stop
        self.health = health or HealthCheck(status=HealthStatus.HEALTHY, message="All systems operational")
        self.start_delay = start_delay
        self.health_delay = health_delay
        self.start_calls = 0
        self.stop_calls = 0
        self.health_calls = 0
        self.health_in_flight = 0
        self.max_health_in_flight = 0

    async def on_start(self) -> None:
        self.start_calls += 1
        if self.start_delay:
            await asyncio.sleep(self.start_delay)
        if self.fail_start:
            raise RuntimeError("Start failed")

    async def on_stop(self) -> None:
        self.stop_calls += 1
        if self.fail_stop:
            raise RuntimeError("Stop failed")

    async def perform_health_check(self) -> HealthCheck:
        self.health_calls += 1
        self.health_in_flight += 1
        self.max_health_in_flight = max(self.max_health_in_flight, self.health_in_flight)
        try:
            if self.health_delay:
                await asyncio.sleep(self.health_delay)
            if isinstance(self.health, Exception):
                raise self.health
            return self.health
        finally:
            self.health_in_flight -= 1


def agent_config(agent_id: str = "test-agent-001", **overrides: Any) -> AgentConfig:
    values = {
        "id": agent_id,
        "name": f"{agent_id} agent",
        "version": "1.0.0",
        "enabled": True,
        "dependencies": (),
        "health_check_interval": 60.0,
        "max_retries": 3,
        "timeout": 5.0,
    }
    values.update(overrides)
    return AgentConfig(**values)


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"


@pytest.fixture
def make_agent() -> Callable[..., ScriptedAgent]:
    def factory(agent_id: str = "test-agent-001", *, config: Optional[dict] = None, **behaviour: Any) -> ScriptedAgent:
        return ScriptedAgent(agent_config(agent_id, **(config or {})), **behaviour)

    return factory


@pytest.fixture
def wait_until() -> Callable[..., Awaitable[None]]:
    async def poll(predicate: Callable[[], bool], timeout: float = 2.0, interval: float = 0.01) -> None:
        loop = asyncio.get_running_loop()
        deadline = loop.time() + timeout
        while not predicate():
            if loop.time() > deadline:
                raise AssertionError("condition not met before timeout")
            await asyncio.sleep(interval)

    return poll
