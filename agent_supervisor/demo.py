"""CLI demonstration of registry-managed agent lifecycle."""
from __future__ import annotations

import asyncio
from typing import NoReturn

from agent_supervisor.agents.base import SupervisedAgent
from agent_supervisor.agents.ping import PingAgent
from agent_supervisor.core.log import StructuredLogger, configure_logging
from agent_supervisor.core.models import AgentConfig, AgentEvent, HealthCheck, RegistryEventType
from agent_supervisor.orchestration.registry import AgentRegistry


class FlakyAgent(SupervisedAgent):
    """Starts fine but always reports a failing health check."""

    async def on_start(self) -> None:
        await asyncio.sleep(0.05)

    async def on_stop(self) -> None:
        return None

    async def perform_health_check(self) -> HealthCheck:
        raise ConnectionError("downstream unreachable")


async def main() -> None:
    configure_logging("info")
    logger = StructuredLogger("agent_supervisor.demo", service="demo")
    registry = AgentRegistry(logger=logger.child(component="registry"))

    def report(event: AgentEvent) -> None:
        print(f"[{event.type}] {event.agent_id} correlation={event.correlation_id}")

    for event in RegistryEventType:
        registry.subscribe(event, report)

    registry.register(
        PingAgent(AgentConfig(id="ping", name="demo-ping", version="1.0.0", health_check_interval=0.2))
    )
    registry.register(
        FlakyAgent(AgentConfig(id="flaky", name="demo-flaky", version="1.0.0", health_check_interval=0.2))
    )

    result = await registry.start_all()
    print(f"Started: {result.successful} failed: {result.failed}")

    await asyncio.sleep(0.5)
    for info in registry.get_all():
        print(
            f"{info.id}: state={info.state.value} health={info.health.status.value} "
            f"message={info.health.message!r} uptime_ms={info.metadata['uptime_ms']}"
        )

    await registry.stop_all()
    print("All agents stopped")


def run() -> NoReturn:
    asyncio.run(main())
    raise SystemExit(0)


if __name__ == "__main__":
    run()
