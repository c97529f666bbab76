"""Application runtime composition helpers."""
from __future__ import annotations

from functools import lru_cache
from typing import Dict, List, Type

from agent_supervisor.agents.base import SupervisedAgent
from agent_supervisor.agents.ping import PingAgent
from agent_supervisor.config import Config
from agent_supervisor.core.log import StructuredLogger
from agent_supervisor.core.models import AgentConfig
from agent_supervisor.orchestration.registry import AgentRegistry

SERVICE_NAME = "agent-supervisor"
VERSION = "0.1.0"

_AGENT_CATALOG: Dict[str, Type[SupervisedAgent]] = {
    "ping": PingAgent,
}


@lru_cache
def get_config() -> Config:
    return Config.from_env()


@lru_cache
def get_logger() -> StructuredLogger:
    config = get_config()
    return StructuredLogger(
        "agent_supervisor",
        service=SERVICE_NAME,
        environment=config.environment,
        version=VERSION,
    )


@lru_cache
def get_registry() -> AgentRegistry:
    registry = AgentRegistry(logger=get_logger().child(component="registry"))
    for agent_config in default_agent_configs(get_config()):
        if agent_config.enabled:
            registry.register(build_agent("ping", agent_config))
    return registry


def build_agent(role: str, config: AgentConfig) -> SupervisedAgent:
    if role not in _AGENT_CATALOG:
        raise KeyError(f"No agent registered for role '{role}'")
    agent_cls = _AGENT_CATALOG[role]
    return agent_cls(config, logger=get_logger().child(agent_id=config.id))


def default_agent_configs(config: Config) -> List[AgentConfig]:
    return [
        AgentConfig(
            id="heartbeat",
            name="heartbeat",
            version=VERSION,
            health_check_interval=config.heartbeat_interval,
        ),
    ]
