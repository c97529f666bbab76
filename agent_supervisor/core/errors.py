"""Exception taxonomy raised by the supervision runtime."""
from __future__ import annotations

from typing import TYPE_CHECKING, Iterable, List, Sequence

if TYPE_CHECKING:
    from .models import AgentState
    from .validation import ConfigIssue


class SupervisorError(Exception):
    """Base class for every error raised by the supervision runtime."""


class InvalidConfigurationError(SupervisorError, ValueError):
    """An agent configuration failed validation; no agent was created."""

    def __init__(self, issues: Sequence[ConfigIssue], messages: Iterable[str]) -> None:
        self.issues: List[ConfigIssue] = list(issues)
        self.messages: List[str] = list(messages)
        super().__init__("Invalid agent configuration: " + "; ".join(self.messages))


class InvalidStateTransitionError(SupervisorError):
    """A lifecycle operation was requested from a state that does not allow it."""

    def __init__(self, agent_id: str, state: AgentState, operation: str = "start") -> None:
        self.agent_id = agent_id
        self.state = state
        self.operation = operation
        super().__init__(f"Cannot {operation} agent '{agent_id}' in state: {state.value}")


class StartupFailureError(SupervisorError):
    """The agent's ``on_start`` hook raised; the agent is left in ``error``."""

    def __init__(self, agent_id: str, cause: BaseException) -> None:
        self.agent_id = agent_id
        self.cause = cause
        super().__init__(f"Agent '{agent_id}' failed to start: {cause}")


class ShutdownFailureError(SupervisorError):
    """The agent's ``on_stop`` hook raised; the agent is left in ``error``."""

    def __init__(self, agent_id: str, cause: BaseException) -> None:
        self.agent_id = agent_id
        self.cause = cause
        super().__init__(f"Agent '{agent_id}' failed to stop gracefully: {cause}")


class DuplicateAgentError(SupervisorError, KeyError):
    def __init__(self, agent_id: str) -> None:
        self.agent_id = agent_id
        super().__init__(f"Agent with ID {agent_id} is already registered")

    def __str__(self) -> str:
        return self.args[0]


class UnknownAgentError(SupervisorError, KeyError):
    def __init__(self, agent_id: str) -> None:
        self.agent_id = agent_id
        super().__init__(f"Agent with ID {agent_id} is not registered")

    def __str__(self) -> str:
        return self.args[0]


class EnvironmentValidationError(SupervisorError):
    """Host process environment variables are missing or malformed."""

    def __init__(self, errors: Sequence[str]) -> None:
        self.errors = list(errors)
        detail = "\n".join(f"  - {error}" for error in self.errors)
        super().__init__(f"Environment validation failed:\n{detail}")
