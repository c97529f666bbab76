"""Fail-fast validation of agent configurations."""
from __future__ import annotations

import dataclasses
from enum import Enum
from typing import Any, List, Mapping, Union

from pydantic import BaseModel, ConfigDict, Field, StrictBool, StrictFloat, StrictInt, StrictStr, ValidationError, field_validator

from .errors import InvalidConfigurationError
from .models import AgentConfig

SEMVER_PATTERN = r"^\d+\.\d+\.\d+$"


class ConfigIssue(str, Enum):
    """Enumerated reasons an agent configuration can be rejected."""

    INVALID_ID = "id"
    INVALID_NAME = "name"
    INVALID_VERSION = "version"
    INVALID_ENABLED = "enabled"
    INVALID_DEPENDENCIES = "dependencies"
    INVALID_HEALTH_CHECK_INTERVAL = "health_check_interval"
    INVALID_MAX_RETRIES = "max_retries"
    INVALID_TIMEOUT = "timeout"
    UNEXPECTED_FIELD = "__extra__"


class AgentConfigSchema(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    id: StrictStr = Field(..., min_length=1)
    name: StrictStr = Field(..., min_length=1)
    version: StrictStr = Field(..., pattern=SEMVER_PATTERN)
    enabled: StrictBool = True
    dependencies: List[StrictStr] = Field(default_factory=list)
    health_check_interval: StrictFloat = Field(30.0, gt=0)
    max_retries: StrictInt = Field(3, ge=0)
    timeout: StrictFloat = Field(10.0, gt=0)

    @field_validator("id", "name")
    @classmethod
    def _not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("must not be blank")
        return value


def _issue_for(location: Any) -> ConfigIssue:
    try:
        return ConfigIssue(location)
    except ValueError:
        return ConfigIssue.UNEXPECTED_FIELD


def validate_agent_config(data: Union[AgentConfig, Mapping[str, Any]]) -> AgentConfig:
    """Return a validated ``AgentConfig`` or raise ``InvalidConfigurationError``.

    Accepts either an ``AgentConfig`` (which a caller may have built with bad
    values) or a plain mapping such as one decoded from JSON.
    """
    if isinstance(data, AgentConfig):
        raw = dataclasses.asdict(data)
    elif isinstance(data, Mapping):
        raw = dict(data)
    else:
        raise InvalidConfigurationError(
            [ConfigIssue.UNEXPECTED_FIELD],
            [f"expected AgentConfig or mapping, got {type(data).__name__}"],
        )

    try:
        schema = AgentConfigSchema.model_validate(raw)
    except ValidationError as exc:
        issues: List[ConfigIssue] = []
        messages: List[str] = []
        for error in exc.errors():
            field_name = error["loc"][0] if error["loc"] else "__root__"
            issue = _issue_for(field_name)
            if issue not in issues:
                issues.append(issue)
            messages.append(f"{field_name}: {error['msg']}")
        raise InvalidConfigurationError(issues, messages) from exc

    return AgentConfig(
        id=schema.id,
        name=schema.name,
        version=schema.version,
        enabled=schema.enabled,
        dependencies=tuple(schema.dependencies),
        health_check_interval=schema.health_check_interval,
        max_retries=schema.max_retries,
        timeout=schema.timeout,
    )
