"""Correlation ids, structured logging, event hub and host configuration."""
from __future__ import annotations

import json
import logging

import pytest

from agent_supervisor.config import Config
from agent_supervisor.core.correlation import (
    clear_correlation_id,
    create_correlation_id,
    extract_correlation_id,
    get_correlation_id,
    get_or_create_correlation_id,
    is_valid_correlation_id,
)
from agent_supervisor.core.errors import EnvironmentValidationError
from agent_supervisor.core.events import EventEmitter
from agent_supervisor.core.log import JsonFormatter, PerformanceLogger, StructuredLogger
from agent_supervisor.core.models import AgentEvent, AgentEventType


def test_correlation_ids_are_unique_uuid4() -> None:
    ids = {create_correlation_id() for _ in range(50)}
    assert len(ids) == 50
    assert all(is_valid_correlation_id(value) for value in ids)
    assert not is_valid_correlation_id("not-a-uuid")


@pytest.mark.parametrize(
    ("headers", "expected"),
    [
        ({"x-correlation-id": "abc"}, "abc"),
        ({"X-Correlation-ID": "abc"}, "abc"),
        ({"X-Correlation-Id": ["first", "second"]}, "first"),
        ({"X-Correlation-ID": []}, None),
        ({"content-type": "application/json"}, None),
    ],
)
def test_extract_correlation_id(headers, expected) -> None:
    assert extract_correlation_id(headers) == expected


def test_context_correlation_id() -> None:
    clear_correlation_id()
    assert get_correlation_id() is None
    created = get_or_create_correlation_id()
    assert get_or_create_correlation_id() == created
    clear_correlation_id()


def test_structured_logger_attaches_context(caplog) -> None:
    logger = StructuredLogger("agent_supervisor.tests", service="svc").child(agent_id="a1")

    with caplog.at_level(logging.DEBUG, logger="agent_supervisor.tests"):
        logger.warn("Probe slow", {"latency_ms": 950})
        logger.debug("Tick")

    warn_record, debug_record = caplog.records
    assert warn_record.levelno == logging.WARNING
    assert warn_record.context == {"service": "svc", "agent_id": "a1", "latency_ms": 950}
    assert debug_record.context["agent_id"] == "a1"


def test_performance_logger_reports_duration(caplog) -> None:
    logger = StructuredLogger("agent_supervisor.tests", service="svc")

    with caplog.at_level(logging.DEBUG, logger="agent_supervisor.tests"):
        PerformanceLogger(logger, "warmup", {"step": 1}).complete({"items": 3})
        PerformanceLogger(logger, "flush").fail(OSError("disk full"))

    messages = [record.getMessage() for record in caplog.records]
    assert messages == [
        "Starting operation: warmup",
        "Completed operation: warmup",
        "Starting operation: flush",
        "Failed operation: flush",
    ]
    completed, failed = caplog.records[1], caplog.records[3]
    assert completed.context["step"] == 1
    assert completed.context["items"] == 3
    assert isinstance(completed.context["duration"], float)
    assert failed.levelno == logging.ERROR
    assert failed.context["error"] == "disk full"
    assert failed.context["error_type"] == "OSError"


def test_json_formatter_merges_context() -> None:
    record = logging.LogRecord("svc", logging.INFO, __file__, 1, "Agent registered", None, None)
    record.context = {"agent_id": "a1"}

    entry = json.loads(JsonFormatter().format(record))

    assert entry["message"] == "Agent registered"
    assert entry["level"] == "info"
    assert entry["agent_id"] == "a1"


def test_event_emitter_delivers_in_order_and_survives_bad_handlers() -> None:
    emitter = EventEmitter()
    seen = []

    def broken(event: AgentEvent) -> None:
        raise RuntimeError("boom")

    emitter.subscribe(AgentEventType.STARTED, lambda e: seen.append(("first", e.agent_id)))
    emitter.subscribe("started", broken)
    emitter.subscribe(AgentEventType.STARTED, lambda e: seen.append(("second", e.agent_id)))

    delivered = emitter.emit(AgentEventType.STARTED, AgentEvent(type="started", agent_id="a", correlation_id="c"))

    assert delivered == 2
    assert seen == [("first", "a"), ("second", "a")]
    assert emitter.unsubscribe("started", broken)
    assert not emitter.unsubscribe("started", broken)
    assert emitter.handler_count(AgentEventType.STARTED) == 2


def test_config_defaults_from_empty_environment() -> None:
    config = Config.from_env({})
    assert config == Config()


def test_config_parses_environment() -> None:
    config = Config.from_env(
        {
            "PORT": " 9090 ",
            "ENVIRONMENT": "Production",
            "LOG_LEVEL": "WARN",
            "LOG_JSON": "true",
            "ALLOWED_ORIGINS": "https://ops.example.com, http://localhost:5173",
            "HEARTBEAT_INTERVAL": "2.5",
        }
    )

    assert config.port == 9090
    assert config.environment == "production"
    assert config.log_level == "warning"
    assert config.log_json is True
    assert config.allowed_origins == ("https://ops.example.com", "http://localhost:5173")
    assert config.heartbeat_interval == 2.5


def test_config_collects_all_errors() -> None:
    with pytest.raises(EnvironmentValidationError) as excinfo:
        Config.from_env({"PORT": "70000", "ENVIRONMENT": "staging", "ALLOWED_ORIGINS": "ftp://x"})

    assert len(excinfo.value.errors) == 3
    assert "PORT" in str(excinfo.value)


def test_config_reads_secrets_and_warns_when_weak(caplog) -> None:
    with caplog.at_level(logging.WARNING, logger="agent_supervisor.config"):
        config = Config.from_env({"API_KEY": "short-key", "JWT_SECRET": "k3v9-Qz81-Lm02-Xx77"})

    assert config.api_key == "short-key"
    assert config.jwt_secret == "k3v9-Qz81-Lm02-Xx77"
    assert "short-key" not in repr(config)
    weak = [r for r in caplog.records if r.getMessage() == "API_KEY appears to be weak"]
    assert len(weak) == 1
    assert not any("JWT_SECRET" in r.getMessage() for r in caplog.records)


@pytest.mark.parametrize(
    "environ",
    [
        {"API_KEY": "your_api_key"},
        {"JWT_SECRET": "example-secret-value-1234"},
    ],
)
def test_config_rejects_placeholder_secrets(environ) -> None:
    with pytest.raises(EnvironmentValidationError) as excinfo:
        Config.from_env(environ)
    assert "placeholder value" in str(excinfo.value)
