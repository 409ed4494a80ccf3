"""
maintenance-scheduler: unit tests for observability logging

File: tests/unit/observability/test_logging.py

Purpose
- Validate queue-backed JSON-lines logging, correlation fields and the
  structlog routing used by the planning engine.

What this test file should cover
- JSON line validity and correlation field propagation.
- structlog key/value events landing under ``fields``.
- Level filtering, text format and queue drain on shutdown.

Non-functional requirements
- Deterministic and non-flaky.
"""

from __future__ import annotations

import json
import logging
import logging.handlers
from typing import TYPE_CHECKING
from uuid import uuid4

import pytest
import structlog

from maintenance_scheduler.observability.logging import (
    LoggingConfig,
    correlation_scope,
    get_active_logging_handle,
    get_correlation_context,
    setup_logging,
    setup_structured_logging,
    shutdown_logging,
)

if TYPE_CHECKING:
    from collections.abc import Iterator
    from pathlib import Path


@pytest.fixture(autouse=True)
def _cleanup_logging() -> Iterator[None]:
    yield
    shutdown_logging()
    structlog.reset_defaults()


def _logger_name() -> str:
    return f"maintenance_scheduler.tests.logging.{uuid4().hex}"


def _read_json_lines(path: Path) -> list[dict[str, object]]:
    lines = path.read_text(encoding="utf-8").splitlines()
    return [json.loads(line) for line in lines]


def test_json_logging_carries_run_and_correlation_fields(tmp_path: Path) -> None:
    logger_name = _logger_name()
    handle = setup_structured_logging(
        LoggingConfig(run_id="run-json", base_log_dir=tmp_path, logger_name=logger_name)
    )
    logger = logging.getLogger(logger_name)

    with correlation_scope(pass_id="pass-1", operation="auto_schedule"):
        logger.info("pass started", extra={"windows": 3})
    logger.info("outside scope")

    shutdown_logging(handle)

    assert handle.log_path == tmp_path / "run-json" / "scheduler.jsonl"
    first, second = _read_json_lines(handle.log_path)
    assert first["message"] == "pass started"
    assert first["run_id"] == "run-json"
    assert first["pass_id"] == "pass-1"
    assert first["operation"] == "auto_schedule"
    assert first["fields"] == {"windows": 3}
    assert "pass_id" not in second


def test_structlog_events_are_routed_to_json_lines(tmp_path: Path) -> None:
    logger_name = _logger_name()
    handle = setup_structured_logging(
        LoggingConfig(run_id="run-structlog", base_log_dir=tmp_path, logger_name=logger_name)
    )
    engine_logger = structlog.get_logger(f"{logger_name}.planning")

    with correlation_scope(pass_id="pass-7"):
        engine_logger.info("auto_schedule_completed", assigned=2, unassigned=1)
    engine_logger.debug("filtered_out")

    shutdown_logging(handle)

    (event,) = _read_json_lines(handle.log_path)
    assert event["message"] == "auto_schedule_completed"
    assert event["logger"] == f"{logger_name}.planning"
    assert event["pass_id"] == "pass-7"
    assert event["fields"] == {"assigned": 2, "unassigned": 1}


def test_setup_logging_wrapper_uses_observability_section(tmp_path: Path) -> None:
    logger_name = _logger_name()
    logger = setup_logging(
        {"log_level": "WARNING", "log_format": "text", "log_dir": str(tmp_path)},
        run_id="run-wrapper",
        logger_name=logger_name,
    )
    logger.info("too quiet")
    logger.warning("window overloaded", extra={"window_id": "mw-1"})
    shutdown_logging()

    lines = (tmp_path / "run-wrapper" / "scheduler.jsonl").read_text(encoding="utf-8").splitlines()
    assert len(lines) == 1
    assert "WARNING" in lines[0]
    assert 'window_id="mw-1"' in lines[0]
    assert 'run_id="run-wrapper"' in lines[0]


def test_queue_handler_is_non_blocking_and_shutdown_drains(tmp_path: Path) -> None:
    logger_name = _logger_name()
    handle = setup_structured_logging(
        LoggingConfig(
            run_id="run-drain",
            base_log_dir=tmp_path,
            logger_name=logger_name,
            queue_size=10_000,
        )
    )
    logger = logging.getLogger(logger_name)
    assert any(isinstance(h, logging.handlers.QueueHandler) for h in logger.handlers)
    assert get_active_logging_handle() is handle

    for index in range(200):
        logger.info("record %s", index)
    shutdown_logging(handle)

    assert handle.is_shutdown
    assert handle.dropped_records == 0
    assert len(handle.log_path.read_text(encoding="utf-8").splitlines()) == 200
    assert get_active_logging_handle() is None


def test_correlation_scope_nests_and_restores() -> None:
    assert get_correlation_context() == {}
    with correlation_scope(pass_id="outer"):
        with correlation_scope(operation="optimize", pass_id=None):
            assert get_correlation_context() == {"operation": "optimize"}
        assert get_correlation_context() == {"pass_id": "outer"}
    assert get_correlation_context() == {}


def test_invalid_logging_config_is_rejected(tmp_path: Path) -> None:
    with pytest.raises(ValueError):
        setup_structured_logging(LoggingConfig(run_id=" ", base_log_dir=tmp_path))
    with pytest.raises(ValueError):
        setup_structured_logging(
            LoggingConfig(run_id="run-bad", base_log_dir=tmp_path, level="CHATTY")
        )
