"""
Unit tests for shared configuration, logging, metrics and errors.
"""

import logging
import re
import threading

import pytest
import structlog
from prometheus_client import CollectorRegistry

from shared.config import ObserversConfig, get_config
from shared.errors import ErrorResponse, InvalidCondition, InvalidOperator, OperatorError
from shared.logging import (
    add_correlation_context, clear_context, configure_logging, get_logger,
    set_observer_context, set_record_context
)
from shared.metrics import get_metrics_collector


class TestConfig:
    """Test cases for ObserversConfig."""

    def test_defaults(self, monkeypatch):
        monkeypatch.delenv("OBSERVERS_FAIL_FAST", raising=False)
        config = ObserversConfig()

        assert config.fail_fast is True
        assert config.log_level == "info"
        assert config.service_name == "observers"

    def test_environment_override(self, monkeypatch):
        monkeypatch.setenv("OBSERVERS_FAIL_FAST", "false")
        monkeypatch.setenv("OBSERVERS_LOG_LEVEL", "debug")

        config = get_config()

        assert config.fail_fast is False
        assert config.log_level == "debug"

    def test_explicit_override(self):
        assert get_config(metrics_enabled=False).metrics_enabled is False


class TestErrors:
    """Test cases for condition errors."""

    def test_invalid_operator_response(self):
        response = InvalidOperator("$foo").to_response()

        assert isinstance(response, ErrorResponse)
        assert response.code == "INVALID_OPERATOR"
        assert response.message == "Invalid operator $foo"
        assert response.details == {"operator": "$foo"}

    def test_operator_error_keeps_cause(self):
        cause = re.error("unterminated character set")
        error = OperatorError("$regex", cause)

        assert error.cause is cause
        assert error.details == {"operator": "$regex", "cause": "error"}
        assert str(error) == "Error executing operator $regex: unterminated character set"

    def test_invalid_condition(self):
        error = InvalidCondition("$or expects a list of condition objects", {"combinator": "$or"})

        assert error.code == "INVALID_CONDITION"
        assert error.details == {"combinator": "$or"}


class TestLoggingContext:
    """Test cases for log correlation context."""

    @pytest.fixture(autouse=True)
    def reset_context(self):
        clear_context()
        yield
        clear_context()

    def test_record_and_observer_context(self):
        set_record_context("order-1", "order")
        set_observer_context("obs-1")

        event = add_correlation_context(None, "info", {"event": "Observer lookup result"})

        assert event["record_id"] == "order-1"
        assert event["data_type"] == "order"
        assert event["observer_id"] == "obs-1"

    def test_cleared_context(self):
        set_record_context("order-1", "order")
        clear_context()

        event = add_correlation_context(None, "info", {"event": "x"})

        assert "record_id" not in event
        assert "observer_id" not in event


class TestMetricsCollector:
    """Test cases for MetricsCollector."""

    def test_record_lookup(self):
        collector = get_metrics_collector("observers", CollectorRegistry())

        collector.record_lookup("order", matched=2, duration=0.01)
        collector.record_lookup("order", matched=0, duration=0.02)

        assert collector.get_sample_value("observer_lookups_total", {"data_type": "order"}) == 2.0
        assert collector.get_sample_value("observer_matches_total", {"data_type": "order"}) == 2.0
        assert collector.get_sample_value("observer_lookup_duration_seconds_count", {"data_type": "order"}) == 2.0

    def test_record_error(self):
        collector = get_metrics_collector("observers", CollectorRegistry())

        collector.record_error("INVALID_OPERATOR")

        assert collector.get_sample_value(
            "condition_evaluation_errors_total", {"error_type": "INVALID_OPERATOR"}
        ) == 1.0

    def test_concurrent_recording(self):
        collector = get_metrics_collector("observers", CollectorRegistry())

        def record():
            for _ in range(100):
                collector.record_lookup("order", matched=1, duration=0.001)
                collector.record_error("OPERATOR_ERROR")

        threads = [threading.Thread(target=record) for _ in range(4)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert collector.get_sample_value("observer_lookups_total", {"data_type": "order"}) == 400.0
        assert collector.get_sample_value(
            "condition_evaluation_errors_total", {"error_type": "OPERATOR_ERROR"}
        ) == 400.0

    def test_collectors_are_isolated(self):
        first = get_metrics_collector("observers")
        second = get_metrics_collector("observers")

        first.record_error("OPERATOR_ERROR")

        assert second.get_sample_value(
            "condition_evaluation_errors_total", {"error_type": "OPERATOR_ERROR"}
        ) is None


class TestConfigureLogging:
    """Test cases for structured logging configuration."""

    @pytest.fixture(autouse=True)
    def reset_structlog(self):
        yield
        structlog.reset_defaults()
        clear_context()

    def test_json_events_carry_context(self, caplog):
        configure_logging("observers", "info")
        caplog.set_level(logging.INFO)
        set_observer_context("obs-1")

        get_logger("observers.registry").info("Observer added", name="Paid")

        assert '"event": "Observer added"' in caplog.text
        assert '"observer_id": "obs-1"' in caplog.text
        assert '"service": "observers"' in caplog.text
