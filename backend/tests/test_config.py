"""
Shelfmark Backend: Settings and Telemetry Tests
=================================================

What:  Tests for Settings validation and the telemetry on/off switch.
How:   Telemetry tests point the OTLP exporters at an unused local endpoint;
       nothing is recorded, so nothing is ever sent.
"""

import logging

import pytest
from pydantic import ValidationError as PydanticValidationError

from app import telemetry
from app.config import Settings
from app.main import setup_logging
from app.middleware.request_id import RequestIDLogFilter


class TestSettings:

    def test_defaults(self):
        s = Settings(_env_file=None, mongodb_url="mongodb://db:27017")

        assert s.mongodb_database == "BookStore"
        assert s.mongodb_collection == "Books"
        assert s.default_deleted_by == "anonymous"

    def test_log_level_normalized(self):
        assert Settings(_env_file=None, log_level="debug").log_level == "DEBUG"

    def test_log_level_rejected(self):
        with pytest.raises(PydanticValidationError, match="Invalid log_level"):
            Settings(_env_file=None, log_level="chatty")

    def test_timeout_bounds(self):
        with pytest.raises(PydanticValidationError):
            Settings(_env_file=None, mongodb_timeout_ms=10)

    def test_cors_origins_list(self):
        s = Settings(_env_file=None, cors_origins="http://a.test, http://b.test")

        assert s.cors_origins_list == ["http://a.test", "http://b.test"]

    def test_missing_mongodb_url_reported(self):
        with pytest.raises(ValueError, match="MONGODB_URL is not set"):
            Settings(_env_file=None, mongodb_url="").validate_required_for_production()

    def test_configured_mongodb_url_passes(self):
        Settings(_env_file=None, mongodb_url="mongodb://db:27017").validate_required_for_production()


@pytest.fixture
def root_logger():
    """Root logger whose handlers and level are put back after the test."""
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield root
    telemetry.shutdown_telemetry()
    root.handlers[:] = handlers
    root.setLevel(level)


class TestTelemetrySwitch:

    def test_disabled_without_endpoint(self):
        assert telemetry.configure_telemetry("", "shelfmark-api") is False
        assert telemetry.is_telemetry_enabled() is False

    def test_instrument_and_shutdown_are_noops_when_disabled(self):
        telemetry.instrument_app(object())
        telemetry.shutdown_telemetry()

        assert telemetry.is_telemetry_enabled() is False

    def test_log_bridge_survives_setup_logging(self, root_logger):
        """OTLP exporters do not connect until they export, so no collector is needed."""
        assert telemetry.configure_telemetry("http://localhost:4317", "shelfmark-test") is True
        otel_handler = telemetry._log_handler
        assert otel_handler in root_logger.handlers

        setup_logging()

        assert otel_handler in root_logger.handlers
        stdout_handlers = [h for h in root_logger.handlers if h is not otel_handler]
        assert len(stdout_handlers) == 1
        assert any(isinstance(f, RequestIDLogFilter) for f in stdout_handlers[0].filters)

    def test_configure_is_idempotent(self, root_logger):
        telemetry.configure_telemetry("http://localhost:4317", "shelfmark-test")

        assert telemetry.configure_telemetry("http://localhost:4317", "shelfmark-test") is False
        bridges = [h for h in root_logger.handlers if h is telemetry._log_handler]
        assert len(bridges) == 1

    def test_shutdown_removes_log_bridge(self, root_logger):
        telemetry.configure_telemetry("http://localhost:4317", "shelfmark-test")
        otel_handler = telemetry._log_handler

        telemetry.shutdown_telemetry()

        assert telemetry.is_telemetry_enabled() is False
        assert otel_handler not in root_logger.handlers
