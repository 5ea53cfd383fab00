"""
Program Management Assistant
Tests — configuration, app factory wiring, logging formatters, error bodies.
"""

import json
import logging

import pytest

from pmassist.config import ProductionConfig, TestingConfig, config
from pmassist.core.exceptions import ConfirmationRequiredError, NotFoundError, ValidationError
from pmassist.middleware.logging_config import JSONFormatter, ReadableFormatter, RequestContextFilter
from pmassist.utils.errors import error_response


class TestConfig:
    def test_mapping(self):
        assert config["testing"] is TestingConfig
        assert config["default"] is config["development"]

    def test_testing_uses_memory_storage(self, app):
        assert app.config["TESTING"] is True
        assert app.config["STORAGE_BACKEND"] == "memory"
        assert app.config["RATELIMIT_ENABLED"] is False

    def test_production_requires_secret_key(self, monkeypatch):
        monkeypatch.delenv("SECRET_KEY", raising=False)
        with pytest.raises(RuntimeError, match="SECRET_KEY"):
            ProductionConfig()

    def test_production_with_secret_key(self, monkeypatch):
        monkeypatch.setenv("SECRET_KEY", "s3cret")
        assert ProductionConfig().DEBUG is False

    def test_workspace_registered(self, app):
        assert "pmassist" in app.extensions


# ═════════════════════════════════════════════════════════════════════════════
# LOGGING / ERROR BODIES
# ═════════════════════════════════════════════════════════════════════════════

class TestLogging:
    def _record(self, **extra):
        record = logging.LogRecord("pmassist.storage", logging.WARNING, __file__, 10,
                                   "write failed key=%s", ("k",), None)
        for name, value in extra.items():
            setattr(record, name, value)
        return record

    def test_json_formatter_carries_context(self):
        line = JSONFormatter().format(self._record(storage_key="programManagementData", program_id="7"))
        data = json.loads(line)
        assert data["level"] == "WARNING"
        assert data["msg"] == "write failed key=k"
        assert data["storage_key"] == "programManagementData"
        assert data["program_id"] == "7"
        assert "duration_ms" not in data

    def test_readable_formatter_tags(self):
        line = ReadableFormatter().format(self._record(program_id="7", duration_ms=12.4))
        assert "write failed key=k" in line
        assert "[program=7]" in line
        assert "[12ms]" in line

    def test_filter_stamps_program_id_from_route(self, app):
        record = self._record()
        with app.test_request_context("/api/v1/programs/42/tasks"):
            assert RequestContextFilter().filter(record) is True
        assert record.program_id == "42"


class TestErrorResponse:
    def test_domain_exceptions(self, app):
        body, status = error_response(NotFoundError("Task", "9", program_id="1"))
        assert status == 404
        assert body.get_json() == {"error": "Task not found", "code": "ERR_NOT_FOUND"}

        body, status = error_response(ValidationError("bad", details={"status": "X"}))
        assert status == 422
        assert body.get_json()["details"] == {"status": "X"}

        body, status = error_response(ConfirmationRequiredError("delete", "Program", "1"))
        assert status == 428
