"""
Tests for configuration, structured logging and the exception hierarchy
"""

import json
import logging
import pytest
import sys

from loan_tracker.config import LoanTrackerConfig, reload_config, get_config
from loan_tracker.exceptions import LoanTrackerError, ValidationError, NotFoundError
from loan_tracker.logging_config import JSONFormatter, setup_logging, log_event


class TestConfig:
    """Test environment-based configuration"""

    def test_defaults(self):
        config = LoanTrackerConfig()
        assert config.api_prefix == "/api/loans"
        assert config.report_currency_label == "PKR"
        assert config.report_footer_text == "Developed by Codenzaar Technologies"

    def test_environment_overrides(self, monkeypatch):
        monkeypatch.setenv("LOAN_TRACKER_DATABASE_URL", "memory://")
        monkeypatch.setenv("LOAN_TRACKER_ENVIRONMENT", "Development")
        monkeypatch.setenv("LOAN_TRACKER_API_PORT", "8080")

        config = reload_config()
        assert get_config() is config
        assert config.database_url == "memory://"
        assert config.api_port == 8080
        assert config.is_development

        monkeypatch.undo()
        reload_config()


class ListHandler(logging.Handler):
    def __init__(self):
        super().__init__()
        self.records = []

    def emit(self, record):
        self.records.append(record)


class TestLogging:
    """Test JSON formatting and event logging"""

    def test_json_formatter(self):
        record = logging.LogRecord("loan_tracker.loans", logging.INFO, __file__, 1,
                                   "Loan created", (), None)
        record.event = "loan_created"
        record.loan_id = "1"
        record.details = {"loan_amount": "100"}

        entry = json.loads(JSONFormatter().format(record))
        assert list(entry) == ["time", "level", "logger", "message",
                               "event", "loan_id", "details"]
        assert entry["level"] == "INFO"
        assert entry["logger"] == "loan_tracker.loans"
        assert entry["message"] == "Loan created"
        assert entry["event"] == "loan_created"
        assert entry["details"] == {"loan_amount": "100"}
        assert "request_id" not in entry

    def test_json_formatter_traceback(self):
        try:
            raise RuntimeError("boom")
        except RuntimeError:
            record = logging.LogRecord("loan_tracker.api", logging.ERROR, __file__, 1,
                                       "Unhandled", (), sys.exc_info())

        entry = json.loads(JSONFormatter().format(record))
        assert "RuntimeError: boom" in entry["traceback"]

    def test_log_event_attaches_fields(self):
        logger = setup_logging("DEBUG", logger_name="loan_tracker_test")
        handler = ListHandler()
        logger.addHandler(handler)

        log_event(logger, "warning", "Rejected", "payment_rejected",
                  loan_id="1", request_id="abc", amount="5")

        record = handler.records[-1]
        assert record.levelno == logging.WARNING
        assert record.event == "payment_rejected"
        assert record.loan_id == "1"
        assert record.request_id == "abc"
        assert record.details == {"amount": "5"}

    def test_log_event_without_details(self):
        logger = setup_logging("DEBUG", logger_name="loan_tracker_bare")
        handler = ListHandler()
        logger.addHandler(handler)

        log_event(logger, "info", "Loan deleted", "loan_deleted", loan_id="1")

        entry = json.loads(JSONFormatter().format(handler.records[-1]))
        assert "details" not in entry
        assert "request_id" not in entry

    def test_log_event_respects_level(self):
        logger = setup_logging("ERROR", logger_name="loan_tracker_quiet")
        handler = ListHandler()
        logger.addHandler(handler)

        log_event(logger, "info", "ignored", "request")
        assert handler.records == []

    def test_setup_replaces_handlers(self):
        setup_logging("INFO", logger_name="loan_tracker_twice")
        logger = setup_logging("INFO", logger_name="loan_tracker_twice")
        assert len(logger.handlers) == 1

    def test_text_format(self):
        logger = setup_logging("INFO", logger_name="loan_tracker_text", log_format="text")
        assert not isinstance(logger.handlers[0].formatter, JSONFormatter)


class TestExceptions:
    """Test the exception hierarchy"""

    def test_validation_error_messages(self):
        single = ValidationError("bad amount")
        assert single.messages == ["bad amount"]
        assert single.message == "bad amount"

        multiple = ValidationError(["first", "second"])
        assert multiple.message == "first"
        assert str(multiple) == "first; second"

    def test_hierarchy(self):
        assert issubclass(ValidationError, LoanTrackerError)
        with pytest.raises(LoanTrackerError):
            raise NotFoundError("Loan not found")
