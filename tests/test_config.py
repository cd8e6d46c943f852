"""
Test suite for configuration and structured logging
"""

import json
import logging

from loan_ledger.config import LedgerConfig, get_config, reload_config
from loan_ledger.logging_config import JSONFormatter, log_action, setup_logging


class TestLedgerConfig:

    def test_defaults(self, monkeypatch):
        monkeypatch.delenv("LEDGER_DUE_SOON_DAYS", raising=False)
        monkeypatch.delenv("LEDGER_DEFAULTER_THRESHOLD", raising=False)
        config = LedgerConfig(_env_file=None)

        assert config.due_soon_days == 3
        assert config.defaulter_threshold == 2
        assert config.upcoming_window_months == 1

    def test_env_prefix(self, monkeypatch):
        monkeypatch.setenv("LEDGER_DEFAULTER_THRESHOLD", "4")
        monkeypatch.setenv("LEDGER_USE_SQLITE", "false")

        config = reload_config()
        try:
            assert config.defaulter_threshold == 4
            assert config.use_sqlite is False
            assert get_config() is config
        finally:
            monkeypatch.delenv("LEDGER_DEFAULTER_THRESHOLD")
            monkeypatch.delenv("LEDGER_USE_SQLITE")
            reload_config()


class ListHandler(logging.Handler):

    def __init__(self):
        super().__init__()
        self.records = []

    def emit(self, record):
        self.records.append(record)


class TestStructuredLogging:

    def test_json_formatter_fields(self):
        record = logging.LogRecord("loan_ledger.test", logging.INFO, __file__, 1, "Payment collected", (), None)
        record.action = "payment_collected"
        record.resource = "payment:7"
        record.extra = {"paid_amount": "600.00"}

        entry = json.loads(JSONFormatter().format(record))

        assert entry["level"] == "INFO"
        assert entry["message"] == "Payment collected"
        assert entry["action"] == "payment_collected"
        assert entry["resource"] == "payment:7"
        assert entry["extra"] == {"paid_amount": "600.00"}

    def test_json_formatter_drops_missing_fields(self):
        record = logging.LogRecord("loan_ledger.test", logging.WARNING, __file__, 1, "plain", (), None)
        entry = json.loads(JSONFormatter().format(record))
        assert "action" not in entry
        assert "extra" not in entry

    def test_log_action_attaches_structured_data(self):
        logger = logging.getLogger("loan_ledger.test_log_action")
        logger.setLevel(logging.INFO)
        handler = ListHandler()
        logger.addHandler(handler)
        try:
            log_action(logger, "info", "Loan created", action="loan_created",
                       resource="loan:1", extra={"strategy": "emi"})
            log_action(logger, "debug", "ignored", action="noise")
        finally:
            logger.removeHandler(handler)

        assert len(handler.records) == 1
        record = handler.records[0]
        assert record.action == "loan_created"
        assert record.resource == "loan:1"
        assert record.extra == {"strategy": "emi"}

    def test_setup_logging_replaces_handlers(self):
        name = "loan_ledger_setup_test"
        setup_logging(level="DEBUG", log_format="text", logger_name=name)
        logger = setup_logging(level="WARNING", log_format="json", logger_name=name)

        assert len(logger.handlers) == 1
        assert isinstance(logger.handlers[0].formatter, JSONFormatter)
        assert logger.level == logging.WARNING
        assert logger.propagate is False
