"""Tests for the structured logging module."""
import json
import logging
import sys
from pathlib import Path

import pytest

from src.utils.logger import (
    ConsoleFormatter,
    JSONFormatter,
    LedgerEventFilter,
    SimulationLogger,
    get_logger,
    get_simulation_logger,
    setup_logging,
)


def _record(msg: str = "Test message", level: int = logging.INFO, exc_info=None) -> logging.LogRecord:
    return logging.LogRecord(
        name="test.module",
        level=level,
        pathname="test.py",
        lineno=10,
        msg=msg,
        args=(),
        exc_info=exc_info,
    )


@pytest.fixture
def restore_root_logger():
    """Put the root logger back the way it was after setup_logging runs."""
    root = logging.getLogger()
    handlers = list(root.handlers)
    level = root.level
    yield
    for handler in root.handlers:
        handler.close()
    root.handlers[:] = handlers
    root.setLevel(level)


class TestJSONFormatter:
    """Tests for JSONFormatter."""

    def test_basic_format(self) -> None:
        """Test basic JSON formatting."""
        data = json.loads(JSONFormatter().format(_record()))

        assert data["level"] == "INFO"
        assert data["logger"] == "test.module"
        assert data["message"] == "Test message"
        assert "timestamp" in data

    def test_extra_fields(self) -> None:
        """Test that extra fields are included."""
        record = _record()
        record.account_id = "acct-1"
        record.amount = 412.5

        data = json.loads(JSONFormatter().format(record))

        assert data["account_id"] == "acct-1"
        assert data["amount"] == 412.5

    def test_non_serializable_extra_is_stringified(self) -> None:
        """Dates and other objects become strings."""
        from datetime import date

        record = _record()
        record.payout_date = date(2024, 1, 5)

        data = json.loads(JSONFormatter().format(record))

        assert data["payout_date"] == "2024-01-05"

    def test_exception_formatting(self) -> None:
        """Test exception info is included."""
        try:
            raise ValueError("Test error")
        except ValueError:
            exc_info = sys.exc_info()

        data = json.loads(JSONFormatter().format(_record("Error occurred", logging.ERROR, exc_info)))

        assert "exception" in data
        assert "ValueError: Test error" in data["exception"]


class TestConsoleFormatter:
    """Tests for ConsoleFormatter."""

    def test_basic_format(self) -> None:
        result = ConsoleFormatter(use_colors=False).format(_record())

        assert "INFO" in result
        assert "test.module" in result
        assert "Test message" in result

    def test_extra_fields_in_console(self) -> None:
        record = _record()
        record.account_id = "acct-1"

        result = ConsoleFormatter(use_colors=False).format(record)

        assert "account_id=acct-1" in result

    def test_src_prefix_is_stripped(self) -> None:
        record = _record()
        record.name = "src.engine.payout"

        result = ConsoleFormatter(use_colors=False).format(record)

        assert " - engine.payout - " in result


class TestLedgerEventFilter:
    """Tests for LedgerEventFilter."""

    def test_allows_ledger_events(self) -> None:
        for event in LedgerEventFilter.LEDGER_EVENTS:
            record = _record()
            record.event = event
            assert LedgerEventFilter().filter(record) is True

    def test_blocks_other_events(self) -> None:
        record = _record()
        record.event = "trades_materialized"

        assert LedgerEventFilter().filter(record) is False

    def test_blocks_records_without_event(self) -> None:
        assert LedgerEventFilter().filter(_record()) is False


class TestSimulationLogger:
    """Tests for SimulationLogger."""

    def test_payout_processed(self, caplog: pytest.LogCaptureFixture) -> None:
        with caplog.at_level(logging.INFO):
            SimulationLogger(logging.getLogger("test.sim")).payout_processed(
                account_id="acct-1",
                payout_date="2024-01-05",
                amount=412.18,
                source="trades",
                period=1,
            )

        assert len(caplog.records) == 1
        record = caplog.records[0]
        assert record.event == "payout_processed"
        assert record.account_id == "acct-1"
        assert record.amount == 412.18
        assert record.source == "trades"

    def test_capital_injected(self, caplog: pytest.LogCaptureFixture) -> None:
        with caplog.at_level(logging.INFO):
            SimulationLogger(logging.getLogger("test.sim")).capital_injected(
                "acct-1", 5000.0, "2024-01-16", 1, 400.0
            )

        record = caplog.records[0]
        assert record.event == "capital_injected"
        assert record.prorated == 400.0

    def test_precision_warning_is_warning(self, caplog: pytest.LogCaptureFixture) -> None:
        with caplog.at_level(logging.WARNING):
            SimulationLogger(logging.getLogger("test.sim")).precision_warning(
                "volatility", 100.0, 100.5
            )

        record = caplog.records[0]
        assert record.levelname == "WARNING"
        assert record.event == "precision_warning"
        assert record.difference == pytest.approx(0.5)

    def test_trades_materialized_is_debug(self, caplog: pytest.LogCaptureFixture) -> None:
        with caplog.at_level(logging.DEBUG):
            SimulationLogger(logging.getLogger("test.sim")).trades_materialized(
                "acct-1", "2024-01-05", 54, 120.0
            )

        assert caplog.records[0].levelname == "DEBUG"


class TestSetupLogging:
    """Tests for setup_logging function."""

    def test_creates_log_directory(self, tmp_path: Path, restore_root_logger) -> None:
        log_dir = tmp_path / "logs"
        setup_logging(log_dir=str(log_dir), console_output=False)

        assert log_dir.exists()

    def test_creates_log_files(self, tmp_path: Path, restore_root_logger) -> None:
        setup_logging(log_dir=str(tmp_path), console_output=False)

        logger = get_logger("test")
        logger.info("Test message")
        logger.error("Error message")
        for handler in logging.getLogger().handlers:
            handler.flush()

        assert (tmp_path / "compoundsim.json.log").exists()
        assert (tmp_path / "compoundsim.error.log").exists()

    def test_ledger_log_only_has_ledger_events(self, tmp_path: Path, restore_root_logger) -> None:
        setup_logging(log_dir=str(tmp_path), console_output=False)

        get_logger("test").info("Unrelated")
        get_simulation_logger("test.sim").payout_skipped("acct-1", "2024-01-06", "no target")
        for handler in logging.getLogger().handlers:
            handler.flush()

        lines = (tmp_path / "compoundsim.ledger.log").read_text().splitlines()
        assert len(lines) == 1
        assert json.loads(lines[0])["event"] == "payout_skipped"

    def test_json_log_format(self, tmp_path: Path, restore_root_logger) -> None:
        setup_logging(log_dir=str(tmp_path), console_output=False)

        get_logger("test.json").info("Test message", extra={"key": "value"})
        for handler in logging.getLogger().handlers:
            handler.flush()

        with open(tmp_path / "compoundsim.json.log") as f:
            for line in f:
                data = json.loads(line)
                assert "timestamp" in data
                assert "level" in data
                assert "message" in data


class TestGetLogger:
    """Tests for get_logger and get_simulation_logger functions."""

    def test_get_logger_returns_logger(self) -> None:
        logger = get_logger("test.module")
        assert isinstance(logger, logging.Logger)
        assert logger.name == "test.module"

    def test_get_simulation_logger(self) -> None:
        assert isinstance(get_simulation_logger("test.sim"), SimulationLogger)
