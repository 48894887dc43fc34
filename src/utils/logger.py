"""
Structured JSON Logging for CompoundSim.

Provides:
- JSON-formatted log output for machine parsing
- Log rotation by size
- Separate handlers for errors and ledger events
- Simulation-specific logging with structured fields
- Console output with human-readable format

Usage:
    from src.utils.logger import get_logger, setup_logging

    # Setup logging (call once at startup)
    setup_logging(log_dir="logs", level="INFO")

    # Get logger for a module
    logger = get_logger(__name__)
    logger.info("Plan created", extra={"account_id": "acct-1", "periods": 12})

    # Simulation events with structured fields
    sim_logger = get_simulation_logger(__name__)
    sim_logger.payout_processed("acct-1", "2024-01-05", 412.18, "trades", 1)
"""
import json
import logging
import sys
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any, Dict, Optional

# Standard LogRecord attributes, never treated as extra fields
_SKIP_ATTRS = {
    "name", "msg", "args", "created", "filename", "funcName",
    "levelname", "levelno", "lineno", "module", "msecs",
    "pathname", "process", "processName", "relativeCreated",
    "stack_info", "exc_info", "exc_text", "thread", "threadName",
    "taskName", "message",
}


class JSONFormatter(logging.Formatter):
    """
    JSON log formatter for structured logging.

    Output format:
    {
        "timestamp": "2024-01-15T10:30:45.123456Z",
        "level": "INFO",
        "logger": "src.engine.payout",
        "message": "Payout processed",
        "event": "payout_processed",
        "account_id": "acct-1",
        ...
    }
    """

    def __init__(
        self,
        include_timestamp: bool = True,
        include_level: bool = True,
        include_logger: bool = True,
        include_traceback: bool = True,
    ) -> None:
        """
        Initialize JSON formatter.

        Args:
            include_timestamp: Include ISO timestamp
            include_level: Include log level
            include_logger: Include logger name
            include_traceback: Include exception traceback
        """
        super().__init__()
        self.include_timestamp = include_timestamp
        self.include_level = include_level
        self.include_logger = include_logger
        self.include_traceback = include_traceback

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON."""
        log_data: Dict[str, Any] = {}

        if self.include_timestamp:
            log_data["timestamp"] = datetime.now(timezone.utc).isoformat()
        if self.include_level:
            log_data["level"] = record.levelname
        if self.include_logger:
            log_data["logger"] = record.name

        log_data["message"] = record.getMessage()

        for key, value in record.__dict__.items():
            if key in _SKIP_ATTRS or key.startswith("_"):
                continue
            # Dates, enums and the like fall back to str
            try:
                json.dumps(value)
                log_data[key] = value
            except (TypeError, ValueError):
                log_data[key] = str(value)

        if record.exc_info and self.include_traceback:
            log_data["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_data, default=str)


class ConsoleFormatter(logging.Formatter):
    """
    Human-readable console formatter with colors.

    Format: [LEVEL] timestamp - logger - message (extra_key=extra_value, ...)
    """

    COLORS = {
        "DEBUG": "\033[36m",     # Cyan
        "INFO": "\033[32m",      # Green
        "WARNING": "\033[33m",   # Yellow
        "ERROR": "\033[31m",     # Red
        "CRITICAL": "\033[35m",  # Magenta
    }
    RESET = "\033[0m"

    def __init__(self, use_colors: bool = True) -> None:
        super().__init__()
        self.use_colors = use_colors and sys.stdout.isatty()

    def format(self, record: logging.LogRecord) -> str:
        """Format log record for console."""
        timestamp = datetime.now().strftime("%H:%M:%S")

        level = record.levelname
        if self.use_colors:
            level = f"{self.COLORS.get(level, '')}{level:8}{self.RESET}"
        else:
            level = f"{level:8}"

        logger_name = record.name
        if logger_name.startswith("src."):
            logger_name = logger_name[4:]

        extras = [
            f"{key}={value}"
            for key, value in record.__dict__.items()
            if key not in _SKIP_ATTRS and not key.startswith("_")
        ]

        output = f"[{level}] {timestamp} - {logger_name} - {record.getMessage()}"
        if extras:
            output += f" ({', '.join(extras)})"

        if record.exc_info:
            output += "\n" + self.formatException(record.exc_info)

        return output


class SimulationLogger:
    """
    Specialized logger for simulation ledger events.

    Provides structured logging methods for:
    - Plan creation
    - Capital injections
    - Daily payouts (processed and skipped)
    - Lazy trade materialization
    - Precision warnings from the generators
    """

    def __init__(self, logger: logging.Logger) -> None:
        self.logger = logger

    def plan_created(
        self,
        account_id: str,
        principal: float,
        activation_date: str,
        periods: int,
        final_balance: float,
    ) -> None:
        """Log a new twelve-period plan."""
        self.logger.info(
            f"Plan created: {account_id} ${principal:,.2f} -> ${final_balance:,.2f} "
            f"over {periods} periods",
            extra={
                "event": "plan_created",
                "account_id": account_id,
                "principal": principal,
                "activation_date": activation_date,
                "periods": periods,
                "final_balance": final_balance,
            },
        )

    def capital_injected(
        self,
        account_id: str,
        amount: float,
        injection_date: str,
        period: int,
        prorated: float,
    ) -> None:
        """Log a mid-period deposit."""
        self.logger.info(
            f"Capital injected: {account_id} +${amount:,.2f} in period {period} "
            f"(prorated ${prorated:,.2f})",
            extra={
                "event": "capital_injected",
                "account_id": account_id,
                "amount": amount,
                "injection_date": injection_date,
                "period": period,
                "prorated": prorated,
            },
        )

    def payout_processed(
        self,
        account_id: str,
        payout_date: str,
        amount: float,
        source: str,
        period: int,
    ) -> None:
        """Log a credited daily payout."""
        self.logger.info(
            f"Payout processed: {account_id} {payout_date} ${amount:,.2f} ({source})",
            extra={
                "event": "payout_processed",
                "account_id": account_id,
                "payout_date": payout_date,
                "amount": amount,
                "source": source,
                "period": period,
            },
        )

    def payout_skipped(self, account_id: str, payout_date: str, reason: str) -> None:
        """Log a payout that did not credit anything."""
        self.logger.info(
            f"Payout skipped: {account_id} {payout_date} - {reason}",
            extra={
                "event": "payout_skipped",
                "account_id": account_id,
                "payout_date": payout_date,
                "reason": reason,
            },
        )

    def trades_materialized(
        self,
        account_id: str,
        trade_date: str,
        trade_count: int,
        total: float,
    ) -> None:
        """Log lazily generated trades for a day."""
        self.logger.debug(
            f"Trades materialized: {account_id} {trade_date} {trade_count} trades, "
            f"net ${total:,.2f}",
            extra={
                "event": "trades_materialized",
                "account_id": account_id,
                "trade_date": trade_date,
                "trade_count": trade_count,
                "total": total,
            },
        )

    def precision_warning(self, component: str, expected: float, actual: float) -> None:
        """Log a sum that missed its target by more than tolerance."""
        self.logger.warning(
            f"Precision warning: {component} expected {expected:.4f}, got {actual:.4f}",
            extra={
                "event": "precision_warning",
                "component": component,
                "expected": expected,
                "actual": actual,
                "difference": actual - expected,
            },
        )


class LedgerEventFilter(logging.Filter):
    """Filter that only allows events that touch an account ledger."""

    LEDGER_EVENTS = {
        "plan_created",
        "capital_injected",
        "payout_processed",
        "payout_skipped",
    }

    def filter(self, record: logging.LogRecord) -> bool:
        return getattr(record, "event", None) in self.LEDGER_EVENTS


def setup_logging(
    log_dir: str = "logs",
    level: str = "INFO",
    max_bytes: int = 10 * 1024 * 1024,  # 10 MB
    backup_count: int = 10,
    console_output: bool = True,
    json_output: bool = True,
    use_colors: bool = True,
) -> None:
    """
    Setup logging configuration.

    Creates:
    - Console handler (human-readable format)
    - JSON file handler (structured logs with rotation)
    - Error file handler (errors only)
    - Ledger file handler (ledger events only)

    Args:
        log_dir: Directory for log files
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        max_bytes: Max size per log file before rotation
        backup_count: Number of backup files to keep
        console_output: Enable console logging
        json_output: Enable JSON file logging
        use_colors: Use colors in console output
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, level.upper()))
    root_logger.handlers.clear()

    if console_output:
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setLevel(logging.DEBUG)
        console_handler.setFormatter(ConsoleFormatter(use_colors=use_colors))
        root_logger.addHandler(console_handler)

    if not json_output:
        return

    log_path = Path(log_dir)
    log_path.mkdir(parents=True, exist_ok=True)

    def _rotating(filename: str, handler_level: int) -> RotatingFileHandler:
        handler = RotatingFileHandler(
            log_path / filename,
            maxBytes=max_bytes,
            backupCount=backup_count,
        )
        handler.setLevel(handler_level)
        handler.setFormatter(JSONFormatter())
        return handler

    root_logger.addHandler(_rotating("compoundsim.json.log", logging.DEBUG))
    root_logger.addHandler(_rotating("compoundsim.error.log", logging.ERROR))

    ledger_handler = _rotating("compoundsim.ledger.log", logging.INFO)
    ledger_handler.addFilter(LedgerEventFilter())
    root_logger.addHandler(ledger_handler)


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger instance.

    Args:
        name: Logger name (usually __name__)

    Returns:
        Logger instance
    """
    return logging.getLogger(name)


def get_simulation_logger(name: str) -> SimulationLogger:
    """
    Get a simulation event logger.

    Args:
        name: Logger name (usually __name__)

    Returns:
        SimulationLogger instance
    """
    return SimulationLogger(logging.getLogger(name))


def configure_simple_logging(level: str = "INFO", log_file: Optional[str] = None) -> None:
    """Simple logging configuration for scripts and testing."""
    handlers = [logging.StreamHandler(sys.stdout)]
    if log_file:
        handlers.append(logging.FileHandler(log_file))

    logging.basicConfig(
        level=getattr(logging, level.upper()),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=handlers,
    )
