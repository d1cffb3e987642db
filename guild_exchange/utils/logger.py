"""
Logging configuration and utilities for the exchange.

Provides structured logging with JSON format for production environments
and human-readable format for development.
"""

import logging
import json
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional


class JSONFormatter(logging.Formatter):
    """
    Custom JSON formatter for structured logging.

    Converts log records to JSON format with additional context fields.
    """

    EXTRA_FIELDS = ("order_id", "trade_id", "security_id", "user_id", "correlation_id")

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON string."""
        log_data = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        for name in self.EXTRA_FIELDS:
            value = getattr(record, name, None)
            if value is not None:
                log_data[name] = str(value)

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_data)


class ExchangeLogger:
    """
    Centralized logger for the exchange.

    Orders, trades and price updates go to dedicated child loggers so they can
    be split into separate files when a log directory is configured.
    """

    def __init__(
        self,
        name: str = "GuildExchange",
        log_level: str = "INFO",
        log_dir: Optional[Path] = None,
        use_json: bool = False,
    ):
        """
        Initialize the exchange logger.

        Args:
            name: Logger name
            log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
            log_dir: Directory for log files (None for console only)
            use_json: Use JSON formatting (for production)
        """
        self.logger = logging.getLogger(name)
        self.logger.setLevel(getattr(logging, log_level.upper()))
        self.logger.handlers.clear()

        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setLevel(logging.DEBUG)
        console_handler.setFormatter(self._formatter(use_json))
        self.logger.addHandler(console_handler)

        if log_dir:
            log_dir = Path(log_dir)
            log_dir.mkdir(parents=True, exist_ok=True)

            self.logger.addHandler(
                self._create_file_handler(log_dir / "application.log", use_json)
            )

            self.trade_logger = logging.getLogger(f"{name}.trades")
            self.trade_logger.setLevel(logging.INFO)
            self.trade_logger.addHandler(
                self._create_file_handler(log_dir / "trades.log", use_json)
            )

            self.order_logger = logging.getLogger(f"{name}.orders")
            self.order_logger.setLevel(logging.INFO)
            self.order_logger.addHandler(
                self._create_file_handler(log_dir / "orders.log", use_json)
            )

            error_handler = self._create_file_handler(log_dir / "errors.log", use_json)
            error_handler.setLevel(logging.ERROR)
            self.logger.addHandler(error_handler)
        else:
            self.trade_logger = self.logger
            self.order_logger = self.logger

    @staticmethod
    def _formatter(use_json: bool) -> logging.Formatter:
        if use_json:
            return JSONFormatter()
        return logging.Formatter(
            '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
            datefmt='%Y-%m-%d %H:%M:%S'
        )

    def _create_file_handler(self, filepath: Path, use_json: bool) -> logging.FileHandler:
        """Create a file handler with appropriate formatter."""
        handler = logging.FileHandler(filepath)
        handler.setFormatter(self._formatter(use_json))
        return handler

    def log_order_submission(
        self,
        user_id: str,
        security_id: str,
        order_kind: str,
        side: str,
        volume: int,
        price: Optional[int] = None,
    ):
        """Log order submission."""
        extra = {"user_id": user_id, "security_id": security_id}

        if price is not None:
            msg = f"Order submitted: {user_id} {side} {volume} {security_id} @ {price} ({order_kind})"
        else:
            msg = f"Order submitted: {user_id} {side} {volume} {security_id} MARKET ({order_kind})"

        self.order_logger.info(msg, extra=extra)

    def log_trade_execution(
        self,
        trade_id,
        security_id: str,
        price: int,
        volume: int,
        buyer: str,
        seller: str,
    ):
        """Log trade execution."""
        extra = {"trade_id": trade_id, "security_id": security_id}
        msg = f"Trade executed: {volume} {security_id} @ {price} (buyer: {buyer}, seller: {seller})"
        self.trade_logger.info(msg, extra=extra)

    def log_order_cancellation(
        self,
        order_id: int,
        security_id: str,
        reason: str = "User requested",
    ):
        """Log order cancellation."""
        extra = {"order_id": order_id, "security_id": security_id}
        msg = f"Order cancelled: {order_id} ({reason})"
        self.order_logger.info(msg, extra=extra)

    def log_price_update(
        self,
        security_id: str,
        old_price: int,
        new_price: int,
        true_price: Optional[float],
    ):
        """Log an activity-driven price drift step."""
        true_str = f"{true_price:.4f}" if true_price is not None else "n/a"
        msg = f"Price drift {security_id}: {old_price} -> {new_price} (true price {true_str})"
        self.logger.info(msg, extra={"security_id": security_id})

    def log_error(
        self,
        message: str,
        exception: Optional[Exception] = None,
        **kwargs
    ):
        """Log error with optional exception."""
        if exception:
            self.logger.error(message, exc_info=exception, extra=kwargs)
        else:
            self.logger.error(message, extra=kwargs)

    def debug(self, message: str, **kwargs):
        """Log debug message."""
        self.logger.debug(message, extra=kwargs)

    def info(self, message: str, **kwargs):
        """Log info message."""
        self.logger.info(message, extra=kwargs)

    def warning(self, message: str, **kwargs):
        """Log warning message."""
        self.logger.warning(message, extra=kwargs)

    def error(self, message: str, **kwargs):
        """Log error message."""
        self.logger.error(message, extra=kwargs)


# Global logger instance
_logger: Optional[ExchangeLogger] = None


def get_logger(
    name: str = "GuildExchange",
    log_level: str = "INFO",
    log_dir: Optional[Path] = None,
    use_json: bool = False,
) -> ExchangeLogger:
    """
    Get or create the global logger instance.

    Args:
        name: Logger name
        log_level: Logging level
        log_dir: Directory for log files
        use_json: Use JSON formatting

    Returns:
        ExchangeLogger instance
    """
    global _logger

    if _logger is None:
        _logger = ExchangeLogger(name, log_level, log_dir, use_json)

    return _logger
