"""
Structured logging system for musematch.

Provides centralized logging with console and file outputs, plus
session metrics (swipes, matches, messages, failures) for monitoring
how the matching core is used.
"""

import logging
import sys
from pathlib import Path
from typing import Optional
from datetime import datetime
import json


class StructuredLogger:
    """
    Centralized logger with support for console and file outputs.
    Tracks metrics for the discovery deck, match ledger and messaging.
    """

    def __init__(
        self,
        name: str = "musematch",
        level: str = "INFO",
        log_dir: Optional[Path] = None,
        enable_file: bool = True,
        enable_console: bool = True,
    ):
        """
        Initialize the structured logger.

        Args:
            name: Logger name
            level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
            log_dir: Directory for log files (default: logs/)
            enable_file: Write logs to file
            enable_console: Output logs to console
        """
        self.logger = logging.getLogger(name)
        self.logger.setLevel(getattr(logging, level.upper()))
        self.logger.handlers.clear()
        self.logger.propagate = False

        self.metrics = {
            "decisions": {"like": 0, "pass": 0},
            "matches_created": 0,
            "matches_existing": 0,
            "messages_sent": {},
            "threads_marked_read": 0,
            "rejections_by_type": {},
            "storage_failures": 0,
        }

        if enable_console:
            console_handler = logging.StreamHandler(sys.stderr)
            console_handler.setLevel(getattr(logging, level.upper()))
            console_formatter = logging.Formatter(
                fmt='%(asctime)s | %(levelname)-8s | %(name)s | %(message)s',
                datefmt='%Y-%m-%d %H:%M:%S'
            )
            console_handler.setFormatter(console_formatter)
            self.logger.addHandler(console_handler)

        if enable_file:
            if log_dir is None:
                log_dir = Path("logs")
            log_dir.mkdir(parents=True, exist_ok=True)

            log_file = log_dir / f"musematch_{datetime.now().strftime('%Y%m%d')}.log"
            file_handler = logging.FileHandler(log_file, encoding='utf-8')
            file_handler.setLevel(logging.DEBUG)  # Always log everything to file
            file_formatter = logging.Formatter(
                fmt='%(asctime)s | %(levelname)-8s | %(name)s:%(lineno)d | %(message)s',
                datefmt='%Y-%m-%d %H:%M:%S'
            )
            file_handler.setFormatter(file_formatter)
            self.logger.addHandler(file_handler)

    def debug(self, message: str, **kwargs):
        """Log debug message with optional context."""
        self._log(logging.DEBUG, message, kwargs)

    def info(self, message: str, **kwargs):
        """Log info message with optional context."""
        self._log(logging.INFO, message, kwargs)

    def warning(self, message: str, **kwargs):
        """Log warning message with optional context."""
        self._log(logging.WARNING, message, kwargs)

    def error(self, message: str, **kwargs):
        """Log error message with optional context."""
        self._log(logging.ERROR, message, kwargs)

    def critical(self, message: str, **kwargs):
        """Log critical message with optional context."""
        self._log(logging.CRITICAL, message, kwargs)

    def _log(self, level: int, message: str, context: dict):
        if context:
            message = f"{message} | Context: {json.dumps(context, default=str)}"
        self.logger.log(level, message)

    # Metric tracking methods

    def record_decision(self, direction: str):
        """Count a like or pass on the deck."""
        self.metrics["decisions"][direction] = self.metrics["decisions"].get(direction, 0) + 1

    def record_match(self, created: bool):
        """Count a match request; `created` is False when the pair already matched."""
        if created:
            self.metrics["matches_created"] += 1
        else:
            self.metrics["matches_existing"] += 1

    def record_message(self, thread_type: str):
        sent = self.metrics["messages_sent"]
        sent[thread_type] = sent.get(thread_type, 0) + 1

    def record_thread_read(self):
        self.metrics["threads_marked_read"] += 1

    def record_rejection(self, error_type: str):
        """Record a validation or precondition rejection."""
        rejections = self.metrics["rejections_by_type"]
        rejections[error_type] = rejections.get(error_type, 0) + 1

    def record_storage_failure(self):
        self.metrics["storage_failures"] += 1

    def get_metrics(self) -> dict:
        """Return current metrics."""
        metrics_copy = json.loads(json.dumps(self.metrics))
        likes = metrics_copy["decisions"].get("like", 0)
        total = sum(metrics_copy["decisions"].values())
        metrics_copy["like_rate"] = round(likes / total, 3) if total else 0.0
        return metrics_copy

    def log_metrics_summary(self):
        """Log a summary of current metrics."""
        metrics = self.get_metrics()
        decisions = metrics["decisions"]

        self.info("=== Session Metrics ===")
        self.info(
            f"Decisions: {decisions.get('like', 0)} likes / {decisions.get('pass', 0)} passes "
            f"({metrics['like_rate'] * 100:.1f}% like rate)"
        )
        self.info(f"Matches: {metrics['matches_created']} created, {metrics['matches_existing']} already existed")

        if metrics["messages_sent"]:
            self.info("Messages Sent:")
            for thread_type, count in metrics["messages_sent"].items():
                self.info(f"  {thread_type}: {count}")

        if metrics["rejections_by_type"]:
            self.info("Rejections:")
            for error_type, count in metrics["rejections_by_type"].items():
                self.info(f"  {error_type}: {count}")

        if metrics["storage_failures"]:
            self.warning(f"Storage failures: {metrics['storage_failures']}")


# Global logger instance
_global_logger: Optional[StructuredLogger] = None


def get_logger(
    name: str = "musematch",
    level: str = "INFO",
    **kwargs
) -> StructuredLogger:
    """
    Get or create the global logger instance.

    Args:
        name: Logger name
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        **kwargs: Additional arguments passed to StructuredLogger

    Returns:
        StructuredLogger instance
    """
    global _global_logger

    if _global_logger is None:
        _global_logger = StructuredLogger(name=name, level=level, **kwargs)

    return _global_logger


def reset_logger():
    """Reset the global logger (useful for testing)."""
    global _global_logger
    _global_logger = None
