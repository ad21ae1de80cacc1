"""
Tests for logger.py - structured logging and session metrics.
"""

from musematch.logger import StructuredLogger, get_logger, reset_logger


class TestStructuredLogger:
    """Test StructuredLogger functionality."""

    def test_logger_creates_log_file(self, tmp_path):
        """Test that the logger writes context to a daily log file."""
        log_dir = tmp_path / "logs"
        logger = StructuredLogger(name="test_file", log_dir=log_dir, enable_console=False)
        logger.info("hello", viewer_id="u1")

        log_files = list(log_dir.glob("musematch_*.log"))
        assert len(log_files) == 1
        assert 'hello | Context: {"viewer_id": "u1"}' in log_files[0].read_text()

    def test_logger_without_file(self, tmp_path):
        """Test that no log directory is created when file logging is off."""
        StructuredLogger(name="test_nofile", log_dir=tmp_path / "nofile_logs", enable_file=False, enable_console=False)
        assert not (tmp_path / "nofile_logs").exists()

    def test_decision_metrics_and_like_rate(self, tmp_path):
        """Test decision counts and the derived like rate."""
        logger = StructuredLogger(name="test_decisions", enable_file=False, enable_console=False)
        logger.record_decision("like")
        logger.record_decision("pass")
        logger.record_decision("pass")
        logger.record_decision("pass")

        metrics = logger.get_metrics()
        assert metrics["decisions"] == {"like": 1, "pass": 3}
        assert metrics["like_rate"] == 0.25

    def test_like_rate_without_decisions(self):
        """Test that the like rate is zero before any decision."""
        logger = StructuredLogger(name="test_empty", enable_file=False, enable_console=False)
        assert logger.get_metrics()["like_rate"] == 0.0

    def test_match_message_and_rejection_metrics(self):
        """Test the match, message, rejection and failure counters."""
        logger = StructuredLogger(name="test_counts", enable_file=False, enable_console=False)
        logger.record_match(created=True)
        logger.record_match(created=False)
        logger.record_message("match")
        logger.record_message("match")
        logger.record_message("direct")
        logger.record_rejection("EmptyMessageError")
        logger.record_storage_failure()
        logger.record_thread_read()

        metrics = logger.get_metrics()
        assert metrics["matches_created"] == 1
        assert metrics["matches_existing"] == 1
        assert metrics["messages_sent"] == {"match": 2, "direct": 1}
        assert metrics["rejections_by_type"] == {"EmptyMessageError": 1}
        assert metrics["storage_failures"] == 1
        assert metrics["threads_marked_read"] == 1

    def test_get_metrics_returns_copy(self):
        """Test that changing returned metrics does not change the logger."""
        logger = StructuredLogger(name="test_copy", enable_file=False, enable_console=False)
        logger.get_metrics()["decisions"]["like"] = 99
        assert logger.get_metrics()["decisions"]["like"] == 0

    def test_metrics_summary_is_logged(self, tmp_path):
        """Test that the metrics summary ends up in the log file."""
        log_dir = tmp_path / "summary"
        logger = StructuredLogger(name="test_summary", log_dir=log_dir, enable_console=False)
        logger.record_decision("like")
        logger.record_storage_failure()
        logger.log_metrics_summary()

        text = next(log_dir.glob("*.log")).read_text()
        assert "1 likes / 0 passes (100.0% like rate)" in text
        assert "Storage failures: 1" in text


class TestGlobalLogger:
    def test_get_logger_is_singleton(self):
        """Test that get_logger returns the same instance."""
        assert get_logger() is get_logger()

    def test_reset_logger(self, tmp_path):
        """Test that reset_logger makes get_logger build a new instance."""
        first = get_logger()
        reset_logger()
        second = get_logger(log_dir=tmp_path / "other", enable_console=False)
        assert first is not second
