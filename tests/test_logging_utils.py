"""Tests for logging utilities."""
import io
import logging
import pytest

from story_relay.logging_utils import SafeStreamHandler, configure_safe_logging, resolve_level


def make_record(msg="test message"):
    return logging.LogRecord(
        name="test",
        level=logging.INFO,
        pathname="",
        lineno=0,
        msg=msg,
        args=(),
        exc_info=None,
    )


class TestSafeStreamHandler:
    """Tests for SafeStreamHandler exception handling."""

    @pytest.mark.parametrize("error", [BrokenPipeError("stdout closed"), ValueError("I/O operation on closed file")])
    def test_ignores_closed_stream_errors(self, error, monkeypatch):
        """Broken pipes and closed files are swallowed."""
        handler = SafeStreamHandler(stream=io.StringIO())

        def failing_emit(self, record):
            raise error

        monkeypatch.setattr(logging.StreamHandler, "emit", failing_emit)

        # Should not raise
        handler.emit(make_record())

    def test_reraises_other_exceptions(self, monkeypatch):
        """SafeStreamHandler should re-raise non-pipe/file errors."""
        handler = SafeStreamHandler(stream=io.StringIO())

        def bad_emit(self, record):
            raise RuntimeError("unexpected error")

        monkeypatch.setattr(logging.StreamHandler, "emit", bad_emit)

        with pytest.raises(RuntimeError, match="unexpected error"):
            handler.emit(make_record())

    def test_normal_logging_works(self):
        stream = io.StringIO()
        handler = SafeStreamHandler(stream=stream)
        handler.setFormatter(logging.Formatter("%(message)s"))

        handler.emit(make_record("story created"))

        assert "story created" in stream.getvalue()


class TestResolveLevel:
    def test_names_and_numbers(self):
        assert resolve_level("debug") == logging.DEBUG
        assert resolve_level(logging.ERROR) == logging.ERROR

    def test_reads_log_level_env(self, monkeypatch):
        monkeypatch.setenv("LOG_LEVEL", "INFO")
        assert resolve_level() == logging.INFO

    def test_defaults_to_warning(self, monkeypatch):
        monkeypatch.delenv("LOG_LEVEL", raising=False)
        assert resolve_level() == logging.WARNING

    def test_unknown_name_falls_back_to_warning(self):
        assert resolve_level("chatty") == logging.WARNING


class TestConfigureSafeLogging:
    """Tests for configure_safe_logging function."""

    def setup_method(self):
        root = logging.getLogger()
        self._saved_handlers = root.handlers[:]
        for handler in root.handlers[:]:
            if isinstance(handler, SafeStreamHandler):
                root.removeHandler(handler)
        self._saved_level = root.level
        root.setLevel(logging.WARNING)

    def teardown_method(self):
        root = logging.getLogger()
        for handler in root.handlers[:]:
            if isinstance(handler, SafeStreamHandler):
                root.removeHandler(handler)
        root.setLevel(self._saved_level)

    def test_adds_safe_stream_handler(self):
        configure_safe_logging("INFO")

        assert any(isinstance(h, SafeStreamHandler) for h in logging.getLogger().handlers)

    def test_prevents_duplicate_handlers(self):
        """Streamlit reruns call this on every interaction."""
        configure_safe_logging("INFO")
        configure_safe_logging("INFO")
        configure_safe_logging("INFO")

        safe_handlers = [h for h in logging.getLogger().handlers if isinstance(h, SafeStreamHandler)]
        assert len(safe_handlers) == 1

    def test_lowers_root_level(self):
        configure_safe_logging(logging.DEBUG)

        assert logging.getLogger().level == logging.DEBUG

    def test_respects_more_permissive_level(self):
        root = logging.getLogger()
        root.setLevel(logging.DEBUG)

        configure_safe_logging("INFO")

        assert root.level == logging.DEBUG

    def test_repeat_call_updates_handler_level(self):
        configure_safe_logging("WARNING")
        configure_safe_logging("DEBUG")

        handler = next(h for h in logging.getLogger().handlers if isinstance(h, SafeStreamHandler))
        assert handler.level == logging.DEBUG
