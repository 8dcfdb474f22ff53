"""
Tests for settings and structured logging.
"""
import json
import logging

import pytest

from reflect.config import Settings, get_settings
from reflect.database import Store
from reflect.logging_config import (
    StructuredFormatter,
    StructuredLogger,
    TextFormatter,
    _with_error,
    configure_logging,
    repo_logger,
    timed,
)


def make_record(message="Post created", **context):
    record = logging.LogRecord("reflect.test", logging.INFO, __file__, 1, message, None, None)
    record.context = context
    record.logger_name = "reflect.test"
    return record


class TestSettings:
    """Test environment-driven configuration."""

    def test_defaults(self, monkeypatch):
        monkeypatch.delenv("REFLECT_DATABASE_URL", raising=False)
        settings = Settings(_env_file=None)
        assert settings.database_url.startswith("sqlite+aiosqlite://")
        assert settings.sqlite_foreign_keys is True
        assert settings.daily_memory_target == 5

    def test_environment_prefix(self, monkeypatch):
        monkeypatch.setenv("REFLECT_DATABASE_URL", "sqlite+aiosqlite:///:memory:")
        monkeypatch.setenv("REFLECT_DAILY_MEMORY_MAX_RANDOM", "4")
        settings = Settings(_env_file=None)
        assert settings.database_url == "sqlite+aiosqlite:///:memory:"
        assert settings.daily_memory_max_random == 4

    @pytest.mark.asyncio
    async def test_store_from_settings(self):
        store = Store.from_settings(Settings(_env_file=None, database_url="sqlite+aiosqlite:///:memory:"))
        try:
            await store.create_all()
        finally:
            await store.dispose()


class TestLogging:
    """Test log formatting and the timing decorator."""

    def test_json_formatter_merges_context(self):
        line = StructuredFormatter().format(make_record(post_id="abc", count=2))
        data = json.loads(line)
        assert data["message"] == "Post created"
        assert data["level"] == "INFO"
        assert data["logger"] == "reflect.test"
        assert (data["post_id"], data["count"]) == ("abc", 2)

    def test_text_formatter_hides_traceback(self):
        line = TextFormatter().format(make_record(post_id="abc", traceback="boom"))
        assert "Post created" in line
        assert "post_id=abc" in line
        assert "boom" not in line

    def test_logger_level_from_argument(self):
        logger = StructuredLogger("reflect.test.level", level="warning", fmt="text")
        assert logger.logger.level == logging.WARNING
        assert isinstance(logger.logger.handlers[0].formatter, TextFormatter)

    def test_logger_defaults_come_from_settings(self):
        settings = Settings(_env_file=None, log_level="error", log_format="text")
        logger = StructuredLogger("reflect.test.settings", settings=settings)
        assert logger.logger.level == logging.ERROR
        assert isinstance(logger.logger.handlers[0].formatter, TextFormatter)

    def test_debug_flag_lowers_level(self):
        logger = StructuredLogger("reflect.test.debug", settings=Settings(_env_file=None, debug=True))
        assert logger.logger.level == logging.DEBUG
        assert isinstance(logger.logger.handlers[0].formatter, StructuredFormatter)

    def test_environment_reaches_module_loggers(self, monkeypatch):
        monkeypatch.setenv("REFLECT_LOG_LEVEL", "warning")
        monkeypatch.setenv("REFLECT_LOG_FORMAT", "text")
        get_settings.cache_clear()
        try:
            configure_logging()
            assert repo_logger.logger.level == logging.WARNING
            assert len(repo_logger.logger.handlers) == 1
            assert isinstance(repo_logger.logger.handlers[0].formatter, TextFormatter)
        finally:
            monkeypatch.undo()
            get_settings.cache_clear()
            configure_logging(Settings(_env_file=None))

    def test_error_context_carries_exception(self):
        context = _with_error({"post_id": "abc"}, ValueError("bad mood"))
        assert context["error_type"] == "ValueError"
        assert context["error_message"] == "bad mood"
        assert "ValueError: bad mood" in context["traceback"]

    @pytest.mark.asyncio
    async def test_timed_passes_results_and_errors_through(self):
        logger = StructuredLogger("reflect.test.timed")

        @timed(logger)
        async def ok():
            return 42

        @timed(logger)
        def fails():
            raise ValueError("nope")

        assert await ok() == 42
        with pytest.raises(ValueError):
            fails()
