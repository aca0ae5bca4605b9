"""
Tests for logging configuration.
"""
import logging

import pytest

from support_bot.logging_config import APP_LOGGER, resolve_level, setup_logging


@pytest.fixture(autouse=True)
def restore_app_level():
    app_logger = logging.getLogger(APP_LOGGER)
    original = app_logger.level
    yield
    app_logger.setLevel(original)


@pytest.fixture
def quiet_loggers(monkeypatch):
    names = ["support_bot_test.client_a", "support_bot_test.client_b"]
    monkeypatch.setattr("support_bot.config.QUIET_LOGGERS", names)
    yield names
    for name in names:
        logging.getLogger(name).setLevel(logging.NOTSET)


class TestLevels:

    def test_level_comes_from_config(self, monkeypatch):
        monkeypatch.setattr("support_bot.config.LOG_LEVEL", "WARNING")

        assert setup_logging() == logging.WARNING
        assert logging.getLogger(APP_LOGGER).level == logging.WARNING

    def test_explicit_level_wins_over_config(self, monkeypatch):
        monkeypatch.setattr("support_bot.config.LOG_LEVEL", "WARNING")

        setup_logging(level="error")

        assert logging.getLogger(APP_LOGGER).level == logging.ERROR

    @pytest.mark.parametrize("name", ["INVALID_LEVEL", "", None])
    def test_unknown_or_missing_level_means_info(self, monkeypatch, name):
        monkeypatch.setattr("support_bot.config.LOG_LEVEL", "")

        assert resolve_level(name) == logging.INFO


class TestQuietLoggers:

    def test_configured_libraries_held_at_warning(self, quiet_loggers):
        setup_logging(level="INFO")

        assert [logging.getLogger(n).level for n in quiet_loggers] == [logging.WARNING, logging.WARNING]

    def test_debug_releases_them(self, quiet_loggers):
        setup_logging(level="INFO")
        setup_logging(level="DEBUG")

        assert [logging.getLogger(n).level for n in quiet_loggers] == [logging.NOTSET, logging.NOTSET]

    def test_default_list_covers_the_client_libraries(self):
        from support_bot import config

        assert {"openai", "httpx", "sqlalchemy.engine", "redis"} <= set(config.QUIET_LOGGERS)


class TestNoSensitiveDataInLogs:
    """Secrets must not reach INFO logs."""

    def test_openai_key_not_logged(self, caplog, monkeypatch):
        from support_bot.services.generation import build_openai_client

        with caplog.at_level(logging.DEBUG, logger="support_bot"):
            build_openai_client(api_key="sk-test-secret-value")

        for record in caplog.records:
            assert "sk-test-secret-value" not in record.getMessage()

    def test_passwords_not_logged(self, client, caplog):
        with caplog.at_level(logging.INFO, logger="support_bot"):
            client.post("/api/signup", json={
                "name": "Dana",
                "email": "dana@shop.com",
                "password": "very-secret-pw",
            })
            client.post("/api/login", json={"email": "dana@shop.com", "password": "very-secret-pw"})

        for record in caplog.records:
            assert "very-secret-pw" not in record.getMessage()
