import logging

from jobtrigger import config
from jobtrigger import logger as logger_module


def test_no_notification_handler_without_token(monkeypatch):
    monkeypatch.setattr(config, "TELEGRAM_TOKEN", None)
    log = logging.getLogger("jobtrigger.test.plain")

    assert logger_module.get_log_handlers(log) == []
    assert log.handlers == []


def test_configure_logging_applies_level(monkeypatch):
    monkeypatch.setattr(config, "TELEGRAM_TOKEN", None)
    monkeypatch.setattr(config, "OVERRIDE_LOGGING", logging.ERROR)
    log = logging.getLogger("jobtrigger.test.level")

    assert logger_module.configure_logging(log) == []
    assert log.level == logging.ERROR


def test_notification_handler_with_token(monkeypatch):
    monkeypatch.setattr(config, "TELEGRAM_TOKEN", "token")
    monkeypatch.setattr(config, "TELEGRAM_CHAT_ID", "42")
    log = logging.getLogger("jobtrigger.test.telegram")

    try:
        (handler,) = logger_module.get_log_handlers(log)
        assert handler in log.handlers
        assert handler.level == logging.WARNING
    finally:
        log.handlers = []
