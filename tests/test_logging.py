import logging

from chatrelay.logging import LEVEL_ENV, get_logger, level_from_env


def test_level_defaults_to_warning(monkeypatch):
    monkeypatch.delenv(LEVEL_ENV, raising=False)
    assert level_from_env() == "WARNING"


def test_level_from_environment(monkeypatch):
    monkeypatch.setenv(LEVEL_ENV, "debug")
    assert level_from_env() == "DEBUG"


def test_invalid_level_falls_back(monkeypatch):
    monkeypatch.setenv(LEVEL_ENV, "chatty")
    assert level_from_env() == "WARNING"


def test_module_loggers_share_package_handler():
    logger = get_logger("chatrelay.reactor")
    assert logger.name == "chatrelay.reactor"
    assert logging.getLogger("chatrelay").handlers
