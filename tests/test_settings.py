import pytest

import emailsift.settings as settings
from emailsift.config import ValidationConfig
from emailsift.models import ListOrder

ENV_NAMES = (
    "EMAILSIFT_RULES",
    "EMAILSIFT_ORDER",
    "EMAILSIFT_MAX_RESULTS",
    "EMAILSIFT_WORKERS",
    "EMAILSIFT_CHUNK_SIZE",
    "LOG_LEVEL",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ENV_NAMES:
        monkeypatch.delenv(name, raising=False)


def test_defaults_without_environment():
    loaded = settings.load_settings(use_dotenv=False)
    assert loaded == settings.Settings()
    assert loaded.rules == "generic"
    assert loaded.order is ListOrder.ALPHABETICAL
    assert loaded.max_results is None
    assert loaded.workers == 1
    assert loaded.chunk_size == 5000
    assert loaded.log_level == "INFO"


def test_values_are_read_from_environment(monkeypatch):
    monkeypatch.setenv("EMAILSIFT_RULES", "STRICT")
    monkeypatch.setenv("EMAILSIFT_ORDER", "occurrences")
    monkeypatch.setenv("EMAILSIFT_MAX_RESULTS", "10")
    monkeypatch.setenv("EMAILSIFT_WORKERS", "4")
    monkeypatch.setenv("EMAILSIFT_CHUNK_SIZE", " 250 ")
    monkeypatch.setenv("LOG_LEVEL", "debug")

    loaded = settings.load_settings(use_dotenv=False)
    assert loaded.rules == "strict"
    assert loaded.validation_config() == ValidationConfig.strict()
    assert loaded.order is ListOrder.OCCURRENCES
    assert loaded.max_results == 10
    assert loaded.workers == 4
    assert loaded.chunk_size == 250
    assert loaded.log_level == "DEBUG"


def test_bad_values_fall_back_to_defaults(monkeypatch, caplog):
    monkeypatch.setenv("EMAILSIFT_RULES", "loose")
    monkeypatch.setenv("EMAILSIFT_ORDER", "random")
    monkeypatch.setenv("EMAILSIFT_MAX_RESULTS", "ten")
    monkeypatch.setenv("EMAILSIFT_WORKERS", "0")

    with caplog.at_level("WARNING"):
        loaded = settings.load_settings(use_dotenv=False)

    assert loaded.rules == "generic"
    assert loaded.order is ListOrder.ALPHABETICAL
    assert loaded.max_results is None
    assert loaded.workers == 1
    assert "EMAILSIFT_RULES" in caplog.text
    assert "EMAILSIFT_WORKERS" in caplog.text


def test_dotenv_is_loaded_when_requested(monkeypatch):
    calls = []
    monkeypatch.setattr(settings, "load_dotenv", lambda: calls.append(True))
    settings.load_settings()
    assert calls == [True]
    settings.load_settings(use_dotenv=False)
    assert calls == [True]
