import logging

import pytest

from library_config import Settings, HANDOFF_PROPAGATE, HANDOFF_SKIP
from library_errors import ConfigurationError


def test_defaults(monkeypatch):
    monkeypatch.delenv("LIBRARY_LOG_LEVEL", raising=False)
    monkeypatch.delenv("LIBRARY_HANDOFF_POLICY", raising=False)

    s = Settings.from_env()
    assert s.log_level == "INFO"
    assert s.log_level_value == logging.INFO
    assert s.handoff_policy == HANDOFF_PROPAGATE


def test_from_env_reads_and_normalizes(monkeypatch):
    monkeypatch.setenv("LIBRARY_LOG_LEVEL", " debug ")
    monkeypatch.setenv("LIBRARY_HANDOFF_POLICY", "SKIP")

    s = Settings.from_env()
    assert s.log_level == "DEBUG"
    assert s.log_level_value == logging.DEBUG
    assert s.handoff_policy == HANDOFF_SKIP


@pytest.mark.parametrize(
    "kwargs",
    [
        {"log_level": "verbose"},
        {"handoff_policy": "retry"},
    ],
)
def test_invalid_values_raise(kwargs):
    with pytest.raises(ConfigurationError):
        Settings(**kwargs)


def test_invalid_env_value_raises(monkeypatch):
    monkeypatch.setenv("LIBRARY_HANDOFF_POLICY", "requeue")
    with pytest.raises(ConfigurationError):
        Settings.from_env()
