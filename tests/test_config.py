import pytest

from config import get_settings_module, load_settings


@pytest.mark.parametrize(
    "env, module",
    [
        ("prod", "config.production"),
        ("Testing", "config.testing"),
        ("dev", "config.development"),
        ("staging", "config.development"),
    ],
)
def test_settings_module_aliases(env, module):
    assert get_settings_module(env) == module


def test_settings_module_follows_app_env(monkeypatch):
    monkeypatch.setenv("APP_ENV", "test")

    assert get_settings_module() == "config.testing"


def test_settings_module_defaults_to_development(monkeypatch):
    monkeypatch.delenv("APP_ENV", raising=False)

    assert get_settings_module() == "config.development"


def test_load_testing_settings():
    settings = load_settings("testing")

    assert settings.TESTING is True
    assert settings.TRUSTED_PROXY_HOPS == 0
    assert settings.LOGIN_RATE_LIMIT["max_attempts"] == 5
