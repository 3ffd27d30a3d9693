import importlib
import os
from types import ModuleType
from typing import Optional

_ALIASES = {
    "dev": "development",
    "development": "development",
    "test": "testing",
    "testing": "testing",
    "prod": "production",
    "production": "production",
}


def get_settings_module(env: Optional[str] = None) -> str:
    """Dotted path of the settings module for ``env`` (default: $APP_ENV).

    Unknown names fall back to development.
    """
    name = (env or os.getenv("APP_ENV") or "development").strip().lower()
    return f"config.{_ALIASES.get(name, 'development')}"


def load_settings(env: Optional[str] = None) -> ModuleType:
    return importlib.import_module(get_settings_module(env))
