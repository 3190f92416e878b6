"""
Settings dependency shared by the route layer and the client factories.
"""

from functools import lru_cache

from fastapi import Depends

from app.core.config import AppSettings, get_settings


@lru_cache()
def _settings_singleton() -> AppSettings:
    return get_settings()


def get_app_settings() -> AppSettings:
    """Return the process-wide settings; overridable in tests."""
    return _settings_singleton()


SettingsDependency = Depends(get_app_settings)

__all__ = ["SettingsDependency", "get_app_settings"]
