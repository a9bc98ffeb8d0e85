"""
FastAPI dependency utilities for injecting configuration.
"""

from functools import lru_cache

from fastapi import Depends

from app.core.config import AppSettings, YandexSettings, get_settings


@lru_cache()
def _settings_singleton() -> AppSettings:
    """Ensure configuration is created once per process."""
    return get_settings()


def get_app_settings() -> AppSettings:
    """FastAPI dependency returning application settings."""
    return _settings_singleton()


def get_yandex_settings(settings: AppSettings = Depends(get_app_settings)) -> YandexSettings:
    return settings.yandex


__all__ = ["get_app_settings", "get_yandex_settings"]
