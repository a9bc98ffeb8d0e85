"""Expose constructed client wrappers."""

from .sqlite_store import SQLiteStore
from .yandex_disk import ProviderError, ResourceNotFoundError, YandexDiskClient
from .yandex_oauth import OAuthStateEncoder, YandexOAuthClient

__all__ = [
    "OAuthStateEncoder",
    "ProviderError",
    "ResourceNotFoundError",
    "SQLiteStore",
    "YandexDiskClient",
    "YandexOAuthClient",
]
