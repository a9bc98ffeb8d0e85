"""
Factory functions to provide shared clients and services as FastAPI dependencies.
"""

from datetime import timedelta
from functools import lru_cache

from app.clients import (
    OAuthStateEncoder,
    SQLiteStore,
    YandexDiskClient,
    YandexOAuthClient,
)
from app.core.config import get_settings
from app.services import (
    ArchiveWorkflow,
    DiskFileService,
    FolderProvisioner,
    TokenCipherService,
    TokenRefresher,
    TokenStore,
    YandexTokenService,
)


@lru_cache()
def _settings():
    """Internal helper to cache settings for client factories."""
    return get_settings()


@lru_cache()
def get_oauth_state_encoder() -> OAuthStateEncoder:
    """Provide an OAuth state encoder derived from the Yandex client secret."""
    settings = _settings()
    return OAuthStateEncoder(secret_key=settings.yandex.client_secret)


@lru_cache()
def get_yandex_oauth_client() -> YandexOAuthClient:
    """Create a singleton Yandex OAuth client."""
    return YandexOAuthClient(_settings().yandex)


@lru_cache()
def get_disk_client() -> YandexDiskClient:
    """Provide the Yandex.Disk resource client."""
    return YandexDiskClient(_settings().yandex)


@lru_cache()
def get_sqlite_store() -> SQLiteStore:
    """Provide shared SQLite record store."""
    return SQLiteStore(_settings().storage.db_path)


@lru_cache()
def get_token_cipher_service() -> TokenCipherService:
    """Provide symmetric encryption helper for token storage."""
    settings = _settings()
    secret = settings.security.token_encryption_secret or settings.yandex.client_secret
    return TokenCipherService(secret=secret)


@lru_cache()
def get_token_store() -> TokenStore:
    """Provide the credential store with the configured scoping policy."""
    return TokenStore(
        get_sqlite_store(),
        get_token_cipher_service(),
        scope=_settings().yandex.token_scope,
    )


@lru_cache()
def get_token_service() -> YandexTokenService:
    """Provide helper for loading and refreshing Yandex credentials."""
    settings = _settings()
    refresher = TokenRefresher(
        get_token_store(),
        get_yandex_oauth_client(),
        leeway=timedelta(seconds=settings.yandex.refresh_leeway_seconds),
    )
    return YandexTokenService(get_token_store(), refresher)


def get_folder_provisioner() -> FolderProvisioner:
    return FolderProvisioner(get_disk_client())


def get_archive_workflow() -> ArchiveWorkflow:
    return ArchiveWorkflow(get_disk_client())


def get_disk_file_service() -> DiskFileService:
    return DiskFileService(get_disk_client(), get_folder_provisioner())


__all__ = [
    "get_archive_workflow",
    "get_disk_client",
    "get_disk_file_service",
    "get_folder_provisioner",
    "get_oauth_state_encoder",
    "get_sqlite_store",
    "get_token_cipher_service",
    "get_token_service",
    "get_token_store",
    "get_yandex_oauth_client",
]
