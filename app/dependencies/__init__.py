"""Expose dependency helpers for FastAPI routers."""

from .clients import (
    get_archive_workflow,
    get_disk_client,
    get_disk_file_service,
    get_folder_provisioner,
    get_oauth_state_encoder,
    get_sqlite_store,
    get_token_cipher_service,
    get_token_service,
    get_token_store,
    get_yandex_oauth_client,
)
from .config import get_app_settings

__all__ = [
    "get_app_settings",
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
