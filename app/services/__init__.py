"""Service layer exports."""

from .archive import ArchiveOutcome, ArchiveWorkflow
from .disk_files import DiskFileService
from .folder_provisioner import FolderProvisioner, Outcome, ProvisionResult
from .token_cipher import TokenCipherService
from .yandex_tokens import TokenRefresher, TokenStore, YandexTokenService

__all__ = [
    "ArchiveOutcome",
    "ArchiveWorkflow",
    "DiskFileService",
    "FolderProvisioner",
    "Outcome",
    "ProvisionResult",
    "TokenCipherService",
    "TokenRefresher",
    "TokenStore",
    "YandexTokenService",
]
