"""Public schema exports."""

from .auth import ConnectionStatus, OAuthCallbackPayload
from .disk import (
    ArchiveRequest,
    ArchiveResponse,
    FileLinksResponse,
    FolderRequest,
    HrefResponse,
    MoveRequest,
    ProvisionResponse,
    ResolveUrlRequest,
    SubtaskRenameRequest,
    TaskFolderRequest,
)

__all__ = [
    "ArchiveRequest",
    "ArchiveResponse",
    "ConnectionStatus",
    "FileLinksResponse",
    "FolderRequest",
    "HrefResponse",
    "MoveRequest",
    "OAuthCallbackPayload",
    "ProvisionResponse",
    "ResolveUrlRequest",
    "SubtaskRenameRequest",
    "TaskFolderRequest",
]
