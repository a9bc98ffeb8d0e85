"""
Pydantic models for the Yandex.Disk integration endpoints.
"""

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class FolderRequest(BaseModel):
    """Target path of a folder operation."""

    path: str = Field(..., min_length=1, description="Slash-delimited path on the disk.")


class MoveRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    source: str = Field(..., alias="from", min_length=1)
    destination: str = Field(..., alias="to", min_length=1)
    overwrite: bool = False


class ArchiveRequest(BaseModel):
    """Paths of result files to move into their sibling ``old`` folder."""

    paths: List[str] = Field(..., min_length=1)


class ArchivedItem(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    source: str = Field(..., alias="from")
    destination: str = Field(..., alias="to")
    note: Optional[str] = None


class ArchiveError(BaseModel):
    path: str
    error: str
    status: Optional[int] = None
    body: Optional[str] = None


class ArchiveResponse(BaseModel):
    archived: List[ArchivedItem]
    errors: List[ArchiveError]
    message: str


class TaskFolderRequest(BaseModel):
    """Names from which the brand -> type -> article folder chain is built."""

    brand: str = Field(..., min_length=1)
    task_type: str = Field(..., min_length=1)
    article: str = Field(..., min_length=1)
    prefix: Optional[str] = Field(
        None, description="Leaf prefix; defaults to the first letter of the type name."
    )


class SubtaskRenameRequest(BaseModel):
    brand: str = Field(..., min_length=1)
    old_name: str
    new_name: str
    old_ownership: Optional[str] = None
    new_ownership: Optional[str] = None


class ProvisionResponse(BaseModel):
    success: bool = True
    path: str
    name: Optional[str] = None
    public_url: Optional[str] = None
    created: List[str] = Field(default_factory=list)
    existing: List[str] = Field(default_factory=list)


class ResolveUrlRequest(BaseModel):
    url: str = Field(..., min_length=1)


class HrefResponse(BaseModel):
    href: Optional[str] = None


class FileLinksResponse(BaseModel):
    success: bool
    path: str
    public_url: Optional[str] = None
    file_url: Optional[str] = None
    overwritten: Optional[bool] = None
    message: Optional[str] = None


__all__ = [
    "ArchiveError",
    "ArchiveRequest",
    "ArchiveResponse",
    "ArchivedItem",
    "FileLinksResponse",
    "FolderRequest",
    "HrefResponse",
    "MoveRequest",
    "ProvisionResponse",
    "ResolveUrlRequest",
    "SubtaskRenameRequest",
    "TaskFolderRequest",
]
