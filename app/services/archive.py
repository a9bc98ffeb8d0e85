"""
Moves result files into a sibling ``old`` folder before they are replaced.
"""

from __future__ import annotations

import logging
import posixpath
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List

from app.clients.yandex_disk import ProviderError, ResourceNotFoundError, YandexDiskClient
from app.models.disk import ResourceState

logger = logging.getLogger(__name__)

ARCHIVE_FOLDER = "old"
ALREADY_ARCHIVED_NOTE = "already exists in old"


def archive_destination(path: str) -> tuple[str, str]:
    """Return ``(archive_dir, target_path)`` for ``path``, in the caller's form."""
    parent = posixpath.dirname(path.rstrip("/")).rstrip("/")
    archive_dir = f"{parent}/{ARCHIVE_FOLDER}"
    return archive_dir, f"{archive_dir}/{posixpath.basename(path.rstrip('/'))}"


@dataclass(slots=True)
class ArchiveOutcome:
    archived: List[Dict[str, Any]] = field(default_factory=list)
    errors: List[Dict[str, Any]] = field(default_factory=list)

    @property
    def message(self) -> str:
        if self.archived:
            return "Files moved to archive"
        return "No files were archived"

    def as_dict(self) -> Dict[str, Any]:
        return {
            "archived": list(self.archived),
            "errors": list(self.errors),
            "message": self.message,
        }


class ArchiveWorkflow:
    """Archive each path independently and report successes and failures."""

    def __init__(self, disk_client: YandexDiskClient) -> None:
        self._disk = disk_client

    async def _move(self, access_token: str, path: str, target: str) -> ResourceState:
        """Move into the archive; a source already moved there counts as archived."""
        try:
            return await self._disk.move_resource(access_token, path, target, overwrite=False)
        except ResourceNotFoundError:
            if not await self._exists(access_token, target):
                raise
            logger.info("%s is already archived at %s", path, target)
            return ResourceState.ALREADY_EXISTS

    async def _exists(self, access_token: str, path: str) -> bool:
        try:
            await self._disk.get_resource(access_token, path, fields=("path",))
        except ResourceNotFoundError:
            return False
        return True

    async def archive(self, access_token: str, paths: Iterable[str]) -> ArchiveOutcome:
        outcome = ArchiveOutcome()
        for path in paths:
            archive_dir, target = archive_destination(path)
            try:
                await self._disk.create_folder(access_token, archive_dir)
                state = await self._move(access_token, path, target)
            except ProviderError as exc:
                logger.warning(
                    "Archiving %s failed with status %s", path, exc.status,
                    extra={"target": target, "body": exc.body},
                )
                outcome.errors.append(
                    {"path": path, "error": str(exc), "status": exc.status, "body": exc.body}
                )
                continue

            entry: Dict[str, Any] = {"from": path, "to": target}
            if state is ResourceState.ALREADY_EXISTS:
                entry["note"] = ALREADY_ARCHIVED_NOTE
            outcome.archived.append(entry)
        return outcome


__all__ = ["ALREADY_ARCHIVED_NOTE", "ArchiveOutcome", "ArchiveWorkflow", "archive_destination"]
