"""
File-level workflows on top of the disk client: uploads, embeddable links
and the best-effort cleanup paths used when tasks are removed or renamed.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from app.clients.yandex_disk import ProviderError, ResourceNotFoundError, YandexDiskClient
from app.models.disk import FolderSpec, ResourceState, base_name, normalize_path, subtask_folder_path
from app.services.folder_provisioner import FolderProvisioner

logger = logging.getLogger(__name__)

_PREFERRED_SIZES = ("ORIGINAL", "XXXL", "XXL", "XL", "L", "M")
_PUBLIC_FILE_FIELDS = ("file", "name", "media_type", "preview", "sizes")


class FileNameMismatchError(ValueError):
    """Raised when a replacement upload does not carry the original file name."""


def embeddable_url(url: Optional[str]) -> Optional[str]:
    """Make download links render inline (e.g. inside <img>)."""
    if not url:
        return url
    return url.replace("disposition=attachment", "disposition=inline")


class DiskFileService:
    """Coordinates uploads, public links and best-effort cleanup."""

    def __init__(self, disk_client: YandexDiskClient, provisioner: FolderProvisioner) -> None:
        self._disk = disk_client
        self._provisioner = provisioner

    async def upload(self, access_token: str, path: str, content: bytes) -> Dict[str, Any]:
        """Upload without clobbering first; on 409 retry once with overwrite."""
        overwritten = False
        try:
            await self._disk.upload(access_token, path, content, overwrite=False)
        except ProviderError as exc:
            if exc.status != 409:
                raise
            logger.info("%s already exists; uploading again with overwrite", path)
            await self._disk.upload(access_token, path, content, overwrite=True)
            overwritten = True
        result = await self._publish_links(access_token, path)
        result["overwritten"] = overwritten
        return result

    async def replace(
        self, access_token: str, path: str, filename: str, content: bytes
    ) -> Dict[str, Any]:
        """Overwrite an existing file with a same-named upload and republish it."""
        expected = base_name(path)
        if filename != expected:
            raise FileNameMismatchError(
                f"File name must match: expected '{expected}', got '{filename}'"
            )
        await self._disk.upload(access_token, path, content, overwrite=True)
        result = await self._publish_links(access_token, path)
        result["message"] = "File replaced"
        return result

    async def _publish_links(self, access_token: str, path: str) -> Dict[str, Any]:
        public_url = await self._provisioner.get_or_publish_public_url(access_token, path)
        file_url: Optional[str] = None
        try:
            file_url = await self.public_file_url(access_token, path)
        except ProviderError as exc:
            logger.warning("No embeddable link for %s: %s", path, exc)
        return {
            "success": True,
            "path": normalize_path(path),
            "public_url": public_url,
            "file_url": file_url,
        }

    async def public_file_url(self, access_token: str, path: str) -> str:
        """Direct link to a published file suitable for embedding."""
        public_key = await self._provisioner.get_or_publish_public_url(access_token, path)
        if not public_key:
            raise ProviderError(None, "Failed to obtain public URL for resource.", operation="publish")

        meta = await self._disk.public_resource(
            public_key,
            fields=_PUBLIC_FILE_FIELDS,
            preview_size="XL",
            access_token=access_token,
        )
        sizes = meta.get("sizes") or []
        if isinstance(sizes, list) and sizes:
            by_name = {item.get("name"): item for item in sizes if isinstance(item, dict)}
            for size in _PREFERRED_SIZES:
                url = (by_name.get(size) or {}).get("url")
                if url:
                    return embeddable_url(url)
            first = sizes[0].get("url") if isinstance(sizes[0], dict) else None
            if first:
                return embeddable_url(first)
        for key in ("file", "preview"):
            if meta.get(key):
                return embeddable_url(meta[key])

        href = await self._disk.public_download_url(public_key, access_token=access_token)
        return embeddable_url(href)

    async def delete_best_effort(
        self, access_token: str, path: str, *, permanently: bool = True
    ) -> bool:
        """Delete ``path``; failures are logged and reported as False."""
        try:
            await self._disk.delete_resource(access_token, path, permanently=permanently)
        except ResourceNotFoundError:
            logger.info("Nothing to delete at %s", path)
            return False
        except ProviderError as exc:
            logger.error(
                "Failed to delete %s on Yandex.Disk", path,
                extra={"status": exc.status, "body": exc.body},
            )
            return False
        return True

    async def remove_task_folder(
        self,
        access_token: str,
        *,
        brand: str,
        task_type: str,
        article: str,
        prefix: Optional[str] = None,
    ) -> bool:
        leaf = FolderSpec.for_task(brand, task_type, article, prefix).leaf
        return await self.delete_best_effort(access_token, leaf, permanently=True)

    async def move_best_effort(self, access_token: str, source: str, destination: str) -> bool:
        """Move without overwrite; conflicts and errors are logged, never raised."""
        if normalize_path(source) == normalize_path(destination):
            return False
        try:
            state = await self._disk.move_resource(
                access_token, source, destination, overwrite=False
            )
        except ProviderError as exc:
            logger.warning(
                "Yandex move %s -> %s failed with status %s", source, destination, exc.status,
                extra={"body": exc.body},
            )
            return False
        if state is ResourceState.ALREADY_EXISTS:
            logger.warning("Yandex move target %s already exists", destination)
            return False
        return True

    async def rename_subtask_folder(
        self,
        access_token: str,
        *,
        brand: str,
        old_name: str,
        new_name: str,
        old_ownership: Optional[str] = None,
        new_ownership: Optional[str] = None,
    ) -> bool:
        """Follow a subtask rename or ownership change on the disk."""
        if not old_name or not new_name:
            return False
        source = subtask_folder_path(brand, old_name, old_ownership)
        destination = subtask_folder_path(brand, new_name, new_ownership)
        return await self.move_best_effort(access_token, source, destination)


__all__ = ["DiskFileService", "FileNameMismatchError", "embeddable_url"]
