"""
Idempotent provisioning of publicly linked folder chains on Yandex.Disk.

Provisioning is monotonic: folders are only ever created, never rolled back.
A run that fails half-way leaves the parents in place and the next run
resumes, because existing folders answer 409 and are skipped.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional

from app.clients.yandex_disk import ProviderError, ResourceNotFoundError, YandexDiskClient
from app.models.disk import FolderSpec, ResourceState, base_name, normalize_path

logger = logging.getLogger(__name__)

_LINK_FIELDS = ("public_url", "path", "name")


@dataclass(slots=True)
class ProvisionResult:
    """Leaf folder of a provisioned chain and its public link."""

    path: str
    name: Optional[str]
    public_url: Optional[str]
    created: List[str] = field(default_factory=list)
    existing: List[str] = field(default_factory=list)

    @property
    def published(self) -> bool:
        return bool(self.public_url)

    def as_dict(self) -> Dict[str, Any]:
        return {
            "success": True,
            "path": self.path,
            "name": self.name,
            "public_url": self.public_url,
            "created": list(self.created),
            "existing": list(self.existing),
        }


@dataclass(slots=True)
class Outcome:
    """Per-item accounting for batch operations."""

    succeeded: List[Dict[str, Any]] = field(default_factory=list)
    skipped: List[Dict[str, Any]] = field(default_factory=list)
    failed: List[Dict[str, Any]] = field(default_factory=list)

    def as_dict(self) -> Dict[str, Any]:
        return {
            "succeeded": list(self.succeeded),
            "skipped": list(self.skipped),
            "failed": list(self.failed),
        }


class FolderProvisioner:
    """Drives the disk client through create -> publish -> read-link."""

    def __init__(self, disk_client: YandexDiskClient) -> None:
        self._disk = disk_client

    async def ensure_public_folder(self, access_token: str, spec: FolderSpec) -> ProvisionResult:
        """Create every folder of ``spec`` in order, publish the leaf, return its link.

        Only 409 answers are absorbed; any other provider error propagates
        and leaves already created parents in place.
        """
        created: List[str] = []
        existing: List[str] = []
        for path in spec:
            state = await self._disk.create_folder(access_token, path)
            (created if state is ResourceState.CREATED else existing).append(path)

        await self._disk.publish(access_token, spec.leaf)
        meta = await self._disk.get_resource(access_token, spec.leaf, fields=_LINK_FIELDS)
        result = ProvisionResult(
            path=meta.get("path") or normalize_path(spec.leaf),
            name=meta.get("name") or base_name(spec.leaf),
            public_url=meta.get("public_url"),
            created=created,
            existing=existing,
        )
        logger.info(
            "Provisioned %s (created=%d, existing=%d)",
            result.path,
            len(created),
            len(existing),
        )
        return result

    async def ensure_task_folder(
        self,
        access_token: str,
        *,
        brand: str,
        task_type: str,
        article: str,
        prefix: Optional[str] = None,
    ) -> ProvisionResult:
        spec = FolderSpec.for_task(brand, task_type, article, prefix)
        return await self.ensure_public_folder(access_token, spec)

    async def get_or_publish_public_url(self, access_token: str, path: str) -> Optional[str]:
        """Return the resource's public link, publishing it first when missing."""
        meta = await self._disk.get_resource(access_token, path, fields=("public_url",))
        if meta.get("public_url"):
            return meta["public_url"]
        await self._disk.publish(access_token, path)
        meta = await self._disk.get_resource(access_token, path, fields=("public_url",))
        return meta.get("public_url")

    async def _existing_link(self, access_token: str, path: str) -> Optional[str]:
        try:
            meta = await self._disk.get_resource(access_token, path, fields=_LINK_FIELDS)
        except ResourceNotFoundError:
            return None
        return meta.get("public_url")

    async def ensure_many(self, access_token: str, specs: Iterable[FolderSpec]) -> Outcome:
        """Provision several chains; one failing chain does not stop the rest.

        Leaves that already carry a public link are reported as skipped.
        """
        outcome = Outcome()
        for spec in specs:
            leaf = spec.leaf
            try:
                public_url = await self._existing_link(access_token, leaf)
                if public_url:
                    outcome.skipped.append({"path": leaf, "public_url": public_url})
                    continue
                result = await self.ensure_public_folder(access_token, spec)
                outcome.succeeded.append({"path": leaf, "public_url": result.public_url})
            except ProviderError as exc:
                logger.error(
                    "Provisioning %s failed with status %s", leaf, exc.status,
                    extra={"path": leaf, "body": exc.body},
                )
                outcome.failed.append(
                    {"path": leaf, "error": str(exc), "status": exc.status, "body": exc.body}
                )
        return outcome


__all__ = ["FolderProvisioner", "Outcome", "ProvisionResult"]
