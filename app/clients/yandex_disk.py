"""
Yandex.Disk REST client.

Thin async binding over https://cloud-api.yandex.net/v1/disk. The client is
stateless: every call receives the OAuth access token and a path, which is
normalized to the ``disk:/`` namespace before it is sent.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, Optional, Sequence

import httpx

from app.core.config import YandexSettings
from app.models.disk import ResourceState, normalize_path
from app.utils.http import build_timeout, truncate_body

logger = logging.getLogger(__name__)


class ProviderError(Exception):
    """Non-2xx answer (or transport failure) from the Yandex.Disk API.

    ``status`` is None when no HTTP response was received (timeout, DNS,
    connection reset).
    """

    def __init__(self, status: Optional[int], body: str = "", *, operation: str = "") -> None:
        self.status = status
        self.body = body
        self.operation = operation
        label = f"{operation} " if operation else ""
        super().__init__(f"Yandex.Disk {label}failed with status {status}: {body}")


class ResourceNotFoundError(ProviderError):
    """404 on a resource lookup."""


_OK = (200,)
_CREATED = (200, 201)
_ACCEPTED = (200, 201, 202)
_CONFLICT = 409


class YandexDiskClient:
    """Async client for the Yandex.Disk resource API."""

    def __init__(
        self,
        settings: YandexSettings,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._base_url = settings.api_base_url
        self._transport = transport
        self._timeout = build_timeout(
            connect=settings.connect_timeout_seconds,
            read=settings.read_timeout_seconds,
        )
        self._upload_timeout = build_timeout(
            connect=settings.connect_timeout_seconds,
            read=settings.upload_timeout_seconds,
        )

    @staticmethod
    def _headers(access_token: Optional[str]) -> Dict[str, str]:
        headers = {"Accept": "application/json"}
        if access_token:
            headers["Authorization"] = f"OAuth {access_token}"
        return headers

    async def _request(
        self,
        method: str,
        endpoint: str,
        *,
        operation: str,
        access_token: Optional[str] = None,
        params: Optional[Dict[str, Any]] = None,
        expected: Sequence[int] = _OK,
        tolerated: Sequence[int] = (),
        content: Optional[bytes] = None,
        timeout: Optional[httpx.Timeout] = None,
    ) -> httpx.Response:
        url = endpoint if endpoint.startswith("http") else f"{self._base_url}{endpoint}"
        try:
            async with httpx.AsyncClient(
                timeout=timeout or self._timeout, transport=self._transport
            ) as client:
                response = await client.request(
                    method,
                    url,
                    params=params,
                    headers=self._headers(access_token),
                    content=content,
                )
        except httpx.HTTPError as exc:
            raise ProviderError(None, str(exc), operation=operation) from exc

        if response.status_code in expected or response.status_code in tolerated:
            return response

        body = truncate_body(response.text)
        if response.status_code == 404:
            raise ResourceNotFoundError(404, body, operation=operation)
        raise ProviderError(response.status_code, body, operation=operation)

    @staticmethod
    def _json(response: httpx.Response) -> Dict[str, Any]:
        if not response.content:
            return {}
        try:
            return response.json()
        except ValueError:
            return {}

    async def disk_info(self, access_token: str) -> Dict[str, Any]:
        response = await self._request(
            "GET", "/", operation="disk info", access_token=access_token
        )
        return self._json(response)

    async def list_resources(
        self, access_token: str, path: str = "/", limit: int = 20
    ) -> Dict[str, Any]:
        response = await self._request(
            "GET",
            "/resources",
            operation="list",
            access_token=access_token,
            params={"path": normalize_path(path), "limit": limit},
        )
        return self._json(response)

    async def create_folder(self, access_token: str, path: str) -> ResourceState:
        """Create one folder. 409 means it already exists."""
        normalized = normalize_path(path)
        response = await self._request(
            "PUT",
            "/resources",
            operation="create folder",
            access_token=access_token,
            params={"path": normalized},
            expected=_CREATED,
            tolerated=(_CONFLICT,),
        )
        if response.status_code == _CONFLICT:
            logger.debug("Folder %s already exists", normalized)
            return ResourceState.ALREADY_EXISTS
        logger.info("Created folder %s", normalized)
        return ResourceState.CREATED

    async def publish(self, access_token: str, path: str) -> ResourceState:
        """Open a read-only public link. 409 means it is already public."""
        response = await self._request(
            "PUT",
            "/resources/publish",
            operation="publish",
            access_token=access_token,
            params={"path": normalize_path(path)},
            expected=_CREATED,
            tolerated=(_CONFLICT,),
        )
        if response.status_code == _CONFLICT:
            return ResourceState.ALREADY_EXISTS
        return ResourceState.CREATED

    async def get_resource(
        self,
        access_token: str,
        path: str,
        fields: Optional[Iterable[str]] = None,
    ) -> Dict[str, Any]:
        """Fetch resource metadata, optionally restricted to ``fields``."""
        params: Dict[str, Any] = {"path": normalize_path(path)}
        if fields:
            params["fields"] = ",".join(fields)
        response = await self._request(
            "GET",
            "/resources",
            operation="get resource",
            access_token=access_token,
            params=params,
        )
        return self._json(response)

    async def delete_resource(
        self, access_token: str, path: str, *, permanently: bool = False
    ) -> Dict[str, Any]:
        """Delete a resource; 202 (async deletion accepted) counts as success."""
        response = await self._request(
            "DELETE",
            "/resources",
            operation="delete",
            access_token=access_token,
            params={
                "path": normalize_path(path),
                "permanently": "true" if permanently else "false",
            },
            expected=(202, 204),
        )
        return {"success": True, "accepted": response.status_code == 202}

    async def move_resource(
        self,
        access_token: str,
        source: str,
        destination: str,
        *,
        overwrite: bool = False,
    ) -> ResourceState:
        """Move or rename. 409 means the destination is already taken."""
        response = await self._request(
            "POST",
            "/resources/move",
            operation="move",
            access_token=access_token,
            params={
                "from": normalize_path(source),
                "path": normalize_path(destination),
                "overwrite": "true" if overwrite else "false",
            },
            expected=_ACCEPTED,
            tolerated=(_CONFLICT,),
        )
        if response.status_code == _CONFLICT:
            return ResourceState.ALREADY_EXISTS
        return ResourceState.CREATED

    async def get_upload_url(
        self, access_token: str, path: str, *, overwrite: bool = False
    ) -> str:
        response = await self._request(
            "GET",
            "/resources/upload",
            operation="upload url",
            access_token=access_token,
            params={
                "path": normalize_path(path),
                "overwrite": "true" if overwrite else "false",
            },
        )
        href = self._json(response).get("href")
        if not href:
            raise ProviderError(response.status_code, "No upload URL provided", operation="upload url")
        return href

    async def upload_bytes(self, upload_url: str, content: bytes) -> int:
        response = await self._request(
            "PUT",
            upload_url,
            operation="upload",
            content=content,
            expected=_ACCEPTED,
            timeout=self._upload_timeout,
        )
        return response.status_code

    async def upload(
        self,
        access_token: str,
        path: str,
        content: bytes,
        *,
        overwrite: bool = False,
    ) -> Dict[str, Any]:
        """Two-phase upload. A 409 from the first phase propagates as ProviderError."""
        href = await self.get_upload_url(access_token, path, overwrite=overwrite)
        await self.upload_bytes(href, content)
        return {"success": True, "path": normalize_path(path)}

    async def download_url(self, access_token: str, path: str) -> str:
        response = await self._request(
            "GET",
            "/resources/download",
            operation="download url",
            access_token=access_token,
            params={"path": normalize_path(path)},
        )
        return self._json(response).get("href", "")

    async def public_resource(
        self,
        public_key: str,
        *,
        fields: Optional[Iterable[str]] = None,
        preview_size: Optional[str] = None,
        access_token: Optional[str] = None,
    ) -> Dict[str, Any]:
        params: Dict[str, Any] = {"public_key": public_key}
        if fields:
            params["fields"] = ",".join(fields)
        if preview_size:
            params["preview_size"] = preview_size
        response = await self._request(
            "GET",
            "/public/resources",
            operation="public resource",
            access_token=access_token,
            params=params,
        )
        return self._json(response)

    async def public_download_url(
        self,
        public_key: str,
        *,
        path: Optional[str] = None,
        access_token: Optional[str] = None,
    ) -> str:
        params: Dict[str, Any] = {"public_key": public_key}
        if path:
            params["path"] = path
        response = await self._request(
            "GET",
            "/public/resources/download",
            operation="public download url",
            access_token=access_token,
            params=params,
        )
        return self._json(response).get("href", "")

    async def resolve_final_url(self, url: str) -> str:
        """Follow redirects and return the effective URL without reading the body."""
        cleaned = url.replace("\\/", "/")
        try:
            async with httpx.AsyncClient(
                timeout=self._timeout,
                transport=self._transport,
                follow_redirects=True,
            ) as client:
                async with client.stream("GET", cleaned) as response:
                    return str(response.url)
        except httpx.HTTPError as exc:
            raise ProviderError(None, str(exc), operation="resolve url") from exc


__all__ = ["ProviderError", "ResourceNotFoundError", "YandexDiskClient"]
