"""Pytest configuration shared across the suite."""

from __future__ import annotations

try:
    from . import _bootstrap  # noqa: F401
except Exception:  # pragma: no cover - fallback for direct execution
    import _bootstrap  # type: ignore # noqa: F401

import json
from typing import Iterable

import httpx
import pytest

from app.clients.yandex_disk import YandexDiskClient
from app.core.config import YandexSettings
from app.models.disk import ROOT, base_name, normalize_path

API_PREFIX = "/v1/disk"
UPLOAD_HOST = "uploader.fake"


class FakeYandexDisk:
    """In-memory stand-in for the Yandex.Disk REST API.

    Use as the handler of ``httpx.MockTransport``. ``calls`` records
    ``(method, endpoint)`` pairs in request order.
    """

    def __init__(self, *, folders: Iterable[str] = (), files: Iterable[str] = ()) -> None:
        self.folders: set[str] = {normalize_path(path) for path in folders}
        self.files: dict[str, bytes] = {normalize_path(path): b"" for path in files}
        self.public: dict[str, str] = {}
        self.calls: list[tuple[str, str]] = []
        self.requests: list[httpx.Request] = []
        self._failures: dict[tuple[str, str, str], int] = {}

    def fail(self, method: str, endpoint: str, path: str, status: int) -> None:
        """Make the next matching request answer ``status``."""
        self._failures[(method, endpoint, normalize_path(path))] = status

    def exists(self, path: str) -> bool:
        path = normalize_path(path)
        return path == ROOT or path in self.folders or path in self.files

    def count(self, method: str, endpoint: str) -> int:
        return sum(1 for call in self.calls if call == (method, endpoint))

    @staticmethod
    def _json(status: int, payload: dict) -> httpx.Response:
        return httpx.Response(status, content=json.dumps(payload).encode(), headers={"Content-Type": "application/json"})

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if request.url.host == UPLOAD_HOST:
            self.calls.append((request.method, "upload-target"))
            self.files[request.url.params["path"]] = request.content
            return httpx.Response(201)

        endpoint = request.url.path[len(API_PREFIX):] or "/"
        self.calls.append((request.method, endpoint))
        params = request.url.params
        path = params.get("path", "")

        status = self._failures.pop((request.method, endpoint, path), None)
        if status is not None:
            return self._json(status, {"error": "InjectedFailure", "description": "boom"})

        handler = getattr(self, f"_{request.method.lower()}_{endpoint.strip('/').replace('/', '_') or 'root'}", None)
        if handler is None:
            return self._json(404, {"error": "UnknownEndpoint"})
        return handler(params)

    def _get_root(self, params) -> httpx.Response:
        return self._json(200, {"total_space": 100, "used_space": 1})

    def _put_resources(self, params) -> httpx.Response:
        path = params["path"]
        if self.exists(path):
            return self._json(409, {"error": "DiskPathPointsToExistentDirectoryError"})
        self.folders.add(path)
        return self._json(201, {"href": f"https://cloud-api.yandex.net/v1/disk/resources?path={path}"})

    def _put_resources_publish(self, params) -> httpx.Response:
        path = params["path"]
        if not self.exists(path):
            return self._json(404, {"error": "DiskNotFoundError"})
        if path in self.public:
            return self._json(409, {"error": "AlreadyPublished"})
        self.public[path] = f"https://yadi.sk/d/link-{len(self.public) + 1}"
        return self._json(200, {"href": "ok"})

    def _get_resources(self, params) -> httpx.Response:
        path = params["path"]
        if not self.exists(path):
            return self._json(404, {"error": "DiskNotFoundError"})
        meta = {
            "path": path,
            "name": base_name(path),
            "type": "file" if path in self.files else "dir",
        }
        if path in self.public:
            meta["public_url"] = self.public[path]
        fields = params.get("fields")
        if fields:
            wanted = set(fields.split(","))
            meta = {key: value for key, value in meta.items() if key in wanted}
        return self._json(200, meta)

    def _delete_resources(self, params) -> httpx.Response:
        path = params["path"]
        if not self.exists(path):
            return self._json(404, {"error": "DiskNotFoundError"})
        self.folders.discard(path)
        self.files.pop(path, None)
        return httpx.Response(204)

    def _post_resources_move(self, params) -> httpx.Response:
        source, destination = params["from"], params["path"]
        if not self.exists(source):
            return self._json(404, {"error": "DiskNotFoundError"})
        if self.exists(destination) and params.get("overwrite") != "true":
            return self._json(409, {"error": "DiskResourceAlreadyExistsError"})
        if source in self.files:
            self.files[destination] = self.files.pop(source)
        else:
            self.folders.discard(source)
            self.folders.add(destination)
        return self._json(201, {"href": "moved"})

    def _get_resources_upload(self, params) -> httpx.Response:
        path = params["path"]
        if path in self.files and params.get("overwrite") != "true":
            return self._json(409, {"error": "DiskResourceAlreadyExistsError"})
        href = httpx.URL(f"https://{UPLOAD_HOST}/upload", params={"path": path})
        return self._json(200, {"href": str(href), "method": "PUT"})

    def _path_for_key(self, public_key: str) -> str | None:
        for path, url in self.public.items():
            if url == public_key:
                return path
        return None

    def _get_public_resources(self, params) -> httpx.Response:
        path = self._path_for_key(params["public_key"])
        if path is None:
            return self._json(404, {"error": "DiskNotFoundError"})
        return self._json(
            200,
            {
                "name": base_name(path),
                "file": f"https://downloader.fake/{base_name(path)}?disposition=attachment",
            },
        )

    def _get_public_resources_download(self, params) -> httpx.Response:
        path = self._path_for_key(params["public_key"])
        if path is None:
            return self._json(404, {"error": "DiskNotFoundError"})
        return self._json(200, {"href": f"https://downloader.fake/{base_name(path)}?disposition=attachment"})


@pytest.fixture
def anyio_backend() -> str:
    """Force AnyIO-powered tests to run against asyncio backend only."""
    return "asyncio"


@pytest.fixture
def yandex_settings() -> YandexSettings:
    return YandexSettings(
        YANDEX_CLIENT_ID="client",
        YANDEX_CLIENT_SECRET="secret",
        YANDEX_REDIRECT_URI="https://example.com/integrations/yandex/callback",
    )


@pytest.fixture
def fake_disk() -> FakeYandexDisk:
    return FakeYandexDisk()


@pytest.fixture
def disk_client(yandex_settings: YandexSettings, fake_disk: FakeYandexDisk) -> YandexDiskClient:
    return YandexDiskClient(yandex_settings, transport=httpx.MockTransport(fake_disk))
