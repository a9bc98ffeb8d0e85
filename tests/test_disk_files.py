from __future__ import annotations

import httpx
import pytest

from app.clients.yandex_disk import YandexDiskClient
from app.services.disk_files import DiskFileService, FileNameMismatchError, embeddable_url
from app.services.folder_provisioner import FolderProvisioner

pytestmark = pytest.mark.anyio


@pytest.fixture()
def files(disk_client: YandexDiskClient) -> DiskFileService:
    return DiskFileService(disk_client, FolderProvisioner(disk_client))


def test_embeddable_url_switches_disposition() -> None:
    assert (
        embeddable_url("https://downloader.fake/f.jpg?disposition=attachment&x=1")
        == "https://downloader.fake/f.jpg?disposition=inline&x=1"
    )
    assert embeddable_url(None) is None


async def test_upload_new_file_publishes_links(files, fake_disk) -> None:
    result = await files.upload("token", "/A/f.jpg", b"img")

    assert fake_disk.files["disk:/A/f.jpg"] == b"img"
    assert result["success"] is True
    assert result["overwritten"] is False
    assert result["public_url"].startswith("https://yadi.sk/")
    assert result["file_url"] == "https://downloader.fake/f.jpg?disposition=inline"


async def test_upload_over_existing_file_retries_with_overwrite(files, fake_disk) -> None:
    fake_disk.files["disk:/A/f.jpg"] = b"old"

    result = await files.upload("token", "/A/f.jpg", b"new")

    assert result["overwritten"] is True
    assert fake_disk.files["disk:/A/f.jpg"] == b"new"
    overwrite_flags = [
        request.url.params["overwrite"]
        for request in fake_disk.requests
        if request.url.path.endswith("/resources/upload")
    ]
    assert overwrite_flags == ["false", "true"]


async def test_replace_requires_same_file_name(files, fake_disk) -> None:
    fake_disk.files["disk:/A/f.jpg"] = b"old"

    with pytest.raises(FileNameMismatchError):
        await files.replace("token", "/A/f.jpg", "other.jpg", b"new")

    assert fake_disk.files["disk:/A/f.jpg"] == b"old"


async def test_replace_overwrites_file(files, fake_disk) -> None:
    fake_disk.files["disk:/A/f.jpg"] = b"old"

    result = await files.replace("token", "/A/f.jpg", "f.jpg", b"new")

    assert result["message"] == "File replaced"
    assert fake_disk.files["disk:/A/f.jpg"] == b"new"


async def test_public_file_url_prefers_original_size(yandex_settings) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path.endswith("/public/resources"):
            return httpx.Response(
                200,
                json={
                    "file": "https://downloader.fake/file?disposition=attachment",
                    "sizes": [
                        {"name": "M", "url": "https://preview.fake/m"},
                        {"name": "ORIGINAL", "url": "https://preview.fake/orig?disposition=attachment"},
                    ],
                },
            )
        return httpx.Response(200, json={"public_url": "https://yadi.sk/d/key"})

    client = YandexDiskClient(yandex_settings, transport=httpx.MockTransport(handler))
    files = DiskFileService(client, FolderProvisioner(client))

    url = await files.public_file_url("token", "/A/f.jpg")

    assert url == "https://preview.fake/orig?disposition=inline"


async def test_delete_best_effort_swallows_missing_resource(files, fake_disk) -> None:
    assert await files.delete_best_effort("token", "/nope") is False


async def test_delete_best_effort_swallows_provider_errors(files, fake_disk) -> None:
    fake_disk.folders.add("disk:/A")
    fake_disk.fail("DELETE", "/resources", "/A", 500)

    assert await files.delete_best_effort("token", "/A") is False
    assert fake_disk.exists("/A")


async def test_remove_task_folder_deletes_leaf_permanently(files, fake_disk) -> None:
    fake_disk.folders.update({"disk:/Acme", "disk:/Acme/Photo", "disk:/Acme/Photo/P_A-1"})

    assert await files.remove_task_folder(
        "token", brand="Acme", task_type="Photo", article="A-1"
    ) is True

    assert not fake_disk.exists("/Acme/Photo/P_A-1")
    assert fake_disk.exists("/Acme/Photo")
    assert fake_disk.requests[-1].url.params["permanently"] == "true"


async def test_rename_subtask_follows_ownership_prefix(files, fake_disk) -> None:
    fake_disk.folders.update({"disk:/Acme", "disk:/Acme/Shoot"})

    moved = await files.rename_subtask_folder(
        "token", brand="Acme", old_name="Shoot", new_name="Shoot", new_ownership="Photographer"
    )

    assert moved is True
    assert fake_disk.exists("/Acme/ф_Shoot")


async def test_rename_to_same_path_is_a_no_op(files, fake_disk) -> None:
    moved = await files.rename_subtask_folder(
        "token", brand="Acme", old_name="Shoot", new_name="Shoot"
    )

    assert moved is False
    assert fake_disk.calls == []


async def test_rename_onto_existing_folder_is_not_forced(files, fake_disk) -> None:
    fake_disk.folders.update({"disk:/Acme/Old", "disk:/Acme/New"})

    moved = await files.rename_subtask_folder(
        "token", brand="Acme", old_name="Old", new_name="New"
    )

    assert moved is False
    assert fake_disk.exists("/Acme/Old")
