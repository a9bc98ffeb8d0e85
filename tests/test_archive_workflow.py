from __future__ import annotations

import pytest

from app.services.archive import ALREADY_ARCHIVED_NOTE, ArchiveWorkflow, archive_destination

pytestmark = pytest.mark.anyio


def test_archive_destination_is_sibling_old_folder() -> None:
    assert archive_destination("/A/f1.jpg") == ("/A/old", "/A/old/f1.jpg")
    assert archive_destination("disk:/A/B/f.png") == ("disk:/A/B/old", "disk:/A/B/old/f.png")


async def test_archive_moves_file_into_existing_old_folder(disk_client, fake_disk) -> None:
    fake_disk.folders.update({"disk:/A", "disk:/A/old"})
    fake_disk.files["disk:/A/f1.jpg"] = b"img"

    outcome = await ArchiveWorkflow(disk_client).archive("token", ["/A/f1.jpg"])

    assert outcome.archived == [{"from": "/A/f1.jpg", "to": "/A/old/f1.jpg"}]
    assert outcome.errors == []
    assert outcome.message == "Files moved to archive"
    assert fake_disk.count("POST", "/resources/move") == 1
    assert "disk:/A/old/f1.jpg" in fake_disk.files
    assert "disk:/A/f1.jpg" not in fake_disk.files


async def test_archive_creates_old_folder_when_missing(disk_client, fake_disk) -> None:
    fake_disk.folders.add("disk:/A")
    fake_disk.files["disk:/A/f1.jpg"] = b"img"

    await ArchiveWorkflow(disk_client).archive("token", ["/A/f1.jpg"])

    assert "disk:/A/old" in fake_disk.folders


async def test_archiving_twice_notes_existing_copy(disk_client, fake_disk) -> None:
    fake_disk.folders.add("disk:/A")
    fake_disk.files["disk:/A/f1.jpg"] = b"v1"
    workflow = ArchiveWorkflow(disk_client)
    await workflow.archive("token", ["/A/f1.jpg"])
    fake_disk.files["disk:/A/f1.jpg"] = b"v2"

    outcome = await workflow.archive("token", ["/A/f1.jpg"])

    assert outcome.archived == [
        {"from": "/A/f1.jpg", "to": "/A/old/f1.jpg", "note": ALREADY_ARCHIVED_NOTE}
    ]
    assert outcome.errors == []
    assert fake_disk.files["disk:/A/old/f1.jpg"] == b"v1"


async def test_failed_item_does_not_stop_the_batch(disk_client, fake_disk) -> None:
    fake_disk.folders.update({"disk:/A", "disk:/B"})
    fake_disk.files.update({"disk:/A/f1.jpg": b"", "disk:/B/f2.jpg": b""})

    outcome = await ArchiveWorkflow(disk_client).archive(
        "token", ["/A/missing.jpg", "/B/f2.jpg"]
    )

    assert outcome.archived == [{"from": "/B/f2.jpg", "to": "/B/old/f2.jpg"}]
    assert len(outcome.errors) == 1
    assert outcome.errors[0]["path"] == "/A/missing.jpg"
    assert outcome.errors[0]["status"] == 404


async def test_nothing_archived_message(disk_client, fake_disk) -> None:
    fake_disk.fail("PUT", "/resources", "/A/old", 500)

    outcome = await ArchiveWorkflow(disk_client).archive("token", ["/A/f1.jpg"])

    assert outcome.archived == []
    assert outcome.errors[0]["status"] == 500
    assert outcome.message == "No files were archived"


async def test_same_input_twice_after_source_moved_is_noted_not_failed(
    disk_client, fake_disk
) -> None:
    fake_disk.folders.add("disk:/A")
    fake_disk.files["disk:/A/f1.jpg"] = b"img"
    workflow = ArchiveWorkflow(disk_client)

    first = await workflow.archive("token", ["/A/f1.jpg"])
    # The source is gone now; the move answers 404 but the copy sits in old/.
    second = await workflow.archive("token", ["/A/f1.jpg"])

    assert first.archived == [{"from": "/A/f1.jpg", "to": "/A/old/f1.jpg"}]
    assert second.archived == [
        {"from": "/A/f1.jpg", "to": "/A/old/f1.jpg", "note": ALREADY_ARCHIVED_NOTE}
    ]
    assert second.errors == []
    assert fake_disk.files["disk:/A/old/f1.jpg"] == b"img"
