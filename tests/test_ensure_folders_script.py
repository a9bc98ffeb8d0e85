try:
    from . import _bootstrap  # noqa: F401
except Exception:  # pragma: no cover - fallback for direct execution
    import _bootstrap  # type: ignore # noqa: F401

import json
from pathlib import Path

import pytest

from app.clients.yandex_oauth import OAuthTokenNotFoundError, OAuthTokenRefreshError
from app.models.oauth import Credential
from app.services.folder_provisioner import FolderProvisioner
from scripts import ensure_folders


class StaticTokenService:
    def __init__(self, error: Exception | None = None) -> None:
        self.error = error
        self.subjects: list[str | None] = []

    async def get_credential(self, subject_id: str | None = None) -> Credential:
        self.subjects.append(subject_id)
        if self.error is not None:
            raise self.error
        return Credential(subject_id="owner", access_token="token")


def test_load_specs_splits_invalid_entries_and_applies_limit() -> None:
    entries = [
        {"brand": "Acme", "task_type": "Photo", "article": "A-1"},
        {"brand": "", "task_type": "Photo", "article": "A-2"},
        {"brand": "Acme", "task_type": "Video", "article": "A-3", "prefix": "V"},
        {"brand": "Acme", "task_type": "Photo", "article": "A-4"},
    ]

    specs, invalid = ensure_folders.load_specs(entries, limit=2)

    assert [spec.leaf for spec in specs] == ["/Acme/Photo/P_A-1", "/Acme/Video/V_A-3"]
    assert invalid == [entries[1]]


def test_load_specs_counts_non_object_entries_as_invalid() -> None:
    specs, invalid = ensure_folders.load_specs(
        ["x", None, {"brand": "Acme", "task_type": "Photo", "article": "A-1"}]
    )

    assert [spec.leaf for spec in specs] == ["/Acme/Photo/P_A-1"]
    assert invalid == ["x", None]


@pytest.mark.asyncio
async def test_run_provisions_with_current_credential(disk_client, fake_disk) -> None:
    specs, _ = ensure_folders.load_specs([{"brand": "Acme", "task_type": "Photo", "article": "A-1"}])
    token_service = StaticTokenService()

    outcome = await ensure_folders.run(
        specs,
        token_service=token_service,
        provisioner=FolderProvisioner(disk_client),
        user_id="u1",
    )

    assert token_service.subjects == ["u1"]
    assert [item["path"] for item in outcome.succeeded] == ["/Acme/Photo/P_A-1"]
    assert fake_disk.exists("/Acme/Photo/P_A-1")


def _patch_services(monkeypatch, disk_client, token_service) -> None:
    monkeypatch.setattr(ensure_folders, "get_token_service", lambda: token_service)
    monkeypatch.setattr(
        ensure_folders, "get_folder_provisioner", lambda: FolderProvisioner(disk_client)
    )


def test_main_writes_outcome(tmp_path: Path, monkeypatch, disk_client, fake_disk) -> None:
    tasks = tmp_path / "tasks.json"
    tasks.write_text(
        json.dumps(
            [
                {"brand": "Acme", "task_type": "Photo", "article": "A-1"},
                {"brand": "Acme", "task_type": "", "article": "A-2"},
            ]
        ),
        encoding="utf-8",
    )
    output = tmp_path / "result.json"
    _patch_services(monkeypatch, disk_client, StaticTokenService())

    exit_code = ensure_folders.main([str(tasks), "--output", str(output)])

    assert exit_code == ensure_folders.EXIT_OK
    report = json.loads(output.read_text(encoding="utf-8"))
    assert [item["path"] for item in report["succeeded"]] == ["/Acme/Photo/P_A-1"]
    assert report["invalid"] == [{"brand": "Acme", "task_type": "", "article": "A-2"}]


def test_main_reports_partial_failure(tmp_path: Path, monkeypatch, disk_client, fake_disk) -> None:
    tasks = tmp_path / "tasks.json"
    tasks.write_text(json.dumps([{"brand": "Acme", "task_type": "Photo", "article": "A-1"}]))
    fake_disk.fail("PUT", "/resources", "/Acme", 500)
    _patch_services(monkeypatch, disk_client, StaticTokenService())

    assert ensure_folders.main([str(tasks)]) == ensure_folders.EXIT_PARTIAL_FAILURE


def test_main_without_credential_is_a_no_op(tmp_path: Path, monkeypatch, disk_client, fake_disk) -> None:
    tasks = tmp_path / "tasks.json"
    tasks.write_text(json.dumps([{"brand": "Acme", "task_type": "Photo", "article": "A-1"}]))
    _patch_services(monkeypatch, disk_client, StaticTokenService(OAuthTokenNotFoundError("none")))

    assert ensure_folders.main([str(tasks)]) == ensure_folders.EXIT_OK
    assert fake_disk.calls == []


def test_main_fails_when_refresh_is_rejected(tmp_path: Path, monkeypatch, disk_client) -> None:
    tasks = tmp_path / "tasks.json"
    tasks.write_text(json.dumps([{"brand": "Acme", "task_type": "Photo", "article": "A-1"}]))
    _patch_services(
        monkeypatch, disk_client, StaticTokenService(OAuthTokenRefreshError("invalid_grant"))
    )

    assert ensure_folders.main([str(tasks)]) == ensure_folders.EXIT_RUNTIME_ERROR


def test_main_rejects_non_array_input(tmp_path: Path) -> None:
    tasks = tmp_path / "tasks.json"
    tasks.write_text(json.dumps({"brand": "Acme"}))

    assert ensure_folders.main([str(tasks)]) == ensure_folders.EXIT_INPUT_ERROR
