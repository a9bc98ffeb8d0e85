"""Provision Yandex.Disk folders for a batch of tasks.

Reads a JSON array of task descriptors::

    [{"brand": "Acme", "task_type": "Photo", "article": "A-100", "prefix": "P"}]

and makes sure ``/<brand>/<type>/<prefix>_<article>`` exists and is public.
Leaves that already have a public link are skipped. Safe to re-run: folders
that already exist are left untouched.

Example::

    python -m scripts.ensure_folders tasks.json --limit 200 --output result.json
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import Any, Iterable, List, Optional, Tuple

from app.clients.yandex_oauth import OAuthTokenNotFoundError, OAuthTokenRefreshError
from app.core.config import get_settings
from app.core.logging import configure_logging
from app.dependencies import get_folder_provisioner, get_token_service
from app.models.disk import FolderSpec
from app.services.folder_provisioner import FolderProvisioner, Outcome
from app.services.yandex_tokens import YandexTokenService

logger = logging.getLogger("scripts.ensure_folders")

EXIT_OK = 0
EXIT_PARTIAL_FAILURE = 1
EXIT_INPUT_ERROR = 4
EXIT_RUNTIME_ERROR = 5

DEFAULT_LIMIT = 200


def load_specs(
    entries: Iterable[Any], *, limit: int = DEFAULT_LIMIT
) -> Tuple[List[FolderSpec], List[Any]]:
    """Build folder specs; malformed entries are returned separately."""
    specs: List[FolderSpec] = []
    invalid: List[Any] = []
    for entry in entries:
        if len(specs) >= limit:
            break
        if not isinstance(entry, dict):
            logger.warning("Skipping task descriptor that is not an object: %r", entry)
            invalid.append(entry)
            continue
        try:
            specs.append(
                FolderSpec.for_task(
                    str(entry.get("brand") or ""),
                    str(entry.get("task_type") or ""),
                    str(entry.get("article") or ""),
                    entry.get("prefix"),
                )
            )
        except ValueError:
            logger.warning("Skipping task with missing names: %s", entry)
            invalid.append(entry)
    return specs, invalid


async def run(
    specs: List[FolderSpec],
    *,
    token_service: YandexTokenService,
    provisioner: FolderProvisioner,
    user_id: Optional[str] = None,
) -> Outcome:
    credential = await token_service.get_credential(user_id)
    return await provisioner.ensure_many(credential.access_token, specs)


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Ensure task folders exist on Yandex.Disk.")
    parser.add_argument("input", type=Path, help="JSON file with task descriptors.")
    parser.add_argument(
        "--limit",
        type=int,
        default=DEFAULT_LIMIT,
        help=f"Max tasks to process per run (default: {DEFAULT_LIMIT}).",
    )
    parser.add_argument("--user-id", default=None, help="Credential owner when scoped per user.")
    parser.add_argument("--output", type=Path, default=None, help="Write the outcome as JSON.")
    return parser


def main(argv: list[str] | None = None) -> int:
    args = _build_parser().parse_args(argv)
    configure_logging(get_settings().log_level)

    try:
        entries = json.loads(args.input.read_text(encoding="utf-8"))
    except (OSError, ValueError) as exc:
        print(f"Cannot read task list {args.input}: {exc}", file=sys.stderr)
        return EXIT_INPUT_ERROR
    if not isinstance(entries, list):
        print("Task list must be a JSON array.", file=sys.stderr)
        return EXIT_INPUT_ERROR

    limit = args.limit if args.limit > 0 else DEFAULT_LIMIT
    specs, invalid = load_specs(entries, limit=limit)

    try:
        outcome = asyncio.run(
            run(
                specs,
                token_service=get_token_service(),
                provisioner=get_folder_provisioner(),
                user_id=args.user_id,
            )
        )
    except OAuthTokenNotFoundError:
        logger.warning("No Yandex credential found; skipping")
        return EXIT_OK
    except OAuthTokenRefreshError as exc:
        print(f"Yandex token refresh failed: {exc}", file=sys.stderr)
        return EXIT_RUNTIME_ERROR

    print(
        f"Processed: {len(specs) + len(invalid)}, created: {len(outcome.succeeded)}, "
        f"already: {len(outcome.skipped)}, invalid: {len(invalid)}, "
        f"errors: {len(outcome.failed)}"
    )
    if args.output:
        report = {**outcome.as_dict(), "invalid": invalid}
        args.output.write_text(json.dumps(report, ensure_ascii=False, indent=2), encoding="utf-8")
    return EXIT_PARTIAL_FAILURE if outcome.failed else EXIT_OK


if __name__ == "__main__":  # pragma: no cover - script entry point
    sys.exit(main())
