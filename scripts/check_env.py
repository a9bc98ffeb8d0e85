"""Utility for verifying that the bridge's environment configuration is intact.

The tool performs two main checks:

1. It loads ``AppSettings`` from the provided ``.env`` file and applies the
   Yandex-specific rules the settings models cannot express on their own
   (the OAuth redirect must land on this service's callback route, stored
   tokens must be encrypted with a dedicated secret in production).
2. It can record and verify a checksum of the ``.env`` file so unexpected
   edits are detected. The baseline uses the ``sha256sum`` line format, so
   ``sha256sum -c`` accepts it as well.

Example usages::

    python -m scripts.check_env record --env-file /srv/disk-bridge/.env \
        --hash-file /srv/disk-bridge/.env.sha256

    python -m scripts.check_env verify --env-file /srv/disk-bridge/.env \
        --hash-file /srv/disk-bridge/.env.sha256

    # Validate and print a redacted summary of the effective settings.
    python -m scripts.check_env check --env-file .env
"""

from __future__ import annotations

import argparse
import hashlib
import sys
from pathlib import Path
from typing import Callable, List

from pydantic import ValidationError

from app.core.config import AppSettings, _load_env_file

EXIT_OK = 0
EXIT_VALIDATION_ERROR = 2
EXIT_CHECKSUM_ERROR = 3
EXIT_RUNTIME_ERROR = 5

CALLBACK_ROUTE = "/integrations/yandex/callback"
PRODUCTION_ENVIRONMENTS = ("production", "prod")


def _checksum(env_file: Path) -> str:
    return hashlib.sha256(env_file.read_bytes()).hexdigest()


def _load_settings(env_file: Path) -> AppSettings:
    _load_env_file(str(env_file))
    return AppSettings()  # type: ignore[call-arg]


def yandex_problems(settings: AppSettings) -> List[str]:
    """Return configuration problems that would break the Yandex integration."""
    problems: List[str] = []
    redirect_path = (settings.yandex.redirect_uri.path or "").rstrip("/")
    if not redirect_path.endswith(CALLBACK_ROUTE):
        problems.append(
            f"YANDEX_REDIRECT_URI must point at the {CALLBACK_ROUTE} route "
            f"(got path '{redirect_path or '/'}')."
        )
    if (
        settings.environment.lower() in PRODUCTION_ENVIRONMENTS
        and not settings.security.token_encryption_secret
    ):
        problems.append(
            "TOKEN_ENCRYPTION_SECRET is required in production; stored tokens "
            "would otherwise be keyed by the OAuth client secret."
        )
    return problems


def _redact(value: str | None) -> str:
    if not value:
        return "<unset>"
    return "*" * 6 + value[-4:] if len(value) > 8 else "*" * len(value)


def _describe(settings: AppSettings) -> int:
    """Print the effective configuration without leaking secrets."""
    yandex = settings.yandex
    print(f"Environment:        {settings.environment}")
    print(f"Database:           {settings.storage.db_path}")
    print(f"Yandex client id:   {yandex.client_id}")
    print(f"Yandex secret:      {_redact(yandex.client_secret)}")
    print(f"Redirect URI:       {yandex.redirect_uri}")
    print(f"Disk API:           {yandex.api_base_url}")
    print(f"Credential scope:   {yandex.token_scope}")
    print(f"Refresh leeway:     {yandex.refresh_leeway_seconds}s")
    print(f"Token encryption:   {_redact(settings.security.token_encryption_secret)}")
    return EXIT_OK


def _record_checksum(env_file: Path, hash_file: Path) -> int:
    checksum = _checksum(env_file)
    hash_file.write_text(f"{checksum}  {env_file.name}\n", encoding="utf-8")
    print(f"Recorded checksum to {hash_file} ({checksum})")
    return EXIT_OK


def _read_baseline(hash_file: Path) -> str:
    """First field of the baseline; older files hold the bare digest."""
    fields = hash_file.read_text(encoding="utf-8").split()
    return fields[0] if fields else ""


def _verify_checksum(env_file: Path, hash_file: Path) -> int:
    if not hash_file.exists():
        print(
            f"No checksum baseline at {hash_file}; run 'record' first.",
            file=sys.stderr,
        )
        return EXIT_RUNTIME_ERROR

    expected = _read_baseline(hash_file)
    actual = _checksum(env_file)
    if expected == actual:
        print("Environment checksum OK.")
        return EXIT_OK

    print(
        f"{env_file} changed since the baseline was recorded "
        f"(expected {expected}, got {actual}). Review the Yandex settings "
        "before restarting the bridge.",
        file=sys.stderr,
    )
    return EXIT_CHECKSUM_ERROR


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Validate Yandex.Disk bridge settings and detect .env drift."
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    commands = (
        ("record", "Validate settings and store the checksum baseline.",
         "Location to write the checksum baseline."),
        ("verify", "Validate settings and compare the checksum with the baseline.",
         "Location of the previously recorded checksum baseline."),
        ("check", "Validate settings and print a redacted summary.", None),
    )
    for name, help_text, hash_help in commands:
        subparser = subparsers.add_parser(name, help=help_text)
        subparser.add_argument(
            "--env-file",
            default=".env",
            type=Path,
            help="Path to the environment file (default: .env in the repo root).",
        )
        if hash_help:
            subparser.add_argument("--hash-file", required=True, type=Path, help=hash_help)
    return parser


def main(argv: list[str] | None = None) -> int:
    args = _build_parser().parse_args(argv)
    env_file: Path = args.env_file

    if not env_file.exists():
        print(f"Environment file {env_file} does not exist.", file=sys.stderr)
        return EXIT_RUNTIME_ERROR

    try:
        settings = _load_settings(env_file)
    except ValidationError as exc:
        print(
            "Settings validation failed. Missing or invalid values detected:\n"
            f"{exc.json(indent=2)}",
            file=sys.stderr,
        )
        return EXIT_VALIDATION_ERROR

    problems = yandex_problems(settings)
    if problems:
        for problem in problems:
            print(problem, file=sys.stderr)
        return EXIT_VALIDATION_ERROR

    handlers: dict[str, Callable[[], int]] = {
        "record": lambda: _record_checksum(env_file, args.hash_file),
        "verify": lambda: _verify_checksum(env_file, args.hash_file),
        "check": lambda: _describe(settings),
    }
    return handlers[args.command]()


if __name__ == "__main__":  # pragma: no cover - script entry point
    sys.exit(main())
