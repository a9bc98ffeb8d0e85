"""HTTP utilities shared by the provider clients."""

from __future__ import annotations

import httpx

BODY_PREVIEW_LIMIT = 500


def build_timeout(*, connect: float, read: float) -> httpx.Timeout:
    """Bounded connect + read timeout; write and pool follow the read budget."""
    return httpx.Timeout(read, connect=connect)


def truncate_body(text: str | None, limit: int = BODY_PREVIEW_LIMIT) -> str:
    if not text:
        return ""
    if len(text) <= limit:
        return text
    return text[:limit] + "..."


__all__ = ["BODY_PREVIEW_LIMIT", "build_timeout", "truncate_body"]
