"""
Path helpers and value types for the Yandex.Disk resource namespace.

All remote paths live under the ``disk:/`` root. Callers may pass raw
slash-delimited paths ("/Brand/Type"); the client normalizes them before
every request.
"""

from __future__ import annotations

import posixpath
import re
from dataclasses import dataclass
from enum import Enum
from typing import Iterable, Optional

ROOT = "disk:/"
_ROOT_MARKER = "disk:"
_UNSAFE_NAME_CHARS = re.compile(r"[\\\n\r\t]")

_OWNERSHIP_PREFIXES = {
    "Photographer": "ф_",
    "PhotoEditor": "д_",
}


class ResourceState(str, Enum):
    """Outcome of an idempotent provider call that did not fail."""

    CREATED = "created"
    ALREADY_EXISTS = "already_exists"


def normalize_path(path: str) -> str:
    """Return ``path`` rooted at ``disk:/``. Idempotent."""
    path = path.strip()
    if path.startswith(_ROOT_MARKER):
        path = path[len(_ROOT_MARKER):]
    path = path.lstrip("/")
    return ROOT + path


def _relative(path: str) -> str:
    return normalize_path(path)[len(ROOT):].rstrip("/")


def parent_path(path: str) -> str:
    """Return the normalized parent directory; the root is its own parent."""
    parent = posixpath.dirname(_relative(path))
    return ROOT + parent.lstrip("/") if parent else ROOT


def base_name(path: str) -> str:
    return posixpath.basename(_relative(path))


def join_path(base: str, *parts: str) -> str:
    """Join path segments under ``base`` and return the normalized result."""
    head = normalize_path(base).rstrip("/")
    tail = "/".join(part.strip("/") for part in parts if part.strip("/"))
    if not tail:
        return normalize_path(base)
    return f"{head}/{tail}"


def sanitize_name(name: str) -> str:
    """Make a display name safe to use as one path segment."""
    name = _UNSAFE_NAME_CHARS.sub(" ", name)
    return name.replace("/", "-").strip()


def subtask_folder_path(brand: str, name: str, ownership: Optional[str]) -> str:
    """Folder of a subtask: ``/<Brand>/<ownership prefix><Name>``."""
    prefix = _OWNERSHIP_PREFIXES.get(ownership or "", "")
    return f"/{sanitize_name(brand)}/{prefix}{sanitize_name(name)}"


@dataclass(frozen=True, slots=True)
class FolderSpec:
    """Ordered directory chain, parents first, that must exist for the leaf."""

    paths: tuple[str, ...]

    def __post_init__(self) -> None:
        if not self.paths:
            raise ValueError("FolderSpec requires at least one path")

    @property
    def leaf(self) -> str:
        return self.paths[-1]

    def __iter__(self):
        return iter(self.paths)

    def __len__(self) -> int:
        return len(self.paths)

    @classmethod
    def of(cls, paths: Iterable[str]) -> "FolderSpec":
        return cls(tuple(paths))

    @classmethod
    def for_path(cls, path: str) -> "FolderSpec":
        """Every ancestor of ``path`` followed by ``path`` itself."""
        segments = [segment for segment in _relative(path).split("/") if segment]
        if not segments:
            raise ValueError("Cannot provision the disk root")
        return cls(
            tuple("/" + "/".join(segments[: index + 1]) for index in range(len(segments)))
        )

    @classmethod
    def for_task(
        cls,
        brand: str,
        task_type: str,
        article: str,
        prefix: Optional[str] = None,
    ) -> "FolderSpec":
        """Brand -> type -> ``<prefix>_<article>`` chain used for task folders.

        The prefix falls back to the first character of the type name.
        """
        brand_name = sanitize_name(brand)
        type_name = sanitize_name(task_type)
        article_name = sanitize_name(article)
        if not brand_name or not type_name or not article_name:
            raise ValueError("Brand, type and article names must not be empty")
        leaf_prefix = (prefix or "").strip() or type_name[:1]
        brand_path = f"/{brand_name}"
        type_path = f"{brand_path}/{type_name}"
        return cls((brand_path, type_path, f"{type_path}/{leaf_prefix}_{article_name}"))


__all__ = [
    "FolderSpec",
    "ROOT",
    "ResourceState",
    "base_name",
    "join_path",
    "normalize_path",
    "parent_path",
    "sanitize_name",
    "subtask_folder_path",
]
