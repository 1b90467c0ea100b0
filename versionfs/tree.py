"""Directory-tree snapshots: path -> file entry."""

import json
from collections.abc import Iterator, Mapping
from dataclasses import dataclass
from typing import Any, Iterable, Literal

from .errors import DecodeError, ValidationError

EntryType = Literal["file", "directory"]


@dataclass(frozen=True)
class FileEntry:
    """One path in a tree and the blob holding its content."""

    path: str
    name: str
    type: EntryType
    blob_id: str | None
    size: int

    @property
    def is_file(self) -> bool:
        return self.type == "file" and bool(self.blob_id)

    def to_dict(self) -> dict[str, Any]:
        return {
            "path": self.path,
            "name": self.name,
            "type": self.type,
            "blobId": self.blob_id,
            "size": self.size,
        }


class Tree(Mapping[str, FileEntry]):
    """Read-only mapping from relative path to ``FileEntry``."""

    def __init__(self, entries: Mapping[str, FileEntry] | None = None) -> None:
        self._entries: dict[str, FileEntry] = dict(entries or {})

    def __getitem__(self, path: str) -> FileEntry:
        return self._entries[path]

    def __iter__(self) -> Iterator[str]:
        return iter(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __repr__(self) -> str:
        return f"Tree({len(self._entries)} entries)"

    def files(self) -> Iterator[FileEntry]:
        """Entries that reference a file blob."""
        return (e for e in self._entries.values() if e.is_file)

    @property
    def total_size(self) -> int:
        return sum(e.size for e in self.files())


def _name_of(path: str) -> str:
    return path.rstrip("/").rsplit("/", 1)[-1]


def empty_tree() -> Tree:
    return Tree()


def build_tree(entries: Iterable[Mapping[str, Any]]) -> Tree:
    """Build a tree from ``{path, blob_id, size}`` items.

    Raises:
        ValidationError: If a path is empty or appears more than once.
    """
    built: dict[str, FileEntry] = {}
    for item in entries:
        path = item["path"]
        if not path:
            raise ValidationError("Tree entry with empty path")
        if path in built:
            raise ValidationError(f"Duplicate path in tree: {path!r}")
        built[path] = FileEntry(
            path=path,
            name=_name_of(path),
            type="file",
            blob_id=item["blob_id"],
            size=int(item["size"]),
        )
    return Tree(built)


def serialize(tree: Tree) -> bytes:
    """Encode a tree as a self-describing JSON object keyed by path."""
    payload = {path: entry.to_dict() for path, entry in tree.items()}
    return json.dumps(payload, indent=2).encode()


def parse(raw: bytes) -> Tree:
    """Decode a tree written by ``serialize`` (or by another client).

    ``name`` and ``type`` may be absent: they default to the last path
    segment and ``"file"``.

    Raises:
        DecodeError: If the payload is not a JSON object of entries.
    """
    try:
        payload = json.loads(raw)
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        raise DecodeError(f"Tree blob is not valid JSON: {e}") from e
    if not isinstance(payload, dict):
        raise DecodeError("Tree blob must be a JSON object")

    entries: dict[str, FileEntry] = {}
    for path, item in payload.items():
        if not isinstance(item, dict):
            raise DecodeError(f"Tree entry for {path!r} is not an object")
        entry_type = item.get("type", "file")
        if entry_type not in ("file", "directory"):
            raise DecodeError(f"Unknown entry type {entry_type!r} for {path!r}")
        for key in ("path", "name"):
            value = item.get(key)
            if value is not None and not isinstance(value, str):
                raise DecodeError(f"Tree entry {path!r}: {key} must be a string")
        blob_id = item.get("blobId")
        if blob_id is not None and not isinstance(blob_id, str):
            raise DecodeError(f"Tree entry {path!r}: blobId must be a string")
        size = item.get("size")
        if size is None:
            size = 0
        # bool is an int subclass
        elif isinstance(size, bool) or not isinstance(size, int) or size < 0:
            raise DecodeError(
                f"Tree entry {path!r}: size must be a non-negative integer"
            )
        entries[path] = FileEntry(
            path=item.get("path") or path,
            name=item.get("name") or _name_of(path),
            type=entry_type,
            blob_id=blob_id,
            size=size,
        )
    return Tree(entries)
