"""Repository, commit and session records."""

from dataclasses import dataclass, field
from enum import Enum


class ChangeKind(str, Enum):
    ADDED = "added"
    REMOVED = "removed"
    MODIFIED = "modified"


@dataclass(frozen=True)
class Commit:
    """An immutable version node.

    The root commit has no parents. Every other commit has at least one,
    and ``parents[0]`` is the first parent followed by ``log``.
    """

    id: str
    root_tree_blob_id: str
    parents: tuple[str, ...]
    author: str
    timestamp: int
    message: str

    @property
    def is_root(self) -> bool:
        return not self.parents

    @property
    def short_id(self) -> str:
        return self.id[:10]


@dataclass(frozen=True)
class Repository:
    """A repository record as stored on the ledger.

    ``branch_heads`` is only filled for the branches the caller resolved.
    """

    id: str
    name: str
    owner: str
    commit_count: int
    branch_heads: dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class Session:
    """The repository an engine operates on, plus its write capability."""

    repo_id: str
    capability: str


@dataclass(frozen=True)
class Change:
    """One path that differs between two commits."""

    path: str
    kind: ChangeKind


@dataclass(frozen=True)
class Status:
    name: str
    owner: str
    commit_count: int
    repo_id: str
