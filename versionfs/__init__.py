"""versionfs: Git-like version control over a blob store and a ledger."""

from .blobs.base import BlobStore
from .config import Config
from .engine import VersioningEngine
from .errors import (
    DecodeError,
    IndexingTimeout,
    LedgerUnavailable,
    NotFoundError,
    PermissionDenied,
    StoreUnavailable,
    TransactionRejected,
    ValidationError,
    VersionFSError,
)
from .factory import open_engine
from .ledger.client import LedgerClient
from .models import Change, ChangeKind, Commit, Repository, Session, Status
from .tree import FileEntry, Tree

__all__ = [
    "BlobStore",
    "Change",
    "ChangeKind",
    "Commit",
    "Config",
    "DecodeError",
    "FileEntry",
    "IndexingTimeout",
    "LedgerClient",
    "LedgerUnavailable",
    "NotFoundError",
    "PermissionDenied",
    "Repository",
    "Session",
    "Status",
    "StoreUnavailable",
    "TransactionRejected",
    "Tree",
    "ValidationError",
    "VersionFSError",
    "VersioningEngine",
    "open_engine",
]
