"""Disk-backed blob store using diskcache."""

from typing import cast

from ..errors import NotFoundError, StoreUnavailable
from .base import BlobStore
from .memory import content_id

ONE_GB = 1024 * 1024 * 1024
ONE_DAY = 24 * 60 * 60


class Disk(BlobStore):
    """Blob store backed by diskcache (SQLite + mmap).

    Each blob expires ``epochs * epoch_seconds`` after it was written,
    mirroring the retention of the remote store. ``epochs=None`` keeps
    the blob ``default_epochs``.
    """

    def __init__(
        self,
        directory: str,
        *,
        default_epochs: int = 3,
        epoch_seconds: float = ONE_DAY,
        size_limit: int = ONE_GB,
    ) -> None:
        from diskcache import Cache as DiskCache

        self.store = DiskCache(directory, size_limit=size_limit)
        self.default_epochs = default_epochs
        self.epoch_seconds = epoch_seconds

    def put(self, data: bytes, epochs: int | None = None) -> str:
        if not isinstance(data, bytes):
            raise TypeError(f"Expected bytes, got {type(data).__name__}")
        if epochs is None:
            epochs = self.default_epochs
        blob_id = content_id(data)
        expire = epochs * self.epoch_seconds if epochs > 0 else None
        # re-storing refreshes the retention window
        if not self.store.set(blob_id, data, expire=expire, retry=True):
            raise StoreUnavailable(f"diskcache refused blob {blob_id}")
        return blob_id

    def get(self, blob_id: str) -> bytes:
        data = cast(bytes | None, self.store.get(blob_id, retry=True))
        if data is None:
            raise NotFoundError(f"Blob not found: {blob_id}")
        return data

    def exists(self, blob_id: str) -> bool:
        try:
            return blob_id in self.store
        except Exception:
            return False

    def remove(self, blob_id: str) -> None:
        self.store.delete(blob_id, retry=True)

    def close(self) -> None:
        self.store.close()
