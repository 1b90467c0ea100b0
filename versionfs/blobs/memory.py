"""In-memory blob store."""

import base64
import hashlib
import threading

from ..errors import NotFoundError
from .base import BlobStore


def content_id(data: bytes) -> str:
    """Derive a Walrus-style (unpadded base64url) id from the content."""
    digest = hashlib.sha256(data).digest()
    return base64.urlsafe_b64encode(digest).rstrip(b"=").decode("ascii")


class Memory(BlobStore):
    """A memory-backed blob store. Identical content shares one id."""

    def __init__(self) -> None:
        self.memory: dict[str, bytes] = {}
        self._lock = threading.Lock()

    def put(self, data: bytes, epochs: int | None = None) -> str:
        if not isinstance(data, bytes):
            raise TypeError(f"Expected bytes, got {type(data).__name__}")
        blob_id = content_id(data)
        with self._lock:
            self.memory.setdefault(blob_id, data)
        return blob_id

    def get(self, blob_id: str) -> bytes:
        try:
            return self.memory[blob_id]
        except KeyError:
            raise NotFoundError(f"Blob not found: {blob_id}") from None

    def exists(self, blob_id: str) -> bool:
        return blob_id in self.memory

    def remove(self, blob_id: str) -> None:
        """Drop a blob, as if its storage epochs ran out."""
        with self._lock:
            self.memory.pop(blob_id, None)

    def __len__(self) -> int:
        return len(self.memory)
