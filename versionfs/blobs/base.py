"""Abstract blob store interface."""

import json
from abc import ABC, abstractmethod
from typing import Any


class BlobStore(ABC):
    """Content-addressed store of immutable byte blobs.

    Ids are assigned by the store on first write. Uploading identical
    bytes again may return the same id or a new usable one; callers must
    not rely on either.
    """

    @abstractmethod
    def put(self, data: bytes, epochs: int | None = None) -> str:
        """Store ``data`` for ``epochs`` storage epochs and return its id.

        Raises:
            StoreUnavailable: If the store cannot accept the upload.
        """

    @abstractmethod
    def get(self, blob_id: str) -> bytes:
        """Return the bytes of a blob.

        Raises:
            NotFoundError: If the id is unknown or has expired.
        """

    @abstractmethod
    def exists(self, blob_id: str) -> bool:
        """Check whether a blob can be fetched. Never raises."""

    def put_json(self, obj: Any, epochs: int | None = None) -> str:
        """Store a JSON document."""
        return self.put(json.dumps(obj, indent=2).encode(), epochs)

    def get_json(self, blob_id: str) -> Any:
        return json.loads(self.get(blob_id))
