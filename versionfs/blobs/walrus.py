"""Walrus HTTP blob store."""

import logging

import requests

from ..errors import NotFoundError, StoreUnavailable
from .base import BlobStore

logger = logging.getLogger(__name__)

WALRUS_PUBLISHER = "https://publisher.walrus-testnet.walrus.space"
WALRUS_AGGREGATOR = "https://aggregator.walrus-testnet.walrus.space"


def _blob_id_from(result: dict) -> str:
    """Pull the blob id out of a publisher response."""
    if "newlyCreated" in result:
        created = result["newlyCreated"]
        logger.debug("Blob newly created, cost %s", created.get("cost"))
        return created["blobObject"]["blobId"]
    if "alreadyCertified" in result:
        return result["alreadyCertified"]["blobId"]
    raise StoreUnavailable(f"Unexpected response format: {sorted(result)}")


class Walrus(BlobStore):
    """Blob store backed by a Walrus publisher (writes) and aggregator (reads)."""

    def __init__(
        self,
        publisher_url: str = WALRUS_PUBLISHER,
        aggregator_url: str = WALRUS_AGGREGATOR,
        *,
        default_epochs: int = 3,
        timeout: float = 30.0,
        session: requests.Session | None = None,
    ) -> None:
        self.publisher_url = publisher_url.rstrip("/")
        self.aggregator_url = aggregator_url.rstrip("/")
        self.default_epochs = default_epochs
        self.timeout = timeout
        self.session = session or requests.Session()

    def put(self, data: bytes, epochs: int | None = None) -> str:
        if epochs is None:
            epochs = self.default_epochs
        url = f"{self.publisher_url}/v1/blobs"
        logger.debug("Uploading %d bytes to %s", len(data), url)
        try:
            response = self.session.put(
                url,
                params={"epochs": epochs},
                data=data,
                headers={"Content-Type": "application/octet-stream"},
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            raise StoreUnavailable(f"Upload failed: {e}") from e
        if not response.ok:
            raise StoreUnavailable(
                f"Upload failed: {response.status_code} - {response.text}"
            )
        try:
            result = response.json()
        except ValueError as e:
            raise StoreUnavailable(f"Upload returned invalid JSON: {e}") from e
        blob_id = _blob_id_from(result)
        logger.debug("Stored blob %s", blob_id)
        return blob_id

    def get(self, blob_id: str) -> bytes:
        url = f"{self.aggregator_url}/v1/blobs/{blob_id}"
        try:
            response = self.session.get(url, timeout=self.timeout)
        except requests.RequestException as e:
            raise StoreUnavailable(f"Download failed: {e}") from e
        if response.status_code == 404:
            raise NotFoundError(f"Blob not found: {blob_id}")
        if not response.ok:
            raise StoreUnavailable(
                f"Download failed: {response.status_code} - {response.reason}"
            )
        logger.debug("Downloaded %d bytes for %s", len(response.content), blob_id)
        return response.content

    def exists(self, blob_id: str) -> bool:
        try:
            response = self.session.head(
                f"{self.aggregator_url}/v1/blobs/{blob_id}", timeout=self.timeout
            )
        except requests.RequestException:
            return False
        return response.ok
