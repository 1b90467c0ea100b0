"""Tests for the diskcache blob store."""

import shutil
import tempfile
import time

import pytest

from versionfs.blobs.disk import Disk
from versionfs.errors import NotFoundError


@pytest.fixture
def disk_store():
    tmpdir = tempfile.mkdtemp()
    store = Disk(tmpdir)
    yield store, tmpdir
    store.close()
    shutil.rmtree(tmpdir, ignore_errors=True)


class TestDiskBlobs:
    def test_put_get(self, disk_store):
        store, _ = disk_store
        blob_id = store.put(b"hello")
        assert store.get(blob_id) == b"hello"

    def test_get_missing(self, disk_store):
        store, _ = disk_store
        with pytest.raises(NotFoundError):
            store.get("nope")

    def test_exists(self, disk_store):
        store, _ = disk_store
        blob_id = store.put(b"v")
        assert store.exists(blob_id)
        assert not store.exists("nope")

    def test_type_error_on_non_bytes(self, disk_store):
        store, _ = disk_store
        with pytest.raises(TypeError, match="Expected bytes"):
            store.put("not bytes")  # type: ignore

    def test_remove(self, disk_store):
        store, _ = disk_store
        blob_id = store.put(b"v")
        store.remove(blob_id)
        assert not store.exists(blob_id)


class TestDiskRetention:
    def test_survives_reload(self, disk_store):
        store, tmpdir = disk_store
        blob_id = store.put(b"persistent")
        store.close()
        store2 = Disk(tmpdir)
        assert store2.get(blob_id) == b"persistent"
        store2.close()

    def test_blob_expires_after_epochs(self):
        tmpdir = tempfile.mkdtemp()
        store = Disk(tmpdir, epoch_seconds=0.05)
        try:
            blob_id = store.put(b"short-lived", epochs=1)
            assert store.exists(blob_id)
            time.sleep(0.2)
            assert not store.exists(blob_id)
            with pytest.raises(NotFoundError):
                store.get(blob_id)
        finally:
            store.close()
            shutil.rmtree(tmpdir, ignore_errors=True)
