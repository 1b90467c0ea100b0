"""Blob store backends."""

from .base import BlobStore
from .memory import Memory

__all__ = ["BlobStore", "Memory"]
