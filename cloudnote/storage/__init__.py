"""Storage adapter interface and its local and managed implementations."""

from cloudnote.storage.base import (
    AdminLogRecord,
    AdminLogStore,
    BlobInfo,
    BlobStore,
    Cache,
    NoteRecord,
    NoteStore,
    Storage,
)

__all__ = [
    "AdminLogRecord",
    "AdminLogStore",
    "BlobInfo",
    "BlobStore",
    "Cache",
    "NoteRecord",
    "NoteStore",
    "Storage",
]
