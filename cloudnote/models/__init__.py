# Database models package
from cloudnote.models.admin_log import AdminLog
from cloudnote.models.base import Base
from cloudnote.models.blob import BlobObject
from cloudnote.models.note import LOCK_TYPES, Note

__all__ = [
    "AdminLog",
    "Base",
    "BlobObject",
    "LOCK_TYPES",
    "Note",
]
