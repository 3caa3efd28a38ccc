"""
Blob Object Model.

Export and backup artifacts kept on the managed database.
"""

from datetime import datetime

from sqlalchemy import DateTime, Integer, LargeBinary, String
from sqlalchemy.orm import Mapped, mapped_column

from cloudnote.core.utils import utc_now
from cloudnote.models.base import Base


class BlobObject(Base):
    """Raw bytes stored under a slash-separated logical key."""

    __tablename__ = "blob_objects"

    key: Mapped[str] = mapped_column(String(512), primary_key=True)
    data: Mapped[bytes] = mapped_column(LargeBinary, nullable=False)
    size: Mapped[int] = mapped_column(Integer, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utc_now, nullable=False)

    def __repr__(self) -> str:
        return f"<BlobObject(key={self.key!r}, size={self.size})>"
