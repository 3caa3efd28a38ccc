"""
Note Model.

The only durable entity: a note addressed by its URL path.
"""

from sqlalchemy import Boolean, CheckConstraint, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from cloudnote.models.base import Base, TimestampMixin

LOCK_TYPES = ("read", "write")


class Note(TimestampMixin, Base):
    """
    Note database model.

    Lock fields move together: an unlocked note has neither a lock type
    nor a password hash, a locked one has both.
    """

    __tablename__ = "notes"
    __table_args__ = (
        CheckConstraint(
            "(is_locked AND lock_type IS NOT NULL AND password_hash IS NOT NULL)"
            " OR (NOT is_locked AND lock_type IS NULL AND password_hash IS NULL)",
            name="ck_notes_lock_fields",
        ),
        CheckConstraint(
            "lock_type IS NULL OR lock_type IN ('read', 'write')",
            name="ck_notes_lock_type",
        ),
        CheckConstraint("view_count >= 0", name="ck_notes_view_count"),
    )

    path: Mapped[str] = mapped_column(String(255), primary_key=True)
    content: Mapped[str | None] = mapped_column(Text, nullable=True, default="")
    is_locked: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    lock_type: Mapped[str | None] = mapped_column(String(8), nullable=True)
    password_hash: Mapped[str | None] = mapped_column(String(255), nullable=True)
    view_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    def __repr__(self) -> str:
        return f"<Note(path={self.path!r}, is_locked={self.is_locked})>"
