"""SQLAlchemy models backing the database storage backend."""

from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import DateTime, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from pricecomparer.db.base import Base


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class KeyValueEntry(Base):
    __tablename__ = "key_value_entries"
    __table_args__ = (UniqueConstraint("key", name="uq_key_value_entries_key"),)

    key: Mapped[str] = mapped_column(String(191), nullable=False)
    value: Mapped[str] = mapped_column(Text, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, onupdate=utc_now
    )


__all__ = ["KeyValueEntry"]
