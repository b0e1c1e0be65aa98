"""SQLAlchemy Contact model."""

from __future__ import annotations

import enum
from datetime import UTC, date, datetime

from sqlalchemy import Boolean, Date, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from contact_crm.models.types import UTCDateTime, enum_column
from contact_crm.models.user import Base


class ContactStatus(str, enum.Enum):
    """Where a contact stands in the sales pipeline."""

    FUTURE = "future"
    REJECTED = "rejected"
    LEAD = "lead"


class Contact(Base):
    """A person an employee is calling.

    Every contact has exactly one owner (``owner_id``). ``called_at`` is
    stamped when ``called`` flips to true and cleared when it flips back,
    so "called today" does not depend on unrelated edits.
    """

    __tablename__ = "contacts"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    owner_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    name: Mapped[str] = mapped_column(String(256), nullable=False)
    phone: Mapped[str] = mapped_column(String(32), nullable=False)
    remark: Mapped[str] = mapped_column(Text, nullable=False, default="")
    status: Mapped[ContactStatus] = mapped_column(
        enum_column(ContactStatus), nullable=False, default=ContactStatus.FUTURE
    )
    follow_up_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    called: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    called_at: Mapped[datetime | None] = mapped_column(
        UTCDateTime(), nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(
        UTCDateTime(), default=lambda: datetime.now(UTC)
    )
    updated_at: Mapped[datetime] = mapped_column(
        UTCDateTime(), default=lambda: datetime.now(UTC)
    )

    __table_args__ = (Index("ix_contacts_owner_id", "owner_id"),)

    def __repr__(self) -> str:
        return (
            f"<Contact id={self.id} owner={self.owner_id} name={self.name!r} "
            f"status={self.status.value}>"
        )
