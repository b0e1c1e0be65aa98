"""SQLAlchemy User model."""

from __future__ import annotations

import enum
from datetime import UTC, date, datetime

from sqlalchemy import Date, Integer, String
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from contact_crm.models.types import UTCDateTime, enum_column


class Base(DeclarativeBase):
    """Shared declarative base for all ORM models."""


class Role(str, enum.Enum):
    """Closed set of account roles; fixed at signup."""

    EMPLOYEE = "employee"
    ADMIN = "admin"


class User(Base):
    """An employee or administrator account.

    ``email`` is unique and compared exactly as stored. ``role`` is set
    at signup and never changes afterwards.
    """

    __tablename__ = "users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(256), nullable=False)
    email: Mapped[str] = mapped_column(String(256), nullable=False, unique=True)
    password_hash: Mapped[str] = mapped_column(String(512), nullable=False)
    role: Mapped[Role] = mapped_column(
        enum_column(Role), nullable=False, default=Role.EMPLOYEE
    )
    phone: Mapped[str | None] = mapped_column(String(32), nullable=True)
    location: Mapped[str | None] = mapped_column(String(256), nullable=True)
    member_since: Mapped[date | None] = mapped_column(Date, nullable=True)
    profile_picture: Mapped[str | None] = mapped_column(String(512), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        UTCDateTime(), default=lambda: datetime.now(UTC)
    )

    def __repr__(self) -> str:
        return f"<User id={self.id} email={self.email!r} role={self.role.value}>"
