"""Repositories — data access layer for users and contacts.

The repositories only know how to store and fetch rows. Ownership and
validation rules live in :mod:`contact_crm.services.access`.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from sqlalchemy import delete, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from contact_crm.models.contact import Contact
from contact_crm.models.user import User


class UserRepository:
    """Encapsulates all database queries related to users."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get(self, user_id: int) -> User | None:
        return await self._session.get(User, user_id)

    async def find_by_email(self, email: str) -> User | None:
        """Look up a user by email, exactly as stored."""
        stmt = select(User).where(User.email == email)
        result = await self._session.execute(stmt)
        return result.scalar_one_or_none()

    async def add(self, user: User) -> User:
        self._session.add(user)
        await self._session.flush()
        return user


class ContactRepository:
    """Point lookup, owner filter, insert, partial update and delete for contacts."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get(self, contact_id: int) -> Contact | None:
        return await self._session.get(Contact, contact_id)

    async def list_by_owner(self, owner_id: int) -> list[Contact]:
        """Contacts owned by *owner_id*, newest first."""
        stmt = (
            select(Contact)
            .where(Contact.owner_id == owner_id)
            .order_by(Contact.created_at.desc(), Contact.id.desc())
        )
        result = await self._session.execute(stmt)
        return list(result.scalars())

    async def add(self, contact: Contact) -> Contact:
        self._session.add(contact)
        await self._session.flush()
        return contact

    async def update_fields(self, contact_id: int, fields: Mapping[str, Any]) -> Contact | None:
        """Write only the given columns and return the refreshed row."""
        if fields:
            stmt = (
                update(Contact)
                .where(Contact.id == contact_id)
                .values(**fields)
                .execution_options(synchronize_session="fetch")
            )
            await self._session.execute(stmt)
        return await self._session.get(Contact, contact_id, populate_existing=True)

    async def delete(self, contact_id: int) -> bool:
        stmt = delete(Contact).where(Contact.id == contact_id)
        result = await self._session.execute(stmt)
        return result.rowcount > 0
