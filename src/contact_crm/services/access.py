"""Access-scoping layer — every contact operation runs as a verified identity.

Ownership is re-derived from the identity on every call; no authorization
decision is cached. Admins get no raw access to other employees' contacts,
only the aggregated statistics in :mod:`contact_crm.services.stats`.

Concurrent writes to the same contact are last-write-wins per field: there
is no version check, the later ``UPDATE`` simply overwrites.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from datetime import UTC, datetime
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from contact_crm.database.repository import ContactRepository
from contact_crm.errors import Forbidden, NotFoundError
from contact_crm.models.contact import Contact
from contact_crm.schemas import ContactDraft, ContactPatch, ContactReplace, coerce
from contact_crm.services.token_service import Identity

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(UTC)


class ContactAccess:
    """Contact operations scoped to the owner carried by an :class:`Identity`."""

    def __init__(
        self, session: AsyncSession, *, clock: Callable[[], datetime] = _utcnow
    ) -> None:
        self._session = session
        self._contacts = ContactRepository(session)
        self._clock = clock

    async def list_contacts(self, identity: Identity) -> list[Contact]:
        """Only the caller's own contacts, whatever the caller's role."""
        return await self._contacts.list_by_owner(identity.user_id)

    async def get_contact(self, identity: Identity, contact_id: int) -> Contact:
        return await self._owned(identity, contact_id)

    async def create_contact(
        self, identity: Identity, draft: ContactDraft | Mapping[str, Any]
    ) -> Contact:
        """Insert a contact owned by the caller, ignoring any owner in *draft*."""
        draft = coerce(ContactDraft, draft)
        now = self._clock()
        contact = Contact(
            owner_id=identity.user_id,
            name=draft.name,
            phone=draft.phone,
            remark=draft.remark,
            status=draft.status,
            follow_up_date=draft.follow_up_date,
            called=draft.called,
            called_at=now if draft.called else None,
            created_at=now,
            updated_at=now,
        )
        await self._contacts.add(contact)
        await self._session.commit()
        logger.info("User %s created contact %s", identity.user_id, contact.id)
        return contact

    async def update_contact(
        self,
        identity: Identity,
        contact_id: int,
        patch: ContactPatch | ContactReplace | Mapping[str, Any],
    ) -> Contact:
        """Apply the fields present in *patch* and refresh ``updated_at``.

        Raises ``NotFoundError`` for an unknown id and ``Forbidden`` when the
        caller does not own the contact; in both cases nothing is written.
        """
        if not isinstance(patch, (ContactPatch, ContactReplace)):
            patch = coerce(ContactPatch, patch)
        contact = await self._owned(identity, contact_id)

        now = self._clock()
        changes = dict(patch.changes())
        if "called" in changes:
            if not changes["called"]:
                changes["called_at"] = None
            elif not contact.called or contact.called_at is None:
                changes["called_at"] = now
        changes["updated_at"] = now

        updated = await self._contacts.update_fields(contact.id, changes)
        if updated is None:
            # Deleted between the ownership check and the write.
            raise NotFoundError("Contact not found")
        await self._session.commit()
        logger.info(
            "User %s updated contact %s (%s)",
            identity.user_id,
            contact_id,
            ", ".join(sorted(k for k in changes if k != "updated_at")) or "no fields",
        )
        return updated

    async def replace_contact(
        self,
        identity: Identity,
        contact_id: int,
        replacement: ContactReplace | Mapping[str, Any],
    ) -> Contact:
        """Full update: name and phone are required, the rest fall back to defaults."""
        return await self.update_contact(
            identity, contact_id, coerce(ContactReplace, replacement)
        )

    async def delete_contact(self, identity: Identity, contact_id: int) -> Contact:
        """Remove an owned contact and return it as it was before deletion."""
        contact = await self._owned(identity, contact_id)
        await self._contacts.delete(contact.id)
        await self._session.commit()
        logger.info("User %s deleted contact %s", identity.user_id, contact_id)
        return contact

    # ── Private helpers ──────────────────────────────────

    async def _owned(self, identity: Identity, contact_id: int) -> Contact:
        contact = await self._contacts.get(contact_id)
        if contact is None:
            raise NotFoundError("Contact not found")
        if contact.owner_id != identity.user_id:
            logger.warning(
                "User %s attempted to access contact %s owned by %s",
                identity.user_id,
                contact_id,
                contact.owner_id,
            )
            raise Forbidden("You do not have access to this contact")
        return contact
