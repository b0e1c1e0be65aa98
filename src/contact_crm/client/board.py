"""Contact board — client-side mirror of the caller's contacts.

The board holds what the contact table renders and reconciles it with the
server. Two protocols are used:

* ``called`` is optimistic. The new value shows immediately, the request
  is sent, and the server's answer either confirms it or the value rolls
  back to the last server-confirmed one.
* ``remark``, ``status`` and ``followUpDate`` are pessimistic. Local state
  changes only once the server answers, and takes the server's value
  verbatim.

Every request is tagged with a sequence number per (contact, field). A
response whose number is no longer the latest for its field is discarded,
so a slow earlier answer can never overwrite a newer value.
"""

from __future__ import annotations

import itertools
import logging
from collections.abc import Mapping
from datetime import date
from typing import Any, Protocol

from contact_crm.client.commands import (
    AddContact,
    BoardResult,
    Command,
    RemoveContact,
    SetCalled,
    UpdateFollowUpDate,
    UpdateRemark,
    UpdateStatus,
)
from contact_crm.errors import CRMError, NotFoundError
from contact_crm.models.contact import ContactStatus
from contact_crm.schemas import ContactOut

logger = logging.getLogger(__name__)


class ContactGateway(Protocol):
    """The subset of :class:`~contact_crm.client.api.CRMClient` the board needs."""

    async def list_contacts(self) -> list[ContactOut]: ...

    async def create_contact(self, draft: Mapping[str, Any]) -> ContactOut: ...

    async def patch_contact(self, contact_id: int, fields: Mapping[str, Any]) -> ContactOut: ...

    async def delete_contact(self, contact_id: int) -> ContactOut: ...


class ContactBoard:
    """Local contact state plus the optimistic ``called`` protocol."""

    def __init__(self, gateway: ContactGateway) -> None:
        self._gateway = gateway
        self._contacts: dict[int, ContactOut] = {}
        self._confirmed_called: dict[int, bool] = {}
        self._latest: dict[tuple[int, str], int] = {}
        self._sequence = itertools.count(1)
        self.errors: list[str] = []

    # ── Read side ────────────────────────────────────────

    @property
    def contacts(self) -> list[ContactOut]:
        return list(self._contacts.values())

    def get(self, contact_id: int) -> ContactOut | None:
        return self._contacts.get(contact_id)

    @property
    def last_error(self) -> str | None:
        return self.errors[-1] if self.errors else None

    def clear_errors(self) -> None:
        self.errors.clear()

    def status_counts(self) -> dict[str, int]:
        contacts = self.contacts
        return {
            "total": len(contacts),
            "future": sum(1 for c in contacts if c.status is ContactStatus.FUTURE),
            "rejected": sum(1 for c in contacts if c.status is ContactStatus.REJECTED),
            "lead": sum(1 for c in contacts if c.status is ContactStatus.LEAD),
        }

    def profile_summary(self) -> dict[str, int]:
        """Totals shown on the profile page; a lead with a follow-up date counts as converted."""
        contacts = self.contacts
        leads = [c for c in contacts if c.status is ContactStatus.LEAD]
        return {
            "total": len(contacts),
            "activeLeads": len(leads),
            "converted": sum(1 for c in leads if c.follow_up_date is not None),
        }

    # ── Loading ──────────────────────────────────────────

    async def load(self) -> bool:
        """Replace local state with the server's list."""
        try:
            contacts = await self._gateway.list_contacts()
        except CRMError as exc:
            self._record_error("Failed to fetch contacts", exc)
            return False
        self._contacts = {c.id: c for c in contacts}
        self._confirmed_called = {c.id: c.called for c in contacts}
        logger.info("Loaded %d contacts", len(contacts))
        return True

    # ── Commands ─────────────────────────────────────────

    async def dispatch(self, command: Command) -> BoardResult:
        """Run the handler for *command* and return its outcome."""
        handlers = {
            SetCalled: lambda c: self.set_called(c.contact_id, c.called),
            UpdateRemark: lambda c: self.update_remark(c.contact_id, c.remark),
            UpdateStatus: lambda c: self.update_status(c.contact_id, c.status),
            UpdateFollowUpDate: lambda c: self.update_follow_up_date(c.contact_id, c.follow_up_date),
            AddContact: self.add_contact,
            RemoveContact: lambda c: self.remove_contact(c.contact_id),
        }
        handler = handlers.get(type(command))
        if handler is None:
            raise TypeError(f"Unsupported command: {command!r}")
        return await handler(command)

    async def set_called(self, contact_id: int, called: bool) -> BoardResult:
        """Optimistically set ``called``, then reconcile or roll back."""
        current = self._require(contact_id)
        fallback = self._confirmed_called.get(contact_id, current.called)
        seq = self._begin(contact_id, "called")

        # Visible before the request goes out.
        self._replace(contact_id, called=called)

        try:
            confirmed = await self._gateway.patch_contact(contact_id, {"called": called})
        except CRMError as exc:
            if not self._is_latest(contact_id, "called", seq):
                logger.info("Ignoring failed, superseded called update #%d for %s", seq, contact_id)
                return BoardResult(applied=False, stale=True)
            rollback = self._confirmed_called.get(contact_id, fallback)
            self._replace(contact_id, called=rollback)
            logger.warning("Rolled back called=%s on contact %s to %s", called, contact_id, rollback)
            error = self._record_error("Failed to update called status", exc)
            return BoardResult(applied=False, contact=self.get(contact_id), error=error)

        if not self._is_latest(contact_id, "called", seq):
            logger.info("Discarding stale called response #%d for contact %s", seq, contact_id)
            return BoardResult(applied=False, stale=True)

        if contact_id not in self._contacts:
            return BoardResult(applied=False, stale=True)
        self._confirmed_called[contact_id] = confirmed.called
        contact = self._replace(
            contact_id,
            called=confirmed.called,
            called_at=confirmed.called_at,
            updated_at=confirmed.updated_at,
        )
        return BoardResult(applied=True, contact=contact)

    async def update_remark(self, contact_id: int, remark: str) -> BoardResult:
        return await self._update_confirmed(contact_id, "remark", remark, "Failed to update remark")

    async def update_status(self, contact_id: int, status: ContactStatus | str) -> BoardResult:
        return await self._update_confirmed(contact_id, "status", status, "Failed to update status")

    async def update_follow_up_date(
        self, contact_id: int, follow_up_date: date | None
    ) -> BoardResult:
        return await self._update_confirmed(
            contact_id, "follow_up_date", follow_up_date, "Failed to update follow-up date"
        )

    async def add_contact(self, command: AddContact) -> BoardResult:
        draft = {
            "name": command.name,
            "phone": command.phone,
            "remark": command.remark,
            "status": command.status,
            "follow_up_date": command.follow_up_date,
        }
        try:
            created = await self._gateway.create_contact(draft)
        except CRMError as exc:
            return BoardResult(applied=False, error=self._record_error("Failed to create contact", exc))
        # Newest first, matching the server's ordering.
        self._contacts = {created.id: created, **self._contacts}
        self._confirmed_called[created.id] = created.called
        return BoardResult(applied=True, contact=created)

    async def remove_contact(self, contact_id: int) -> BoardResult:
        self._require(contact_id)
        try:
            removed = await self._gateway.delete_contact(contact_id)
        except CRMError as exc:
            return BoardResult(applied=False, error=self._record_error("Failed to delete contact", exc))
        self._contacts.pop(contact_id, None)
        self._confirmed_called.pop(contact_id, None)
        for key in [k for k in self._latest if k[0] == contact_id]:
            del self._latest[key]
        return BoardResult(applied=True, contact=removed)

    # ── Private helpers ──────────────────────────────────

    async def _update_confirmed(
        self, contact_id: int, field: str, value: Any, failure: str
    ) -> BoardResult:
        self._require(contact_id)
        seq = self._begin(contact_id, field)
        try:
            confirmed = await self._gateway.patch_contact(contact_id, {field: value})
        except CRMError as exc:
            if not self._is_latest(contact_id, field, seq):
                return BoardResult(applied=False, stale=True)
            return BoardResult(applied=False, contact=self.get(contact_id), error=self._record_error(failure, exc))

        if not self._is_latest(contact_id, field, seq) or contact_id not in self._contacts:
            logger.info("Discarding stale %s response #%d for contact %s", field, seq, contact_id)
            return BoardResult(applied=False, stale=True)

        contact = self._replace(
            contact_id,
            **{field: getattr(confirmed, field), "updated_at": confirmed.updated_at},
        )
        return BoardResult(applied=True, contact=contact)

    def _require(self, contact_id: int) -> ContactOut:
        contact = self._contacts.get(contact_id)
        if contact is None:
            raise NotFoundError(f"Contact {contact_id} is not on the board")
        return contact

    def _begin(self, contact_id: int, field: str) -> int:
        seq = next(self._sequence)
        self._latest[(contact_id, field)] = seq
        return seq

    def _is_latest(self, contact_id: int, field: str, seq: int) -> bool:
        return self._latest.get((contact_id, field)) == seq

    def _replace(self, contact_id: int, **changes: Any) -> ContactOut | None:
        contact = self._contacts.get(contact_id)
        if contact is None:
            # Removed while a request was in flight.
            return None
        updated = contact.model_copy(update=changes)
        self._contacts[contact_id] = updated
        return updated

    def _record_error(self, message: str, exc: CRMError) -> str:
        logger.error("%s: %s", message, exc.message)
        self.errors.append(message)
        return message
