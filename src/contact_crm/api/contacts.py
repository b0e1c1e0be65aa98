"""Contact endpoints — every call is scoped to the token's owner."""

from __future__ import annotations

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from contact_crm.api.dependencies import get_identity
from contact_crm.database.engine import get_session
from contact_crm.schemas import (
    ContactDeleted,
    ContactDraft,
    ContactOut,
    ContactPatch,
    ContactReplace,
)
from contact_crm.services.access import ContactAccess
from contact_crm.services.token_service import Identity

router = APIRouter(prefix="/api/contacts", tags=["contacts"])


@router.get("", response_model=list[ContactOut])
async def list_contacts(
    identity: Identity = Depends(get_identity),
    session: AsyncSession = Depends(get_session),
) -> list[ContactOut]:
    contacts = await ContactAccess(session).list_contacts(identity)
    return [ContactOut.from_contact(c) for c in contacts]


@router.post("", response_model=ContactOut, status_code=status.HTTP_201_CREATED)
async def create_contact(
    body: ContactDraft,
    identity: Identity = Depends(get_identity),
    session: AsyncSession = Depends(get_session),
) -> ContactOut:
    contact = await ContactAccess(session).create_contact(identity, body)
    return ContactOut.from_contact(contact)


@router.get("/{contact_id}", response_model=ContactOut)
async def get_contact(
    contact_id: int,
    identity: Identity = Depends(get_identity),
    session: AsyncSession = Depends(get_session),
) -> ContactOut:
    contact = await ContactAccess(session).get_contact(identity, contact_id)
    return ContactOut.from_contact(contact)


@router.put("/{contact_id}", response_model=ContactOut)
async def replace_contact(
    contact_id: int,
    body: ContactReplace,
    identity: Identity = Depends(get_identity),
    session: AsyncSession = Depends(get_session),
) -> ContactOut:
    contact = await ContactAccess(session).replace_contact(identity, contact_id, body)
    return ContactOut.from_contact(contact)


@router.patch("/{contact_id}", response_model=ContactOut)
async def patch_contact(
    contact_id: int,
    body: ContactPatch,
    identity: Identity = Depends(get_identity),
    session: AsyncSession = Depends(get_session),
) -> ContactOut:
    contact = await ContactAccess(session).update_contact(identity, contact_id, body)
    return ContactOut.from_contact(contact)


@router.delete("/{contact_id}", response_model=ContactDeleted)
async def delete_contact(
    contact_id: int,
    identity: Identity = Depends(get_identity),
    session: AsyncSession = Depends(get_session),
) -> ContactDeleted:
    contact = await ContactAccess(session).delete_contact(identity, contact_id)
    return ContactDeleted(message="Contact deleted successfully", contact=ContactOut.from_contact(contact))
