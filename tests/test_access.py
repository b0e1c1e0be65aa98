"""Tests for the access-scoping layer — ownership, validation and called_at."""

from datetime import UTC, datetime, timedelta

import pytest

from contact_crm.errors import Forbidden, NotFoundError, ValidationError
from contact_crm.models.contact import ContactStatus
from contact_crm.models.user import Role
from contact_crm.services.access import ContactAccess
from contact_crm.services.token_service import Identity

ALICE = Identity(user_id=1, role=Role.EMPLOYEE)
BOB = Identity(user_id=2, role=Role.EMPLOYEE)
GRACE = Identity(user_id=3, role=Role.ADMIN)

T0 = datetime(2026, 3, 10, 9, 0, tzinfo=UTC)


class FakeClock:
    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now += timedelta(**kwargs)
        return self.now


@pytest.fixture
def clock():
    return FakeClock(T0)


@pytest.fixture
def access(db_session, clock):
    return ContactAccess(db_session, clock=clock)


# ──────────────────────────────────────────────────────────
# Creation
# ──────────────────────────────────────────────────────────
@pytest.mark.asyncio
async def test_create_defaults(access):
    contact = await access.create_contact(ALICE, {"name": "Carol", "phone": "+15551234567"})
    assert contact.owner_id == ALICE.user_id
    assert contact.status is ContactStatus.FUTURE
    assert contact.called is False
    assert contact.called_at is None
    assert contact.remark == ""
    assert contact.created_at == contact.updated_at == T0


@pytest.mark.asyncio
async def test_create_ignores_owner_in_draft(access):
    contact = await access.create_contact(
        ALICE, {"name": "Carol", "phone": "+15551234567", "ownerId": BOB.user_id}
    )
    assert contact.owner_id == ALICE.user_id
    assert await access.list_contacts(BOB) == []


@pytest.mark.asyncio
async def test_create_called_stamps_called_at(access):
    contact = await access.create_contact(ALICE, {"name": "Carol", "phone": "1", "called": True})
    assert contact.called_at == T0


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "draft, field",
    [
        ({"name": "", "phone": "1"}, "name"),
        ({"name": "Carol", "phone": "   "}, "phone"),
        ({"phone": "1"}, "name"),
        ({"name": "Carol", "phone": "1", "status": "maybe"}, "status"),
        ({"name": "Carol", "phone": "1", "called": "yes"}, "called"),
    ],
)
async def test_create_rejects_bad_drafts(access, draft, field):
    with pytest.raises(ValidationError) as excinfo:
        await access.create_contact(ALICE, draft)
    assert field in excinfo.value.fields
    assert await access.list_contacts(ALICE) == []


# ──────────────────────────────────────────────────────────
# Ownership
# ──────────────────────────────────────────────────────────
@pytest.mark.asyncio
async def test_list_never_leaks_across_owners(access):
    await access.create_contact(ALICE, {"name": "Carol", "phone": "1"})
    await access.create_contact(BOB, {"name": "Dan", "phone": "2"})

    assert [c.name for c in await access.list_contacts(ALICE)] == ["Carol"]
    assert [c.name for c in await access.list_contacts(BOB)] == ["Dan"]
    # Admins see only their own contacts, which here is none.
    assert await access.list_contacts(GRACE) == []


@pytest.mark.asyncio
async def test_non_owner_update_is_forbidden_and_writes_nothing(access):
    contact = await access.create_contact(ALICE, {"name": "Carol", "phone": "1"})

    with pytest.raises(Forbidden):
        await access.update_contact(BOB, contact.id, {"remark": "mine now"})
    with pytest.raises(Forbidden):
        await access.update_contact(GRACE, contact.id, {"status": "lead"})

    unchanged = await access.get_contact(ALICE, contact.id)
    assert unchanged.remark == ""
    assert unchanged.status is ContactStatus.FUTURE


@pytest.mark.asyncio
async def test_non_owner_read_and_delete_forbidden(access):
    contact = await access.create_contact(ALICE, {"name": "Carol", "phone": "1"})
    with pytest.raises(Forbidden):
        await access.get_contact(BOB, contact.id)
    with pytest.raises(Forbidden):
        await access.delete_contact(BOB, contact.id)
    assert len(await access.list_contacts(ALICE)) == 1


@pytest.mark.asyncio
async def test_unknown_contact_not_found(access):
    with pytest.raises(NotFoundError):
        await access.get_contact(ALICE, 999)
    with pytest.raises(NotFoundError):
        await access.update_contact(ALICE, 999, {"called": True})
    with pytest.raises(NotFoundError):
        await access.delete_contact(ALICE, 999)


# ──────────────────────────────────────────────────────────
# Updates
# ──────────────────────────────────────────────────────────
@pytest.mark.asyncio
async def test_partial_update_touches_only_given_fields(access, clock):
    contact = await access.create_contact(
        ALICE, {"name": "Carol", "phone": "1", "remark": "first", "status": "lead"}
    )
    later = clock.advance(minutes=5)

    updated = await access.update_contact(ALICE, contact.id, {"remark": "second"})
    assert updated.remark == "second"
    assert updated.status is ContactStatus.LEAD
    assert updated.name == "Carol"
    assert updated.updated_at == later
    assert updated.created_at == T0


@pytest.mark.asyncio
async def test_invalid_status_leaves_contact_unchanged(access):
    contact = await access.create_contact(ALICE, {"name": "Carol", "phone": "1", "status": "lead"})

    with pytest.raises(ValidationError) as excinfo:
        await access.update_contact(ALICE, contact.id, {"status": "maybe"})
    assert "status" in excinfo.value.fields

    assert (await access.get_contact(ALICE, contact.id)).status is ContactStatus.LEAD


@pytest.mark.asyncio
async def test_null_status_rejected(access):
    contact = await access.create_contact(ALICE, {"name": "Carol", "phone": "1"})
    with pytest.raises(ValidationError):
        await access.update_contact(ALICE, contact.id, {"status": None})


@pytest.mark.asyncio
async def test_follow_up_date_can_be_cleared(access):
    contact = await access.create_contact(
        ALICE, {"name": "Carol", "phone": "1", "followUpDate": "2026-04-01"}
    )
    assert contact.follow_up_date is not None
    updated = await access.update_contact(ALICE, contact.id, {"followUpDate": None})
    assert updated.follow_up_date is None


@pytest.mark.asyncio
async def test_called_at_follows_called_transitions(access, clock):
    contact = await access.create_contact(ALICE, {"name": "Carol", "phone": "1"})

    first_call = clock.advance(hours=1)
    updated = await access.update_contact(ALICE, contact.id, {"called": True})
    assert updated.called is True
    assert updated.called_at == first_call

    # Unrelated edits and repeated ticks keep the original stamp.
    clock.advance(hours=1)
    updated = await access.update_contact(ALICE, contact.id, {"remark": "left a message"})
    assert updated.called_at == first_call
    updated = await access.update_contact(ALICE, contact.id, {"called": True})
    assert updated.called_at == first_call

    clock.advance(hours=1)
    updated = await access.update_contact(ALICE, contact.id, {"called": False})
    assert updated.called is False
    assert updated.called_at is None


@pytest.mark.asyncio
async def test_replace_resets_omitted_fields(access):
    contact = await access.create_contact(
        ALICE, {"name": "Carol", "phone": "1", "remark": "note", "status": "lead", "called": True}
    )
    replaced = await access.replace_contact(ALICE, contact.id, {"name": "Carol D.", "phone": "2"})
    assert replaced.name == "Carol D."
    assert replaced.phone == "2"
    assert replaced.remark == ""
    assert replaced.status is ContactStatus.FUTURE
    assert replaced.called is False
    assert replaced.called_at is None
    assert replaced.owner_id == ALICE.user_id


@pytest.mark.asyncio
async def test_replace_requires_name_and_phone(access):
    contact = await access.create_contact(ALICE, {"name": "Carol", "phone": "1"})
    with pytest.raises(ValidationError):
        await access.replace_contact(ALICE, contact.id, {"name": "Carol"})


@pytest.mark.asyncio
async def test_delete_returns_contact(access):
    contact = await access.create_contact(ALICE, {"name": "Carol", "phone": "1"})
    deleted = await access.delete_contact(ALICE, contact.id)
    assert deleted.id == contact.id
    assert await access.list_contacts(ALICE) == []
    with pytest.raises(NotFoundError):
        await access.get_contact(ALICE, contact.id)


@pytest.mark.asyncio
async def test_update_of_contact_deleted_mid_request_is_not_found(access, db_session, monkeypatch):
    contact = await access.create_contact(ALICE, {"name": "Carol", "phone": "1"})
    repo = access._contacts
    original = repo.update_fields

    async def delete_then_update(contact_id, fields):
        # Another tab removes the contact after the ownership check passed.
        await repo.delete(contact_id)
        await db_session.commit()
        return await original(contact_id, fields)

    monkeypatch.setattr(repo, "update_fields", delete_then_update)

    with pytest.raises(NotFoundError):
        await access.update_contact(ALICE, contact.id, {"remark": "x"})
