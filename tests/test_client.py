"""Tests for the client session and HTTP client against the in-process app."""

import httpx
import pytest

from contact_crm.client.api import CRMClient
from contact_crm.client.board import ContactBoard
from contact_crm.client.session import ClientSession
from contact_crm.errors import (
    AuthenticationError,
    AuthorizationError,
    NotFoundError,
    UpstreamUnavailable,
    ValidationError,
)
from contact_crm.models.contact import ContactStatus
from contact_crm.services.accounts import DUPLICATE_EMAIL

BASE_URL = "http://test/api"
PASSWORD = "secret123"


@pytest.fixture
def session(tmp_path):
    return ClientSession(storage_path=tmp_path / "session.json")


@pytest.fixture
def crm(app, session):
    return CRMClient(session, BASE_URL, transport=httpx.ASGITransport(app=app))


# ──────────────────────────────────────────────────────────
# Session lifecycle
# ──────────────────────────────────────────────────────────
@pytest.mark.asyncio
async def test_signup_starts_and_persists_session(crm, session):
    user = await crm.signup("Alice Johnson", "alice@example.com", PASSWORD)

    assert session.is_authenticated
    assert session.is_employee and not session.is_admin
    assert session.user.id == user.id

    restored = ClientSession(storage_path=session.storage_path)
    assert restored.restore()
    assert restored.token == session.token
    assert restored.user == session.user


@pytest.mark.asyncio
async def test_restored_session_is_validated(app, crm, session):
    await crm.signup("Alice Johnson", "alice@example.com", PASSWORD)

    restored = ClientSession(storage_path=session.storage_path)
    restored.restore()
    client = CRMClient(restored, BASE_URL, transport=httpx.ASGITransport(app=app))
    assert await client.validate_session()


@pytest.mark.asyncio
async def test_logout_clears_session_and_file(crm, session):
    await crm.signup("Alice Johnson", "alice@example.com", PASSWORD)
    cleared = []
    session.on_clear(lambda: cleared.append(True))

    crm.logout()

    assert not session.is_authenticated
    assert not session.storage_path.exists()
    assert cleared == [True]


def test_unreadable_session_file_is_discarded(session):
    session.storage_path.write_text("{not json", encoding="utf-8")
    assert session.restore() is False
    assert not session.storage_path.exists()


@pytest.mark.asyncio
async def test_rejected_token_clears_session(crm, session):
    user = await crm.signup("Alice Johnson", "alice@example.com", PASSWORD)
    session.start("forged-token", user)
    cleared = []
    session.on_clear(lambda: cleared.append(True))

    with pytest.raises(AuthenticationError):
        await crm.list_contacts()

    assert not session.is_authenticated
    assert cleared == [True]
    assert await crm.validate_session() is False


@pytest.mark.asyncio
async def test_bad_login_keeps_session_empty(crm, session):
    await crm.signup("Alice Johnson", "alice@example.com", PASSWORD)
    crm.logout()

    with pytest.raises(AuthenticationError):
        await crm.login("alice@example.com", "wrong-password")
    assert not session.is_authenticated

    await crm.login("alice@example.com", PASSWORD)
    assert session.is_authenticated


# ──────────────────────────────────────────────────────────
# Error mapping
# ──────────────────────────────────────────────────────────
@pytest.mark.asyncio
async def test_server_errors_map_to_error_classes(crm, session):
    await crm.signup("Alice Johnson", "alice@example.com", PASSWORD)

    with pytest.raises(AuthorizationError):
        await crm.employee_stats()
    # A 403 is not a session problem.
    assert session.is_authenticated

    with pytest.raises(NotFoundError):
        await crm.get_contact(999)

    crm.logout()
    with pytest.raises(ValidationError, match=DUPLICATE_EMAIL):
        await crm.signup("Alice Again", "alice@example.com", PASSWORD)


@pytest.mark.asyncio
async def test_bad_drafts_fail_before_sending(crm):
    await crm.signup("Alice Johnson", "alice@example.com", PASSWORD)
    with pytest.raises(ValidationError) as excinfo:
        await crm.create_contact({"name": "", "phone": "1"})
    assert "name" in excinfo.value.fields


@pytest.mark.asyncio
async def test_network_failure_is_upstream_unavailable(session):
    def refuse(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    client = CRMClient(session, BASE_URL, transport=httpx.MockTransport(refuse))
    with pytest.raises(UpstreamUnavailable):
        await client.login("alice@example.com", PASSWORD)


# ──────────────────────────────────────────────────────────
# Contacts, profile and stats
# ──────────────────────────────────────────────────────────
@pytest.mark.asyncio
async def test_contact_round_trip(crm):
    await crm.signup("Alice Johnson", "alice@example.com", PASSWORD)

    created = await crm.create_contact({"name": "Carol", "phone": "+15551234567"})
    assert created.status is ContactStatus.FUTURE

    patched = await crm.patch_contact(created.id, {"status": "lead", "remark": "keen"})
    assert patched.status is ContactStatus.LEAD
    assert patched.remark == "keen"

    replaced = await crm.replace_contact(created.id, {"name": "Carol Davis", "phone": "+15551234567"})
    assert replaced.status is ContactStatus.FUTURE

    assert [c.id for c in await crm.list_contacts()] == [created.id]
    deleted = await crm.delete_contact(created.id)
    assert deleted.id == created.id
    assert await crm.list_contacts() == []


@pytest.mark.asyncio
async def test_profile_updates_refresh_session(crm, session):
    await crm.signup("Alice Johnson", "alice@example.com", PASSWORD)

    user = await crm.update_profile(location="Lisbon")
    assert user.location == "Lisbon"
    assert session.user.location == "Lisbon"

    result = await crm.upload_profile_picture(b"\x89PNG\r\n\x1a\n", "me.png", "image/png")
    assert result.profile_picture.startswith("/uploads/")
    assert session.user.profile_picture == result.profile_picture


@pytest.mark.asyncio
async def test_admin_stats(app, crm, session):
    await crm.signup("Alice Johnson", "alice@example.com", PASSWORD)
    await crm.create_contact({"name": "Carol", "phone": "1", "called": True})
    crm.logout()

    await crm.signup("Grace Admin", "grace@example.com", PASSWORD, role="admin")
    assert session.is_admin

    rows = await crm.employee_stats()
    assert len(rows) == 1
    assert rows[0].email == "alice@example.com"
    assert rows[0].called_today == 1

    watcher = crm.watch_employee_stats(interval=0)
    assert (await anext(watcher))[0].later == 1
    await watcher.aclose()


@pytest.mark.asyncio
async def test_board_against_live_api(crm):
    await crm.signup("Alice Johnson", "alice@example.com", PASSWORD)
    await crm.create_contact({"name": "Carol", "phone": "1"})

    board = ContactBoard(crm)
    assert await board.load()
    contact_id = board.contacts[0].id

    result = await board.set_called(contact_id, True)
    assert result.applied
    assert board.get(contact_id).called_at is not None

    result = await board.update_status(contact_id, ContactStatus.LEAD)
    assert result.applied
    assert (await crm.get_contact(contact_id)).status is ContactStatus.LEAD
