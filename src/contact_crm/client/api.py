"""CRM API client — async HTTP wrapper used by the client synchronization layer.

Every call attaches the session's bearer token. Error responses are turned
back into the classes of :mod:`contact_crm.errors`; a 401 also clears the
session so the caller knows it has to log in again.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator, Mapping
from typing import Any

import httpx

from contact_crm.client.session import ClientSession
from contact_crm.config import settings
from contact_crm.errors import AuthenticationError, UpstreamUnavailable, ValidationError, error_for_status
from contact_crm.schemas import (
    AuthResponse,
    ContactDraft,
    ContactOut,
    ContactPatch,
    ContactReplace,
    EmployeeStatsRow,
    ProfilePictureResponse,
    ProfileUpdate,
    UserOut,
    coerce,
)

logger = logging.getLogger(__name__)


class CRMClient:
    """Async HTTP client for the CRM REST API.

    Parameters
    ----------
    session:
        Holds the token attached to requests; cleared on 401.
    base_url:
        API root, e.g. ``http://localhost:8000/api``.
    transport:
        Optional httpx transport (``httpx.ASGITransport`` in tests).
    """

    def __init__(
        self,
        session: ClientSession,
        base_url: str | None = None,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
        timeout: float = 10.0,
    ) -> None:
        self._session = session
        self._base_url = (base_url or settings.api_base_url).rstrip("/")
        self._transport = transport
        self._timeout = timeout

    # ── Auth ─────────────────────────────────────────────

    async def signup(self, name: str, email: str, password: str, role: str = "employee") -> UserOut:
        data = await self._request(
            "POST",
            "/auth/signup",
            json={"name": name, "email": email, "password": password, "role": role},
            authenticated=False,
        )
        return self._start_session(data)

    async def login(self, email: str, password: str) -> UserOut:
        data = await self._request(
            "POST",
            "/auth/login",
            json={"email": email, "password": password},
            authenticated=False,
        )
        return self._start_session(data)

    def logout(self) -> None:
        self._session.clear()

    async def validate_session(self) -> bool:
        """Check a restored token by fetching the profile; clears it when rejected."""
        if not self._session.token:
            return False
        try:
            user = await self.me()
        except AuthenticationError:
            return False
        self._session.update_user(user)
        return True

    # ── Profile ──────────────────────────────────────────

    async def me(self) -> UserOut:
        return UserOut.model_validate(await self._request("GET", "/users/me"))

    async def update_profile(self, **fields: Any) -> UserOut:
        update = coerce(ProfileUpdate, fields)
        data = await self._request(
            "PATCH",
            "/users/me",
            json=update.model_dump(mode="json", by_alias=True, exclude_unset=True),
        )
        user = UserOut.model_validate(data)
        self._session.update_user(user)
        return user

    async def upload_profile_picture(
        self, content: bytes, filename: str, content_type: str
    ) -> ProfilePictureResponse:
        data = await self._request(
            "POST",
            "/users/me/profile-picture",
            files={"profilePicture": (filename, content, content_type)},
        )
        result = ProfilePictureResponse.model_validate(data)
        self._session.update_user(result.user)
        return result

    # ── Contacts ─────────────────────────────────────────

    async def list_contacts(self) -> list[ContactOut]:
        data = await self._request("GET", "/contacts")
        return [ContactOut.model_validate(item) for item in data]

    async def get_contact(self, contact_id: int) -> ContactOut:
        return ContactOut.model_validate(await self._request("GET", f"/contacts/{contact_id}"))

    async def create_contact(self, draft: ContactDraft | Mapping[str, Any]) -> ContactOut:
        body = coerce(ContactDraft, draft).model_dump(mode="json", by_alias=True)
        return ContactOut.model_validate(await self._request("POST", "/contacts", json=body))

    async def replace_contact(
        self, contact_id: int, contact: ContactReplace | Mapping[str, Any]
    ) -> ContactOut:
        body = coerce(ContactReplace, contact).model_dump(mode="json", by_alias=True)
        data = await self._request("PUT", f"/contacts/{contact_id}", json=body)
        return ContactOut.model_validate(data)

    async def patch_contact(
        self, contact_id: int, fields: ContactPatch | Mapping[str, Any]
    ) -> ContactOut:
        body = coerce(ContactPatch, fields).model_dump(mode="json", by_alias=True, exclude_unset=True)
        data = await self._request("PATCH", f"/contacts/{contact_id}", json=body)
        return ContactOut.model_validate(data)

    async def delete_contact(self, contact_id: int) -> ContactOut:
        data = await self._request("DELETE", f"/contacts/{contact_id}")
        return ContactOut.model_validate(data["contact"])

    # ── Admin ────────────────────────────────────────────

    async def employee_stats(self) -> list[EmployeeStatsRow]:
        data = await self._request("GET", "/users/employees/stats")
        return [EmployeeStatsRow.model_validate(item) for item in data]

    async def watch_employee_stats(
        self, interval: float = 10.0
    ) -> AsyncIterator[list[EmployeeStatsRow]]:
        """Yield fresh stats every *interval* seconds until the consumer stops.

        Transient failures are logged and retried on the next tick; any
        other error, including a rejected token, propagates to the consumer.
        """
        while True:
            try:
                yield await self.employee_stats()
            except UpstreamUnavailable as exc:
                logger.warning("Stats refresh failed: %s", exc.message)
            await asyncio.sleep(interval)

    # ── Private helpers ──────────────────────────────────

    def _start_session(self, data: Any) -> UserOut:
        auth = AuthResponse.model_validate(data)
        self._session.start(auth.token, auth.user)
        return auth.user

    async def _request(
        self,
        method: str,
        path: str,
        *,
        json: Any = None,
        files: Any = None,
        authenticated: bool = True,
    ) -> Any:
        headers = self._session.auth_headers() if authenticated else {}
        url = f"{self._base_url}{path}"
        try:
            async with httpx.AsyncClient(transport=self._transport, timeout=self._timeout) as client:
                resp = await client.request(method, url, json=json, files=files, headers=headers)
        except httpx.HTTPError as exc:
            logger.error("%s %s failed: %s", method, path, exc)
            raise UpstreamUnavailable("Network error: could not reach the server") from exc

        if resp.status_code < 400:
            return resp.json()

        try:
            body = resp.json()
        except ValueError:
            body = {}
        message = body.get("message") if isinstance(body, dict) else None
        error = error_for_status(resp.status_code, message or f"Server error: {resp.status_code}")
        if isinstance(error, ValidationError) and isinstance(body, dict):
            error.fields = dict(body.get("errors") or {})

        if resp.status_code == 401 and authenticated:
            logger.info("Token rejected by server; clearing session")
            self._session.clear()
        else:
            logger.error("%s %s → %s %s", method, path, resp.status_code, error.message)
        raise error
