"""Client session — the token and user the browser-side layer acts as.

The session is an explicit object handed to whoever needs it instead of
ambient global storage. Lifecycle: ``restore()`` on start-up, ``start()``
after login or signup, ``clear()`` on logout or when the server answers
401.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path

from contact_crm.models.user import Role
from contact_crm.schemas import UserOut

logger = logging.getLogger(__name__)


@dataclass
class ClientSession:
    """Current credentials, optionally persisted to a JSON file."""

    storage_path: Path | None = None
    token: str | None = None
    user: UserOut | None = None
    _listeners: list = field(default_factory=list, init=False, repr=False)

    @property
    def is_authenticated(self) -> bool:
        return self.token is not None and self.user is not None

    @property
    def is_admin(self) -> bool:
        return self.user is not None and self.user.role is Role.ADMIN

    @property
    def is_employee(self) -> bool:
        return self.user is not None and self.user.role is Role.EMPLOYEE

    def on_clear(self, callback) -> None:
        """Register *callback* to run whenever the session is cleared."""
        self._listeners.append(callback)

    def auth_headers(self) -> dict[str, str]:
        if not self.token:
            return {}
        return {"Authorization": f"Bearer {self.token}"}

    def start(self, token: str, user: UserOut) -> None:
        self.token = token
        self.user = user
        self._save()
        logger.info("Session started for %s", user.email)

    def update_user(self, user: UserOut) -> None:
        """Refresh the cached profile without touching the token."""
        self.user = user
        self._save()

    def clear(self) -> None:
        had_session = self.token is not None
        self.token = None
        self.user = None
        if self.storage_path is not None:
            self.storage_path.unlink(missing_ok=True)
        if had_session:
            logger.info("Session cleared")
            for callback in list(self._listeners):
                callback()

    def restore(self) -> bool:
        """Load a previously saved session; returns ``True`` if one was found."""
        if self.storage_path is None or not self.storage_path.exists():
            return False
        try:
            raw = json.loads(self.storage_path.read_text(encoding="utf-8"))
            token = raw["token"]
            user = UserOut.model_validate(raw["user"])
        except (OSError, ValueError, KeyError, TypeError) as exc:
            logger.warning("Discarding unreadable session file %s: %s", self.storage_path, exc)
            self.clear()
            return False
        self.token = token
        self.user = user
        return True

    def _save(self) -> None:
        if self.storage_path is None or self.token is None or self.user is None:
            return
        self.storage_path.parent.mkdir(parents=True, exist_ok=True)
        payload = {"token": self.token, "user": self.user.model_dump(mode="json", by_alias=True)}
        self.storage_path.write_text(json.dumps(payload), encoding="utf-8")
