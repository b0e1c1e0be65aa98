"""User intents understood by :class:`~contact_crm.client.board.ContactBoard`."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date

from contact_crm.models.contact import ContactStatus
from contact_crm.schemas import ContactOut


@dataclass(frozen=True)
class SetCalled:
    contact_id: int
    called: bool


@dataclass(frozen=True)
class UpdateRemark:
    contact_id: int
    remark: str


@dataclass(frozen=True)
class UpdateStatus:
    contact_id: int
    status: ContactStatus | str


@dataclass(frozen=True)
class UpdateFollowUpDate:
    contact_id: int
    follow_up_date: date | None


@dataclass(frozen=True)
class AddContact:
    name: str
    phone: str
    remark: str = ""
    status: ContactStatus | str = ContactStatus.FUTURE
    follow_up_date: date | None = None


@dataclass(frozen=True)
class RemoveContact:
    contact_id: int


Command = SetCalled | UpdateRemark | UpdateStatus | UpdateFollowUpDate | AddContact | RemoveContact


@dataclass
class BoardResult:
    """Outcome of one command after the server answered (or didn't).

    ``applied`` is false when the request failed or its response was
    superseded by a newer request for the same field.
    """

    applied: bool
    contact: ContactOut | None = None
    error: str | None = None
    stale: bool = False
