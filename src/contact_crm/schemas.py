"""Pydantic request / response models shared by the API and the client.

JSON uses camelCase field names; Python code uses snake_case. Every model
accepts either spelling on input.
"""

from __future__ import annotations

import re
from collections.abc import Mapping
from datetime import date, datetime
from typing import Any, TypeVar

from pydantic import BaseModel, ConfigDict, Field, StrictBool, field_validator, model_validator
from pydantic import ValidationError as PydanticValidationError
from pydantic.alias_generators import to_camel

from contact_crm.errors import ValidationError
from contact_crm.models.contact import Contact, ContactStatus
from contact_crm.models.user import Role, User

EMAIL_PATTERN = re.compile(r"[^@\s]+@[^@\s]+\.[^@\s]+")
MIN_PASSWORD_LENGTH = 6

ModelT = TypeVar("ModelT", bound=BaseModel)


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


def _strip_required(value: str, label: str) -> str:
    stripped = value.strip()
    if not stripped:
        raise ValueError(f"{label} is required")
    return stripped


# ── Auth ─────────────────────────────────────────────────


class SignupRequest(CamelModel):
    name: str
    email: str
    password: str
    role: str | None = None

    @field_validator("name")
    @classmethod
    def _name_required(cls, value: str) -> str:
        return _strip_required(value, "Name")

    @field_validator("email")
    @classmethod
    def _email_format(cls, value: str) -> str:
        stripped = value.strip()
        if not EMAIL_PATTERN.fullmatch(stripped):
            raise ValueError("Invalid email address")
        return stripped

    @field_validator("password")
    @classmethod
    def _password_length(cls, value: str) -> str:
        if len(value) < MIN_PASSWORD_LENGTH:
            raise ValueError(
                f"Password must be at least {MIN_PASSWORD_LENGTH} characters long"
            )
        return value

    def requested_role(self) -> Role:
        """The requested role, falling back to employee for unknown values."""
        try:
            return Role(self.role) if self.role else Role.EMPLOYEE
        except ValueError:
            return Role.EMPLOYEE


class LoginRequest(CamelModel):
    email: str
    password: str

    @field_validator("email")
    @classmethod
    def _email_required(cls, value: str) -> str:
        stripped = value.strip()
        if not stripped:
            raise ValueError("Email and password are required")
        return stripped

    @field_validator("password")
    @classmethod
    def _password_required(cls, value: str) -> str:
        if not value:
            raise ValueError("Email and password are required")
        return value


class UserOut(CamelModel):
    id: int
    name: str
    email: str
    role: Role
    phone: str = ""
    location: str = ""
    member_since: date | None = None
    profile_picture: str = ""

    @classmethod
    def from_user(cls, user: User) -> UserOut:
        return cls(
            id=user.id,
            name=user.name,
            email=user.email,
            role=user.role,
            phone=user.phone or "",
            location=user.location or "",
            member_since=user.member_since or user.created_at.date(),
            profile_picture=user.profile_picture or "",
        )


class AuthResponse(CamelModel):
    message: str
    token: str
    user: UserOut


class ProfileUpdate(CamelModel):
    """Self-service profile fields. ``role`` and ``email`` are deliberately absent."""

    name: str | None = None
    phone: str | None = Field(default=None, max_length=32)
    location: str | None = Field(default=None, max_length=256)
    member_since: date | None = None

    @field_validator("name")
    @classmethod
    def _name_not_blank(cls, value: str | None) -> str | None:
        if value is None:
            return None
        return _strip_required(value, "Name")


class ProfilePictureResponse(CamelModel):
    message: str
    profile_picture: str
    user: UserOut


# ── Contacts ─────────────────────────────────────────────


class ContactDraft(CamelModel):
    """A new contact. Any owner field sent by the caller is ignored."""

    model_config = ConfigDict(extra="ignore")

    name: str
    phone: str
    remark: str = ""
    status: ContactStatus = ContactStatus.FUTURE
    follow_up_date: date | None = None
    called: StrictBool = False

    @field_validator("name")
    @classmethod
    def _name_required(cls, value: str) -> str:
        return _strip_required(value, "Name")

    @field_validator("phone")
    @classmethod
    def _phone_required(cls, value: str) -> str:
        return _strip_required(value, "Phone")

    @field_validator("remark", mode="before")
    @classmethod
    def _remark_default(cls, value: object) -> object:
        return "" if value is None else value


class ContactPatch(CamelModel):
    """Partial update; only fields present in the request are applied."""

    model_config = ConfigDict(extra="ignore")

    remark: str | None = None
    status: ContactStatus | None = None
    follow_up_date: date | None = None
    called: StrictBool | None = None

    @model_validator(mode="after")
    def _reject_nulls(self) -> ContactPatch:
        for name in ("remark", "status", "called"):
            if name in self.model_fields_set and getattr(self, name) is None:
                raise ValueError(f"{to_camel(name)} cannot be null")
        return self

    def changes(self) -> dict[str, object]:
        """Fields explicitly present in the request, by attribute name."""
        return self.model_dump(exclude_unset=True)


class ContactReplace(ContactDraft):
    """Full update: every editable field is written, omitted ones take their defaults."""

    def changes(self) -> dict[str, object]:
        return self.model_dump()


class ContactOut(CamelModel):
    id: int
    owner_id: int
    name: str
    phone: str
    remark: str
    status: ContactStatus
    follow_up_date: date | None
    called: bool
    called_at: datetime | None
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_contact(cls, contact: Contact) -> ContactOut:
        return cls(
            id=contact.id,
            owner_id=contact.owner_id,
            name=contact.name,
            phone=contact.phone,
            remark=contact.remark or "",
            status=contact.status,
            follow_up_date=contact.follow_up_date,
            called=bool(contact.called),
            called_at=contact.called_at,
            created_at=contact.created_at,
            updated_at=contact.updated_at,
        )


class ContactDeleted(CamelModel):
    message: str
    contact: ContactOut


# ── Statistics ───────────────────────────────────────────


class EmployeeStatsRow(CamelModel):
    """Per-employee reduction over that employee's contacts."""

    employee_id: int
    name: str
    email: str
    called_today: int = 0
    rejected: int = 0
    leads: int = 0
    later: int = 0


class HealthResponse(BaseModel):
    status: str
    app: str


# ── Validation helpers ───────────────────────────────────


def field_errors(exc: PydanticValidationError) -> dict[str, str]:
    """Flatten pydantic (or FastAPI request) errors into ``{field: message}``."""
    errors: dict[str, str] = {}
    for error in exc.errors():
        location = [str(part) for part in error["loc"] if part != "body"]
        key = ".".join(location) or "body"
        message = error["msg"].removeprefix("Value error, ")
        errors.setdefault(key, message)
    return errors


def coerce(model: type[ModelT], data: ModelT | Mapping[str, Any]) -> ModelT:
    """Return *data* as a *model* instance, raising our ``ValidationError`` on bad input."""
    if isinstance(data, model):
        return data
    try:
        return model.model_validate(data)
    except PydanticValidationError as exc:
        fields = field_errors(exc)
        raise ValidationError(next(iter(fields.values())), fields=fields) from exc
