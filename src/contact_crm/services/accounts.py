"""Account service — signup, login and self-service profile changes."""

from __future__ import annotations

import logging
from datetime import UTC, datetime

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from contact_crm.database.repository import UserRepository
from contact_crm.errors import AuthenticationError, NotFoundError, ValidationError
from contact_crm.models.user import Role, User
from contact_crm.schemas import ProfileUpdate, SignupRequest
from contact_crm.services.passwords import hash_password, verify_password

logger = logging.getLogger(__name__)

DUPLICATE_EMAIL = "User with this email already exists"
BAD_CREDENTIALS = "Invalid email or password"


class AccountService:
    """Credential store operations on top of :class:`UserRepository`."""

    def __init__(self, session: AsyncSession, *, allow_admin_signup: bool = True) -> None:
        self._session = session
        self._users = UserRepository(session)
        self._allow_admin_signup = allow_admin_signup

    async def signup(self, request: SignupRequest) -> User:
        if await self._users.find_by_email(request.email) is not None:
            logger.warning("Signup attempt with existing email: %s", request.email)
            raise ValidationError(DUPLICATE_EMAIL, fields={"email": DUPLICATE_EMAIL})

        role = request.requested_role()
        if role is Role.ADMIN and not self._allow_admin_signup:
            role = Role.EMPLOYEE

        user = User(
            name=request.name,
            email=request.email,
            password_hash=hash_password(request.password),
            role=role,
            member_since=datetime.now(UTC).date(),
        )
        try:
            await self._users.add(user)
            await self._session.commit()
        except IntegrityError as exc:
            # Lost a race against a concurrent signup with the same email.
            await self._session.rollback()
            raise ValidationError(DUPLICATE_EMAIL, fields={"email": DUPLICATE_EMAIL}) from exc

        logger.info("New %s %s signed up", role.value, user.email)
        return user

    async def authenticate(self, email: str, password: str) -> User:
        user = await self._users.find_by_email(email)
        if user is None or not verify_password(password, user.password_hash):
            logger.warning("Failed login attempt for email: %s", email)
            raise AuthenticationError(BAD_CREDENTIALS)
        logger.info("User %s logged in", email)
        return user

    async def get_profile(self, user_id: int) -> User:
        user = await self._users.get(user_id)
        if user is None:
            raise NotFoundError("User not found")
        return user

    async def update_profile(self, user_id: int, update: ProfileUpdate) -> User:
        """Apply the present profile fields; role and email are never touched."""
        user = await self.get_profile(user_id)
        for field, value in update.model_dump(exclude_unset=True).items():
            if field == "name" and value is None:
                continue
            setattr(user, field, value)
        await self._session.commit()
        logger.info("User %s updated profile", user_id)
        return user

    async def set_profile_picture(self, user_id: int, reference: str) -> User:
        user = await self.get_profile(user_id)
        user.profile_picture = reference
        await self._session.commit()
        logger.info("User %s uploaded a profile picture", user_id)
        return user
