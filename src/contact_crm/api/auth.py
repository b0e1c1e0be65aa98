"""Signup and login endpoints."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from contact_crm.api.dependencies import get_settings, get_token_service
from contact_crm.config import Settings
from contact_crm.database.engine import get_session
from contact_crm.schemas import AuthResponse, LoginRequest, SignupRequest, UserOut
from contact_crm.services.accounts import AccountService
from contact_crm.services.token_service import TokenService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/auth", tags=["auth"])


@router.post(
    "/signup",
    response_model=AuthResponse,
    status_code=status.HTTP_201_CREATED,
)
async def signup(
    body: SignupRequest,
    session: AsyncSession = Depends(get_session),
    tokens: TokenService = Depends(get_token_service),
    settings: Settings = Depends(get_settings),
) -> AuthResponse:
    """Create an account and log it in straight away."""
    accounts = AccountService(session, allow_admin_signup=settings.allow_admin_signup)
    user = await accounts.signup(body)
    return AuthResponse(
        message="User created successfully",
        token=tokens.issue(user.id, user.role),
        user=UserOut.from_user(user),
    )


@router.post("/login", response_model=AuthResponse)
async def login(
    body: LoginRequest,
    session: AsyncSession = Depends(get_session),
    tokens: TokenService = Depends(get_token_service),
) -> AuthResponse:
    user = await AccountService(session).authenticate(body.email, body.password)
    return AuthResponse(
        message="Login successful",
        token=tokens.issue(user.id, user.role),
        user=UserOut.from_user(user),
    )
