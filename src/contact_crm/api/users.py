"""Profile and admin statistics endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, File, UploadFile
from sqlalchemy.ext.asyncio import AsyncSession

from contact_crm.api.dependencies import get_file_storage, get_identity, require_admin
from contact_crm.database.engine import get_session
from contact_crm.schemas import EmployeeStatsRow, ProfilePictureResponse, ProfileUpdate, UserOut
from contact_crm.services.accounts import AccountService
from contact_crm.services.file_storage import LocalFileStorage
from contact_crm.services.stats import StatsAggregator
from contact_crm.services.token_service import Identity

router = APIRouter(prefix="/api/users", tags=["users"])


@router.get("/me", response_model=UserOut)
async def get_me(
    identity: Identity = Depends(get_identity),
    session: AsyncSession = Depends(get_session),
) -> UserOut:
    user = await AccountService(session).get_profile(identity.user_id)
    return UserOut.from_user(user)


@router.patch("/me", response_model=UserOut)
async def update_me(
    body: ProfileUpdate,
    identity: Identity = Depends(get_identity),
    session: AsyncSession = Depends(get_session),
) -> UserOut:
    user = await AccountService(session).update_profile(identity.user_id, body)
    return UserOut.from_user(user)


@router.post("/me/profile-picture", response_model=ProfilePictureResponse)
async def upload_profile_picture(
    profile_picture: UploadFile = File(..., alias="profilePicture"),
    identity: Identity = Depends(get_identity),
    session: AsyncSession = Depends(get_session),
    storage: LocalFileStorage = Depends(get_file_storage),
) -> ProfilePictureResponse:
    accounts = AccountService(session)
    # Fail with 404 before writing anything for a user that no longer exists.
    await accounts.get_profile(identity.user_id)
    data = await profile_picture.read()
    reference = storage.save_image(
        data,
        content_type=profile_picture.content_type,
        filename=profile_picture.filename,
        prefix=f"user-{identity.user_id}",
    )
    user = await accounts.set_profile_picture(identity.user_id, reference)
    return ProfilePictureResponse(
        message="Profile picture uploaded successfully",
        profile_picture=reference,
        user=UserOut.from_user(user),
    )


@router.get("/employees/stats", response_model=list[EmployeeStatsRow])
async def employee_stats(
    _: Identity = Depends(require_admin),
    session: AsyncSession = Depends(get_session),
) -> list[EmployeeStatsRow]:
    """Per-employee call and pipeline counts (admins only)."""
    return await StatsAggregator(session).compute()
