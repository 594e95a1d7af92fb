"""
Membership controller. Billing webhooks land here as admin upserts.
"""

from fastapi import APIRouter, HTTPException, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from uuid import UUID

from controllers.dependencies import get_membership_service, current_user_id
from database.connection import get_db
from models.membership import Membership
from schemas.membership import MembershipResponse, MembershipUpsert
from services.membership_service import MembershipService
from utils.auth import get_current_user
from utils.roles import Role, require_role

router = APIRouter()


@router.get("/me", response_model=MembershipResponse)
async def get_my_membership(
    db: AsyncSession = Depends(get_db),
    current_user: dict = Depends(get_current_user),
):
    result = await db.execute(
        select(Membership).where(Membership.user_id == current_user_id(current_user))
    )
    membership = result.scalar_one_or_none()

    if not membership:
        raise HTTPException(status_code=404, detail="Membership not found")

    return MembershipResponse.model_validate(membership)


@router.put("/{user_id}", response_model=MembershipResponse)
async def upsert_membership(
    user_id: UUID,
    membership_data: MembershipUpsert,
    service: MembershipService = Depends(get_membership_service),
    current_user: dict = Depends(get_current_user),
):
    """
    Create or update a membership (admin only; mirrors subscription events)
    """
    require_role(current_user["role"], Role.ADMIN)
    membership = await service.upsert(
        user_id,
        status=membership_data.status,
        tier=membership_data.tier,
        joined_at=membership_data.joined_at,
        actor_id=current_user_id(current_user),
    )
    return MembershipResponse.model_validate(membership)
