"""
Membership schemas
"""

from pydantic import BaseModel
from typing import Optional
from datetime import datetime
from uuid import UUID

from models.membership import MembershipStatus, MembershipTier


class MembershipUpsert(BaseModel):
    status: MembershipStatus
    tier: MembershipTier = MembershipTier.BASIC
    joined_at: Optional[datetime] = None


class MembershipResponse(BaseModel):
    id: UUID
    user_id: UUID
    joined_at: datetime
    status: MembershipStatus
    tier: MembershipTier
    updated_at: Optional[datetime] = None

    model_config = {"from_attributes": True}
