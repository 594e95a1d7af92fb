"""
Membership upkeep, driven by billing/subscription events
"""

from datetime import datetime
from typing import Optional
from uuid import UUID

from sqlalchemy import select

from database.connection import Database
from models.audit_log import AuditAction
from models.membership import Membership, MembershipStatus, MembershipTier
from services.audit_logger import AuditLogger
from utils.clock import Clock, utcnow
from utils.logging import get_logger

logger = get_logger(__name__)


class MembershipService:
    def __init__(
        self,
        database: Database,
        audit_logger: Optional[AuditLogger] = None,
        clock: Clock = utcnow,
    ):
        self.database = database
        self.audit_logger = audit_logger or AuditLogger(clock)
        self.clock = clock

    async def upsert(
        self,
        user_id: UUID,
        status: MembershipStatus,
        tier: MembershipTier = MembershipTier.BASIC,
        joined_at: Optional[datetime] = None,
        actor_id: Optional[UUID] = None,
    ) -> Membership:
        """
        Create or update a member's record.

        joined_at defaults to the existing value, or now for a new membership.
        """
        now = self.clock()
        async with self.database.session() as session:
            result = await session.execute(
                select(Membership).where(Membership.user_id == user_id)
            )
            membership = result.scalar_one_or_none()
            before = membership.snapshot() if membership else None

            if membership is None:
                membership = Membership(
                    user_id=user_id,
                    joined_at=joined_at or now,
                    status=status,
                    tier=tier,
                    created_at=now,
                    updated_at=now,
                )
                session.add(membership)
            else:
                membership.status = status
                membership.tier = tier
                membership.updated_at = now
                if joined_at:
                    membership.joined_at = joined_at
            await session.flush()

            self.audit_logger.record(
                session,
                AuditAction.MEMBERSHIP_UPDATED,
                entity="membership",
                entity_id=membership.id,
                actor_id=actor_id,
                before=before,
                after=membership.snapshot(),
            )
            await session.commit()

        logger.info(
            "Membership for %s set to %s/%s", user_id, status.value, tier.value
        )
        return membership
