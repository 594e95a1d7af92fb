"""
Membership data model, fed by billing/subscription events
"""

import enum
import uuid

from sqlalchemy import Column, DateTime, Enum, Uuid
from database.connection import Base
from utils.clock import utcnow


class MembershipStatus(str, enum.Enum):
    ACTIVE = "ACTIVE"
    PENDING = "PENDING"
    SUSPENDED = "SUSPENDED"
    INACTIVE = "INACTIVE"


class MembershipTier(str, enum.Enum):
    BASIC = "BASIC"
    PREMIUM = "PREMIUM"
    VALIDATOR = "VALIDATOR"
    FOUNDER = "FOUNDER"


class Membership(Base):
    __tablename__ = "memberships"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid, nullable=False, unique=True, index=True)
    joined_at = Column(DateTime(timezone=True), nullable=False)
    status = Column(
        Enum(MembershipStatus, native_enum=False, length=20),
        nullable=False,
        default=MembershipStatus.PENDING,
    )
    tier = Column(
        Enum(MembershipTier, native_enum=False, length=20),
        nullable=False,
        default=MembershipTier.BASIC,
    )
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    def snapshot(self):
        return {
            "status": self.status.value if self.status else None,
            "tier": self.tier.value if self.tier else None,
            "joined_at": self.joined_at.isoformat() if self.joined_at else None,
        }
