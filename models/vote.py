"""
Community vote data model
"""

import enum
import uuid

from sqlalchemy import Column, DateTime, Float, ForeignKey, Text, Enum, Uuid, UniqueConstraint
from database.connection import Base
from utils.clock import utcnow


class VoteChoice(str, enum.Enum):
    FOR = "FOR"
    AGAINST = "AGAINST"
    ABSTAIN = "ABSTAIN"


class Vote(Base):
    __tablename__ = "claim_votes"
    # One vote per member per claim, enforced by the database
    __table_args__ = (
        UniqueConstraint("claim_id", "voter_id", name="uq_claim_votes_claim_voter"),
    )

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    claim_id = Column(Uuid, ForeignKey("claims.id"), nullable=False, index=True)
    voter_id = Column(Uuid, nullable=False)
    choice = Column(Enum(VoteChoice, native_enum=False, length=10), nullable=False)
    confidence = Column(Float)  # 0..1, optional
    reasoning = Column(Text)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
