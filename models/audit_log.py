"""
Append-only audit log model
"""

import enum

from sqlalchemy import Column, Integer, String, DateTime, Text, Enum, JSON, Uuid, event
from database.connection import Base
from utils.clock import utcnow


class AuditAction(str, enum.Enum):
    CLAIM_SUBMITTED = "CLAIM_SUBMITTED"
    CLAIM_REVIEW_STARTED = "CLAIM_REVIEW_STARTED"
    CLAIM_ESCALATED = "CLAIM_ESCALATED"
    CLAIM_VOTING_OPENED = "CLAIM_VOTING_OPENED"
    CLAIM_APPROVED = "CLAIM_APPROVED"
    CLAIM_DENIED = "CLAIM_DENIED"
    CLAIM_PAID = "CLAIM_PAID"
    CLAIM_CANCELLED = "CLAIM_CANCELLED"
    VOTE_CAST = "VOTE_CAST"
    MEMBERSHIP_UPDATED = "MEMBERSHIP_UPDATED"


class AuditLogEntry(Base):
    __tablename__ = "audit_log"

    id = Column(Integer, primary_key=True, autoincrement=True)
    action = Column(Enum(AuditAction, native_enum=False, length=40), nullable=False)
    entity = Column(String(50), nullable=False)  # claim, claim_vote, membership
    entity_id = Column(Uuid, nullable=False, index=True)
    actor_id = Column(Uuid)
    before = Column(JSON)
    after = Column(JSON)
    note = Column(Text)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)


@event.listens_for(AuditLogEntry, "before_update")
def _refuse_update(mapper, connection, target):
    raise RuntimeError("audit log entries are immutable")


@event.listens_for(AuditLogEntry, "before_delete")
def _refuse_delete(mapper, connection, target):
    raise RuntimeError("audit log entries are immutable")
