"""
Claim data model
"""

import enum
import uuid

from sqlalchemy import Column, String, DateTime, Integer, Text, Enum, JSON, Uuid
from database.connection import Base
from utils.clock import utcnow


class ClaimStatus(str, enum.Enum):
    DRAFT = "DRAFT"
    SUBMITTED = "SUBMITTED"
    FLAGGED = "FLAGGED"
    UNDER_REVIEW = "UNDER_REVIEW"
    VOTING = "VOTING"
    APPROVED = "APPROVED"
    DENIED = "DENIED"
    PAID = "PAID"
    CANCELLED = "CANCELLED"


class ClaimCategory(str, enum.Enum):
    MEDICAL = "MEDICAL"
    VEHICLE = "VEHICLE"
    DEVICE = "DEVICE"
    INCOME_LOSS = "INCOME_LOSS"
    EMERGENCY = "EMERGENCY"
    HOUSING = "HOUSING"
    OTHER = "OTHER"


class Claim(Base):
    __tablename__ = "claims"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    submitter_id = Column(Uuid, nullable=False, index=True)
    category = Column(Enum(ClaimCategory, native_enum=False, length=20), nullable=False)
    description = Column(Text, nullable=False)
    requested_amount = Column(Integer, nullable=False)  # cents
    approved_amount = Column(Integer)  # cents, set on approval only
    status = Column(
        Enum(ClaimStatus, native_enum=False, length=20),
        nullable=False,
        default=ClaimStatus.SUBMITTED,
        index=True,
    )
    risk_score = Column(Integer, nullable=False, default=0)  # snapshot at submission
    flagged_reasons = Column(JSON, nullable=False, default=list)
    evidence_attachments = Column(JSON, nullable=False, default=list)
    decision_note = Column(Text)
    validator_id = Column(Uuid)
    settlement_ref = Column(String(255))  # payout tx hash
    submitted_at = Column(DateTime(timezone=True))
    reviewed_at = Column(DateTime(timezone=True))
    paid_at = Column(DateTime(timezone=True))
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    def snapshot(self):
        """Partial state captured before/after a transition for the audit trail."""
        return {
            "status": self.status.value if self.status else None,
            "approved_amount": self.approved_amount,
            "validator_id": str(self.validator_id) if self.validator_id else None,
            "flagged_reasons": list(self.flagged_reasons or []),
            "settlement_ref": self.settlement_ref,
        }
