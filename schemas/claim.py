"""
Claim Pydantic schemas for request/response validation
"""

from pydantic import BaseModel, Field, field_validator
from typing import Optional, List, Literal
from datetime import datetime
from uuid import UUID

from models.audit_log import AuditAction
from models.claim import ClaimCategory, ClaimStatus

# Evidence upload rules
MAX_EVIDENCE_BYTES = 10 * 1024 * 1024  # 10 MB
MAX_EVIDENCE_FILES = 5
ALLOWED_EVIDENCE_TYPES = {
    "application/pdf",
    "image/png",
    "image/jpg",
    "image/jpeg",
    "text/plain",
}


class EvidenceAttachment(BaseModel):
    url: str = Field(..., min_length=1, max_length=2048)
    filename: str = Field(..., min_length=1, max_length=255)
    content_type: str
    size_bytes: int = Field(..., gt=0, le=MAX_EVIDENCE_BYTES)

    @field_validator("content_type")
    def _allowed_type(cls, v):
        v = v.strip().lower()
        if v not in ALLOWED_EVIDENCE_TYPES:
            raise ValueError(
                f"content type must be one of: {', '.join(sorted(ALLOWED_EVIDENCE_TYPES))}"
            )
        return v


class ClaimCreate(BaseModel):
    category: ClaimCategory
    requested_amount: int = Field(..., gt=0, description="Amount in cents")
    description: str = Field(..., min_length=10, max_length=2000)
    evidence_attachments: List[EvidenceAttachment] = Field(
        default_factory=list, max_length=MAX_EVIDENCE_FILES
    )

    @field_validator("description")
    def _strip_description(cls, v):
        v = v.strip()
        if len(v) < 10:
            raise ValueError("description must be at least 10 characters")
        return v


class ClaimResponse(BaseModel):
    id: UUID
    submitter_id: UUID
    category: ClaimCategory
    description: str
    requested_amount: int
    approved_amount: Optional[int] = None
    status: ClaimStatus
    risk_score: int
    flagged_reasons: List[str] = []
    evidence_attachments: List[EvidenceAttachment] = []
    decision_note: Optional[str] = None
    validator_id: Optional[UUID] = None
    settlement_ref: Optional[str] = None
    submitted_at: Optional[datetime] = None
    reviewed_at: Optional[datetime] = None
    paid_at: Optional[datetime] = None
    created_at: datetime

    # Pydantic v2 config style
    model_config = {"from_attributes": True}


class ClaimSubmissionResponse(BaseModel):
    claim_id: UUID
    risk_score: int
    status: ClaimStatus
    message: str


class ClaimReviewRequest(BaseModel):
    decision: Literal["APPROVE", "DENY", "ESCALATE"]
    notes: str = Field(..., min_length=10, max_length=1000)
    approved_amount: Optional[int] = Field(None, gt=0)
    override: bool = False


class TransitionNote(BaseModel):
    notes: Optional[str] = Field(None, max_length=1000)


class MarkPaidRequest(BaseModel):
    settlement_ref: str = Field(..., max_length=255)


class EligibilityResponse(BaseModel):
    is_eligible: bool
    membership_days: int
    required_days: int
    remaining_days: int
    membership_status: Optional[str] = None
    message: str


class AuditEntryResponse(BaseModel):
    id: int
    action: AuditAction
    entity: str
    entity_id: UUID
    actor_id: Optional[UUID] = None
    before: Optional[dict] = None
    after: Optional[dict] = None
    note: Optional[str] = None
    created_at: datetime

    model_config = {"from_attributes": True}
