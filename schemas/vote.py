"""
Community vote schemas
"""

from pydantic import BaseModel, Field
from typing import Optional
from datetime import datetime
from uuid import UUID

from models.vote import VoteChoice


class VoteCreate(BaseModel):
    choice: VoteChoice
    reasoning: Optional[str] = Field(None, max_length=500)
    confidence: Optional[float] = Field(None, ge=0, le=1)


class VoteResponse(BaseModel):
    id: UUID
    claim_id: UUID
    voter_id: UUID
    choice: VoteChoice
    confidence: Optional[float] = None
    reasoning: Optional[str] = None
    created_at: datetime

    model_config = {"from_attributes": True}


class VoteTallyResponse(BaseModel):
    for_votes: int
    against_votes: int
    abstain_votes: int
    total_votes: int
    for_percentage: float
    against_percentage: float
    abstain_percentage: float
    quorum_required: int
    quorum_reached: bool
    passed: bool

    model_config = {"from_attributes": True}
