"""
Claim comment schemas
"""

from pydantic import BaseModel, Field, field_validator
from datetime import datetime
from uuid import UUID

MAX_COMMENT_LENGTH = 2000


class CommentCreate(BaseModel):
    content: str = Field(..., min_length=1, max_length=MAX_COMMENT_LENGTH)

    @field_validator("content")
    def _strip_content(cls, v):
        v = v.strip()
        if not v:
            raise ValueError("comment cannot be blank")
        return v


class CommentResponse(BaseModel):
    id: UUID
    claim_id: UUID
    author_id: UUID
    content: str
    created_at: datetime

    model_config = {"from_attributes": True}
