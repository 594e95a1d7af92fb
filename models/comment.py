"""
Claim discussion thread model
"""

import uuid

from sqlalchemy import Column, DateTime, ForeignKey, Text, Uuid
from database.connection import Base
from utils.clock import utcnow


class ClaimComment(Base):
    __tablename__ = "claim_comments"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    claim_id = Column(Uuid, ForeignKey("claims.id"), nullable=False, index=True)
    author_id = Column(Uuid, nullable=False)
    content = Column(Text, nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
