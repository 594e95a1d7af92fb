"""
Audit logger: append-only record of every state-changing action.

Entries are added to the caller's session so they commit (or roll back)
together with the change they describe.
"""

from typing import Any, Dict, List, Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from models.audit_log import AuditAction, AuditLogEntry
from utils.clock import Clock, utcnow
from utils.logging import get_logger

logger = get_logger(__name__)


class AuditLogger:
    def __init__(self, clock: Clock = utcnow):
        self.clock = clock

    def record(
        self,
        session: AsyncSession,
        action: AuditAction,
        entity: str,
        entity_id: UUID,
        actor_id: Optional[UUID],
        before: Optional[Dict[str, Any]] = None,
        after: Optional[Dict[str, Any]] = None,
        note: Optional[str] = None,
    ) -> AuditLogEntry:
        entry = AuditLogEntry(
            action=action,
            entity=entity,
            entity_id=entity_id,
            actor_id=actor_id,
            before=before,
            after=after,
            note=note,
            created_at=self.clock(),
        )
        session.add(entry)
        logger.debug("audit %s %s/%s by %s", action.value, entity, entity_id, actor_id)
        return entry

    async def list_entries(
        self, session: AsyncSession, entity: str, entity_id: UUID
    ) -> List[AuditLogEntry]:
        result = await session.execute(
            select(AuditLogEntry)
            .where(AuditLogEntry.entity == entity, AuditLogEntry.entity_id == entity_id)
            .order_by(AuditLogEntry.id)
        )
        return list(result.scalars().all())
