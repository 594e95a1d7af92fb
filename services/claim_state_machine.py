"""
Claim status transitions.

Every status change goes through `apply_transition`, which re-checks the
current status in the database (compare-and-set) and writes exactly one audit
entry in the same session.
"""

import enum
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, FrozenSet, Optional
from uuid import UUID

from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession

from models.audit_log import AuditAction
from models.claim import Claim, ClaimStatus
from services.audit_logger import AuditLogger
from utils.errors import InvalidStateTransition
from utils.roles import Role, require_role


class ClaimAction(str, enum.Enum):
    START_REVIEW = "START_REVIEW"
    APPROVE = "APPROVE"
    DENY = "DENY"
    ESCALATE = "ESCALATE"
    OPEN_VOTING = "OPEN_VOTING"
    VOTE_APPROVE = "VOTE_APPROVE"
    VOTE_DENY = "VOTE_DENY"
    MARK_PAID = "MARK_PAID"
    WITHDRAW = "WITHDRAW"


@dataclass(frozen=True)
class Transition:
    sources: FrozenSet[ClaimStatus]
    target: ClaimStatus
    role: Optional[Role]  # None: checked by the caller (submitter or ADMIN)
    audit_action: AuditAction


REVIEWABLE = frozenset({ClaimStatus.SUBMITTED, ClaimStatus.FLAGGED})
ESCALATABLE = frozenset(
    {ClaimStatus.SUBMITTED, ClaimStatus.UNDER_REVIEW, ClaimStatus.FLAGGED}
)
WITHDRAWABLE = frozenset(
    {
        ClaimStatus.DRAFT,
        ClaimStatus.SUBMITTED,
        ClaimStatus.FLAGGED,
        ClaimStatus.UNDER_REVIEW,
        ClaimStatus.VOTING,
    }
)

TRANSITIONS: Dict[ClaimAction, Transition] = {
    ClaimAction.START_REVIEW: Transition(
        frozenset({ClaimStatus.SUBMITTED}),
        ClaimStatus.UNDER_REVIEW,
        Role.VALIDATOR,
        AuditAction.CLAIM_REVIEW_STARTED,
    ),
    ClaimAction.APPROVE: Transition(
        REVIEWABLE, ClaimStatus.APPROVED, Role.VALIDATOR, AuditAction.CLAIM_APPROVED
    ),
    ClaimAction.DENY: Transition(
        REVIEWABLE, ClaimStatus.DENIED, Role.VALIDATOR, AuditAction.CLAIM_DENIED
    ),
    ClaimAction.ESCALATE: Transition(
        ESCALATABLE, ClaimStatus.FLAGGED, Role.VALIDATOR, AuditAction.CLAIM_ESCALATED
    ),
    ClaimAction.OPEN_VOTING: Transition(
        ESCALATABLE,
        ClaimStatus.VOTING,
        Role.VALIDATOR,
        AuditAction.CLAIM_VOTING_OPENED,
    ),
    ClaimAction.VOTE_APPROVE: Transition(
        frozenset({ClaimStatus.VOTING}),
        ClaimStatus.APPROVED,
        Role.VALIDATOR,
        AuditAction.CLAIM_APPROVED,
    ),
    ClaimAction.VOTE_DENY: Transition(
        frozenset({ClaimStatus.VOTING}),
        ClaimStatus.DENIED,
        Role.VALIDATOR,
        AuditAction.CLAIM_DENIED,
    ),
    ClaimAction.MARK_PAID: Transition(
        frozenset({ClaimStatus.APPROVED}),
        ClaimStatus.PAID,
        Role.ADMIN,
        AuditAction.CLAIM_PAID,
    ),
    ClaimAction.WITHDRAW: Transition(
        WITHDRAWABLE, ClaimStatus.CANCELLED, None, AuditAction.CLAIM_CANCELLED
    ),
}


def check_transition(action: ClaimAction, claim: Claim) -> Transition:
    """Return the transition for `action` or raise if the claim's status forbids it."""
    transition = TRANSITIONS[action]
    if claim.status not in transition.sources:
        raise InvalidStateTransition.for_claim(
            claim.id, claim.status.value, transition.target.value
        )
    return transition


async def apply_transition(
    session: AsyncSession,
    claim: Claim,
    action: ClaimAction,
    actor_id: Optional[UUID],
    actor_role,
    audit_logger: AuditLogger,
    now: datetime,
    changes: Optional[Dict[str, Any]] = None,
    note: Optional[str] = None,
    audit_extra: Optional[Dict[str, Any]] = None,
) -> Claim:
    """
    Move `claim` along `action` inside the caller's transaction.

    The UPDATE only matches while the row still has the status we read, so
    of two concurrent transitions only one can win; the loser gets
    InvalidStateTransition. The role required by the transition is checked
    here; transitions without one (withdrawal) are authorized by the caller.
    The caller commits.
    """
    transition = TRANSITIONS[action]
    if transition.role is not None:
        require_role(actor_role, transition.role)
    check_transition(action, claim)
    expected = claim.status
    before = claim.snapshot()

    values = dict(changes or {})
    values["status"] = transition.target
    values["updated_at"] = now

    result = await session.execute(
        update(Claim)
        .where(Claim.id == claim.id, Claim.status == expected)
        .values(**values)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        raise InvalidStateTransition.for_claim(
            claim.id, expected.value, transition.target.value
        )

    await session.refresh(claim)

    after = claim.snapshot()
    if audit_extra:
        after.update(audit_extra)
    audit_logger.record(
        session,
        transition.audit_action,
        entity="claim",
        entity_id=claim.id,
        actor_id=actor_id,
        before=before,
        after=after,
        note=note,
    )
    return claim
