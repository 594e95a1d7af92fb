"""
Claim review & settlement workflow.

Ties together eligibility, risk scoring, the status state machine, community
voting and the audit trail. Each public operation runs in its own short
transaction; expected failures are raised as `ClaimWorkflowError` subclasses.
"""

from dataclasses import dataclass
from datetime import timedelta
from typing import List, Optional, Tuple
from uuid import UUID

from sqlalchemy import select, func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from database.connection import Database
from models.audit_log import AuditAction, AuditLogEntry
from models.claim import Claim, ClaimStatus
from models.comment import ClaimComment
from models.membership import Membership, MembershipStatus
from models.vote import Vote, VoteChoice
from schemas.claim import ClaimCreate
from schemas.comment import MAX_COMMENT_LENGTH
from services.audit_logger import AuditLogger
from services.claim_state_machine import ClaimAction, apply_transition, check_transition
from services.eligibility import EligibilityResult, evaluate_eligibility
from services.risk_scoring import RiskContext, RiskScorer, get_risk_scorer
from services.voting import VoteTally, tally_votes
from utils.clock import Clock, utcnow
from utils.config import QuorumMode, WorkflowSettings
from utils.errors import (
    AuthorizationError,
    DuplicateVoteError,
    EligibilityError,
    InvalidStateTransition,
    NotFoundError,
    ValidationError,
)
from utils.logging import get_logger
from utils.roles import Role, require_role

logger = get_logger(__name__)

HIGH_RISK_REASON = "HIGH_RISK_SCORE"
MANUAL_ESCALATION_REASON = "MANUAL_ESCALATION"
VELOCITY_WINDOW = timedelta(days=30)


@dataclass(frozen=True)
class SubmissionResult:
    claim_id: UUID
    risk_score: int
    status: ClaimStatus


def _merge_reasons(existing: List[str], *new: str) -> List[str]:
    merged = list(existing or [])
    for reason in new:
        if reason not in merged:
            merged.append(reason)
    return merged


class ClaimWorkflow:
    def __init__(
        self,
        database: Database,
        settings: WorkflowSettings,
        risk_scorer: Optional[RiskScorer] = None,
        audit_logger: Optional[AuditLogger] = None,
        clock: Clock = utcnow,
    ):
        self.database = database
        self.settings = settings
        self.risk_scorer = risk_scorer or get_risk_scorer(settings.risk_scorer)
        self.audit_logger = audit_logger or AuditLogger(clock)
        self.clock = clock

    # --- lookups ---

    async def _get_membership(
        self, session: AsyncSession, user_id: UUID
    ) -> Optional[Membership]:
        result = await session.execute(
            select(Membership).where(Membership.user_id == user_id)
        )
        return result.scalar_one_or_none()

    async def _load_claim(
        self, session: AsyncSession, claim_id: UUID, for_update: bool = False
    ) -> Claim:
        query = select(Claim).where(Claim.id == claim_id)
        if for_update:
            query = query.with_for_update()
        result = await session.execute(query)
        claim = result.scalar_one_or_none()
        if not claim:
            raise NotFoundError.claim(claim_id)
        return claim

    async def _require_active_member(
        self, session: AsyncSession, user_id: UUID, verb: str
    ) -> Membership:
        membership = await self._get_membership(session, user_id)
        if not membership or membership.status != MembershipStatus.ACTIVE:
            raise AuthorizationError(f"Active membership required to {verb}")
        return membership

    async def _count_claims(self, session: AsyncSession, *criteria) -> int:
        result = await session.execute(select(func.count(Claim.id)).where(*criteria))
        return result.scalar() or 0

    # --- eligibility & submission ---

    async def check_eligibility(self, user_id: UUID) -> EligibilityResult:
        async with self.database.session() as session:
            membership = await self._get_membership(session, user_id)
        return evaluate_eligibility(
            membership, self.clock(), self.settings.eligibility_required_days
        )

    async def submit_claim(
        self, user_id: UUID, role, claim_input: ClaimCreate
    ) -> SubmissionResult:
        """
        Validate, score and persist a new claim.

        Raises:
            AuthorizationError: caller is below MEMBER
            EligibilityError: membership missing, inactive or too new
            ValidationError: amount outside (0, tier ceiling]
        """
        require_role(role, Role.MEMBER)
        now = self.clock()

        async with self.database.session() as session:
            membership = await self._get_membership(session, user_id)
            eligibility = evaluate_eligibility(
                membership, now, self.settings.eligibility_required_days
            )
            if not eligibility.is_eligible:
                raise EligibilityError.from_result(eligibility)

            ceiling = self.settings.claim_ceiling(membership.tier.value)
            amount = claim_input.requested_amount
            if amount <= 0:
                raise ValidationError.for_field(
                    "requested_amount", "Requested amount must be greater than zero"
                )
            if amount > ceiling:
                raise ValidationError.for_field(
                    "requested_amount",
                    f"Requested amount exceeds the {membership.tier.value} plan limit of {ceiling} cents",
                )

            recent_claims = await self._count_claims(
                session,
                Claim.submitter_id == user_id,
                Claim.created_at >= now - VELOCITY_WINDOW,
                Claim.status != ClaimStatus.CANCELLED,
            )
            prior_paid = await self._count_claims(
                session,
                Claim.submitter_id == user_id,
                Claim.status == ClaimStatus.PAID,
            )
            assessment = self.risk_scorer.score(
                RiskContext(
                    requested_amount=amount,
                    category=claim_input.category.value,
                    submitted_at=now,
                    membership_days=eligibility.membership_days,
                    recent_claims=recent_claims,
                    prior_paid_claims=prior_paid,
                )
            )

            status = ClaimStatus.SUBMITTED
            flagged_reasons: List[str] = []
            if assessment.score >= self.settings.risk_flag_threshold:
                status = ClaimStatus.FLAGGED
                flagged_reasons = _merge_reasons([HIGH_RISK_REASON], *assessment.reasons)

            claim = Claim(
                submitter_id=user_id,
                category=claim_input.category,
                description=claim_input.description,
                requested_amount=amount,
                status=status,
                risk_score=assessment.score,
                flagged_reasons=flagged_reasons,
                evidence_attachments=[
                    a.model_dump() for a in claim_input.evidence_attachments
                ],
                submitted_at=now,
                created_at=now,
                updated_at=now,
            )
            session.add(claim)
            await session.flush()

            after = claim.snapshot()
            after.update(
                {
                    "requested_amount": amount,
                    "category": claim_input.category.value,
                    "risk_score": assessment.score,
                }
            )
            self.audit_logger.record(
                session,
                AuditAction.CLAIM_SUBMITTED,
                entity="claim",
                entity_id=claim.id,
                actor_id=user_id,
                before=None,
                after=after,
            )
            await session.commit()

        logger.info(
            "Claim %s submitted by %s: %s cents, risk %s, status %s",
            claim.id,
            user_id,
            amount,
            assessment.score,
            status.value,
        )
        return SubmissionResult(
            claim_id=claim.id, risk_score=assessment.score, status=status
        )

    # --- validator review ---

    async def start_review(
        self, claim_id: UUID, actor_id: UUID, role, notes: Optional[str] = None
    ) -> Claim:
        return await self._validator_transition(
            claim_id, actor_id, role, ClaimAction.START_REVIEW, notes
        )

    async def open_voting(
        self, claim_id: UUID, actor_id: UUID, role, notes: Optional[str] = None
    ) -> Claim:
        return await self._validator_transition(
            claim_id, actor_id, role, ClaimAction.OPEN_VOTING, notes
        )

    async def _validator_transition(
        self, claim_id: UUID, actor_id: UUID, role, action: ClaimAction, notes
    ) -> Claim:
        require_role(role, Role.VALIDATOR)
        async with self.database.session() as session:
            claim = await self._load_claim(session, claim_id, for_update=True)
            self._forbid_own_claim(claim, actor_id, "review")
            await apply_transition(
                session,
                claim,
                action,
                actor_id,
                role,
                self.audit_logger,
                self.clock(),
                note=notes,
            )
            await session.commit()
        logger.info("Claim %s -> %s by %s", claim_id, claim.status.value, actor_id)
        return claim

    async def review_claim(
        self,
        claim_id: UUID,
        actor_id: UUID,
        role,
        decision: str,
        notes: str,
        approved_amount: Optional[int] = None,
        override: bool = False,
    ) -> Claim:
        """
        Apply a validator decision: APPROVE, DENY or ESCALATE.

        Approval defaults the approved amount to the requested amount. Only an
        ADMIN passing `override=True` may approve more than was requested.
        """
        actor_role = require_role(role, Role.VALIDATOR)
        try:
            action = ClaimAction(decision.upper())
        except ValueError:
            raise ValidationError.for_field(
                "decision", "Decision must be APPROVE, DENY or ESCALATE"
            )
        if action not in (ClaimAction.APPROVE, ClaimAction.DENY, ClaimAction.ESCALATE):
            raise ValidationError.for_field(
                "decision", "Decision must be APPROVE, DENY or ESCALATE"
            )
        if not notes or not notes.strip():
            raise ValidationError.for_field("notes", "Review notes are required")
        notes = notes.strip()

        now = self.clock()
        async with self.database.session() as session:
            claim = await self._load_claim(session, claim_id, for_update=True)
            self._forbid_own_claim(claim, actor_id, "review")
            check_transition(action, claim)

            if action == ClaimAction.APPROVE:
                amount = (
                    approved_amount
                    if approved_amount is not None
                    else claim.requested_amount
                )
                if amount <= 0:
                    raise ValidationError.for_field(
                        "approved_amount", "Approved amount must be greater than zero"
                    )
                if amount > claim.requested_amount and not (
                    override and actor_role.satisfies(Role.ADMIN)
                ):
                    raise ValidationError.for_field(
                        "approved_amount",
                        "Approved amount cannot exceed the requested amount",
                    )
                changes = {
                    "approved_amount": amount,
                    "validator_id": actor_id,
                    "decision_note": notes,
                    "reviewed_at": now,
                }
            elif action == ClaimAction.DENY:
                changes = {
                    "validator_id": actor_id,
                    "decision_note": notes,
                    "reviewed_at": now,
                }
            else:
                changes = {
                    "flagged_reasons": _merge_reasons(
                        claim.flagged_reasons, MANUAL_ESCALATION_REASON
                    ),
                }

            await apply_transition(
                session,
                claim,
                action,
                actor_id,
                actor_role,
                self.audit_logger,
                now,
                changes=changes,
                note=notes,
            )
            await session.commit()

        logger.info(
            "Claim %s reviewed by %s: %s -> %s",
            claim_id,
            actor_id,
            action.value,
            claim.status.value,
        )
        return claim

    # --- community voting ---

    async def _tally(self, session: AsyncSession, claim: Claim) -> VoteTally:
        result = await session.execute(
            select(Vote.choice).where(Vote.claim_id == claim.id)
        )
        choices = list(result.scalars().all())

        eligible_voters = None
        if self.settings.quorum_mode == QuorumMode.PERCENTAGE:
            count = await session.execute(
                select(func.count(Membership.id)).where(
                    Membership.status == MembershipStatus.ACTIVE,
                    Membership.user_id != claim.submitter_id,
                )
            )
            eligible_voters = count.scalar() or 0

        return tally_votes(
            choices,
            quorum=self.settings.quorum,
            pass_threshold=self.settings.pass_threshold,
            mode=self.settings.quorum_mode,
            eligible_voters=eligible_voters,
        )

    async def get_vote_tally(self, claim_id: UUID) -> VoteTally:
        async with self.database.session() as session:
            claim = await self._load_claim(session, claim_id)
            return await self._tally(session, claim)

    async def list_votes(
        self, claim_id: UUID, viewer_id: UUID, role
    ) -> List[Vote]:
        """
        Individual ballots. Validators see every vote; anyone else only their
        own, so open ballots stay private until the vote is finalized.
        """
        async with self.database.session() as session:
            await self._load_claim(session, claim_id)
            query = select(Vote).where(Vote.claim_id == claim_id)
            if not Role.parse(role).satisfies(Role.VALIDATOR):
                query = query.where(Vote.voter_id == viewer_id)
            result = await session.execute(query.order_by(Vote.created_at))
            return list(result.scalars().all())

    async def cast_vote(
        self,
        claim_id: UUID,
        voter_id: UUID,
        role,
        choice: VoteChoice,
        reasoning: Optional[str] = None,
        confidence: Optional[float] = None,
    ) -> VoteTally:
        """
        Record one community vote and return the updated tally.

        Uniqueness per (claim, voter) is enforced by the database constraint,
        so two simultaneous votes from the same member cannot both land.
        """
        require_role(role, Role.MEMBER)
        choice = VoteChoice(choice)

        async with self.database.session() as session:
            claim = await self._load_claim(session, claim_id, for_update=True)
            if claim.submitter_id == voter_id:
                raise AuthorizationError("You cannot vote on your own claim")
            if claim.status != ClaimStatus.VOTING:
                raise InvalidStateTransition(
                    "Claim is not open for voting",
                    details={
                        "claim_id": str(claim_id),
                        "current_status": claim.status.value,
                    },
                )
            await self._require_active_member(session, voter_id, "vote")

            vote = Vote(
                claim_id=claim_id,
                voter_id=voter_id,
                choice=choice,
                reasoning=reasoning,
                confidence=confidence,
                created_at=self.clock(),
            )
            session.add(vote)
            try:
                await session.flush()
            except IntegrityError:
                await session.rollback()
                raise DuplicateVoteError(
                    "You have already voted on this claim",
                    details={"claim_id": str(claim_id)},
                )

            self.audit_logger.record(
                session,
                AuditAction.VOTE_CAST,
                entity="claim_vote",
                entity_id=vote.id,
                actor_id=voter_id,
                after={"claim_id": str(claim_id), "choice": choice.value},
                note=reasoning,
            )
            await session.commit()
            tally = await self._tally(session, claim)

        logger.info("Vote %s on claim %s by %s", choice.value, claim_id, voter_id)
        return tally

    async def finalize_voting(
        self, claim_id: UUID, actor_id: UUID, role, notes: Optional[str] = None
    ) -> VoteTally:
        """
        Close a community vote once quorum is reached.

        A passing vote approves the full requested amount; otherwise the
        claim is denied.
        """
        require_role(role, Role.VALIDATOR)
        now = self.clock()

        async with self.database.session() as session:
            claim = await self._load_claim(session, claim_id, for_update=True)
            self._forbid_own_claim(claim, actor_id, "finalize")
            check_transition(ClaimAction.VOTE_APPROVE, claim)

            tally = await self._tally(session, claim)
            if not tally.quorum_reached:
                raise InvalidStateTransition(
                    "Voting has not reached quorum yet",
                    details={
                        "claim_id": str(claim_id),
                        "total_votes": tally.total_votes,
                        "quorum_required": tally.quorum_required,
                    },
                )

            if tally.passed:
                action = ClaimAction.VOTE_APPROVE
                changes = {"approved_amount": claim.requested_amount}
            else:
                action = ClaimAction.VOTE_DENY
                changes = {}
            changes.update(
                {
                    "validator_id": actor_id,
                    "decision_note": notes
                    or f"Community vote: {tally.for_percentage}% for of {tally.total_votes} votes",
                    "reviewed_at": now,
                }
            )

            await apply_transition(
                session,
                claim,
                action,
                role,
                actor_id,
                self.audit_logger,
                now,
                changes=changes,
                note=notes,
                audit_extra={"tally": tally.to_dict()},
            )
            await session.commit()

        logger.info(
            "Voting closed on claim %s: %s (%s%% for, %s votes)",
            claim_id,
            claim.status.value,
            tally.for_percentage,
            tally.total_votes,
        )
        return tally

    # --- settlement & withdrawal ---

    async def mark_paid(
        self, claim_id: UUID, actor_id: UUID, role, settlement_ref: str
    ) -> Claim:
        require_role(role, Role.ADMIN)
        if not settlement_ref or not settlement_ref.strip():
            raise ValidationError.for_field(
                "settlement_ref", "A settlement reference is required to mark a claim paid"
            )
        settlement_ref = settlement_ref.strip()
        now = self.clock()

        async with self.database.session() as session:
            claim = await self._load_claim(session, claim_id, for_update=True)
            await apply_transition(
                session,
                claim,
                ClaimAction.MARK_PAID,
                actor_id,
                role,
                self.audit_logger,
                now,
                changes={"settlement_ref": settlement_ref, "paid_at": now},
                audit_extra={"paid_amount": claim.approved_amount},
            )
            await session.commit()

        logger.info(
            "Claim %s paid: %s cents, ref %s", claim_id, claim.approved_amount, settlement_ref
        )
        return claim

    async def withdraw_claim(
        self, claim_id: UUID, actor_id: UUID, role, reason: Optional[str] = None
    ) -> Claim:
        actor_role = Role.parse(role)
        async with self.database.session() as session:
            claim = await self._load_claim(session, claim_id, for_update=True)
            if claim.submitter_id != actor_id and not actor_role.satisfies(Role.ADMIN):
                raise AuthorizationError.insufficient_role(
                    Role.ADMIN.name, actor_role.name
                )
            await apply_transition(
                session,
                claim,
                ClaimAction.WITHDRAW,
                actor_id,
                actor_role,
                self.audit_logger,
                self.clock(),
                note=reason,
            )
            await session.commit()
        logger.info("Claim %s withdrawn by %s", claim_id, actor_id)
        return claim

    # --- discussion ---

    @staticmethod
    def _check_comment_access(claim: Claim, user_id: UUID):
        if claim.status == ClaimStatus.DRAFT and claim.submitter_id != user_id:
            raise AuthorizationError("Only the submitter can discuss a draft claim")

    async def add_comment(
        self, claim_id: UUID, author_id: UUID, role, content: str
    ) -> ClaimComment:
        """
        Post to a claim's discussion thread.

        Raises:
            AuthorizationError: caller below MEMBER, without an ACTIVE
                membership, or not the submitter of a DRAFT claim
            NotFoundError: no such claim
            ValidationError: blank or over-long content
        """
        require_role(role, Role.MEMBER)
        content = (content or "").strip()
        if not content or len(content) > MAX_COMMENT_LENGTH:
            raise ValidationError.for_field(
                "content", f"Comment must be 1 to {MAX_COMMENT_LENGTH} characters"
            )

        async with self.database.session() as session:
            await self._require_active_member(session, author_id, "comment")
            claim = await self._load_claim(session, claim_id)
            self._check_comment_access(claim, author_id)

            comment = ClaimComment(
                claim_id=claim_id,
                author_id=author_id,
                content=content,
                created_at=self.clock(),
            )
            session.add(comment)
            await session.commit()

        logger.info("Comment %s on claim %s by %s", comment.id, claim_id, author_id)
        return comment

    async def list_comments(
        self, claim_id: UUID, viewer_id: UUID, role
    ) -> List[ClaimComment]:
        """Newest first."""
        require_role(role, Role.MEMBER)
        async with self.database.session() as session:
            await self._require_active_member(session, viewer_id, "view comments")
            claim = await self._load_claim(session, claim_id)
            self._check_comment_access(claim, viewer_id)
            result = await session.execute(
                select(ClaimComment)
                .where(ClaimComment.claim_id == claim_id)
                .order_by(ClaimComment.created_at.desc())
            )
            return list(result.scalars().all())

    # --- reads ---

    async def get_claim(self, claim_id: UUID, viewer_id: UUID, role) -> Claim:
        viewer_role = Role.parse(role)
        async with self.database.session() as session:
            claim = await self._load_claim(session, claim_id)
        visible = (
            claim.submitter_id == viewer_id
            or viewer_role.satisfies(Role.VALIDATOR)
            or (claim.status == ClaimStatus.VOTING and viewer_role.satisfies(Role.MEMBER))
        )
        if not visible:
            raise AuthorizationError.insufficient_role(
                Role.VALIDATOR.name, viewer_role.name
            )
        return claim

    async def list_claims(
        self,
        viewer_id: UUID,
        role,
        status: Optional[ClaimStatus] = None,
        submitter_id: Optional[UUID] = None,
        page: int = 1,
        per_page: int = 10,
    ) -> Tuple[List[Claim], int]:
        """Members only ever see their own claims; validators see everything."""
        if not Role.parse(role).satisfies(Role.VALIDATOR):
            submitter_id = viewer_id

        query = select(Claim)
        count_query = select(func.count(Claim.id))
        if status:
            query = query.where(Claim.status == status)
            count_query = count_query.where(Claim.status == status)
        if submitter_id:
            query = query.where(Claim.submitter_id == submitter_id)
            count_query = count_query.where(Claim.submitter_id == submitter_id)

        offset = (page - 1) * per_page
        query = query.order_by(Claim.created_at.desc()).offset(offset).limit(per_page)

        async with self.database.session() as session:
            total = (await session.execute(count_query)).scalar() or 0
            claims = list((await session.execute(query)).scalars().all())
        return claims, total

    async def get_audit_trail(self, claim_id: UUID, role) -> List[AuditLogEntry]:
        require_role(role, Role.VALIDATOR)
        async with self.database.session() as session:
            await self._load_claim(session, claim_id)
            return await self.audit_logger.list_entries(session, "claim", claim_id)

    @staticmethod
    def _forbid_own_claim(claim: Claim, actor_id: UUID, verb: str):
        if claim.submitter_id == actor_id:
            raise AuthorizationError(f"You cannot {verb} your own claim")
