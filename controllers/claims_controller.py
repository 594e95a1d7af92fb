"""
Claims management controller
"""

from fastapi import APIRouter, Depends, Query
from typing import List, Optional
from uuid import UUID

from controllers.dependencies import get_workflow, current_user_id
from models.claim import ClaimStatus
from schemas.claim import (
    AuditEntryResponse,
    ClaimCreate,
    ClaimResponse,
    ClaimReviewRequest,
    ClaimSubmissionResponse,
    EligibilityResponse,
    MarkPaidRequest,
    TransitionNote,
)
from schemas.comment import CommentCreate, CommentResponse
from schemas.vote import VoteCreate, VoteResponse, VoteTallyResponse
from services.claim_workflow import ClaimWorkflow
from utils.auth import get_current_user

router = APIRouter()


def _notes(body: Optional[TransitionNote]) -> Optional[str]:
    return body.notes if body else None


@router.get("/eligibility", response_model=EligibilityResponse)
async def check_eligibility(
    workflow: ClaimWorkflow = Depends(get_workflow),
    current_user: dict = Depends(get_current_user),
):
    """
    Check whether the caller may submit claims (60-day active membership rule)
    """
    result = await workflow.check_eligibility(current_user_id(current_user))
    return EligibilityResponse(**result.to_dict())


@router.post("/", response_model=ClaimSubmissionResponse, status_code=201)
async def submit_claim(
    claim_data: ClaimCreate,
    workflow: ClaimWorkflow = Depends(get_workflow),
    current_user: dict = Depends(get_current_user),
):
    """
    Submit a new claim
    """
    result = await workflow.submit_claim(
        current_user_id(current_user), current_user["role"], claim_data
    )
    if result.status == ClaimStatus.FLAGGED:
        message = "Claim submitted and flagged for additional review"
    else:
        message = "Claim submitted successfully"
    return ClaimSubmissionResponse(
        claim_id=result.claim_id,
        risk_score=result.risk_score,
        status=result.status,
        message=message,
    )


@router.get("/")
async def list_claims(
    status: Optional[ClaimStatus] = Query(None, description="Filter by status"),
    submitter_id: Optional[UUID] = Query(None, description="Filter by submitter"),
    page: int = Query(1, ge=1),
    per_page: int = Query(10, ge=1, le=100),
    workflow: ClaimWorkflow = Depends(get_workflow),
    current_user: dict = Depends(get_current_user),
):
    """
    List claims with optional filters
    """
    claims, total = await workflow.list_claims(
        current_user_id(current_user),
        current_user["role"],
        status=status,
        submitter_id=submitter_id,
        page=page,
        per_page=per_page,
    )
    total_pages = (total + per_page - 1) // per_page

    return {
        "claims": [ClaimResponse.model_validate(c) for c in claims],
        "total": total,
        "page": page,
        "per_page": per_page,
        "total_pages": total_pages,
    }


@router.get("/{claim_id}", response_model=ClaimResponse)
async def get_claim(
    claim_id: UUID,
    workflow: ClaimWorkflow = Depends(get_workflow),
    current_user: dict = Depends(get_current_user),
):
    claim = await workflow.get_claim(
        claim_id, current_user_id(current_user), current_user["role"]
    )
    return ClaimResponse.model_validate(claim)


@router.post("/{claim_id}/start-review", response_model=ClaimResponse)
async def start_review(
    claim_id: UUID,
    body: Optional[TransitionNote] = None,
    workflow: ClaimWorkflow = Depends(get_workflow),
    current_user: dict = Depends(get_current_user),
):
    claim = await workflow.start_review(
        claim_id, current_user_id(current_user), current_user["role"], _notes(body)
    )
    return ClaimResponse.model_validate(claim)


@router.post("/{claim_id}/review", response_model=ClaimResponse)
async def review_claim(
    claim_id: UUID,
    review: ClaimReviewRequest,
    workflow: ClaimWorkflow = Depends(get_workflow),
    current_user: dict = Depends(get_current_user),
):
    """
    Approve, deny or escalate a claim (validator only)
    """
    claim = await workflow.review_claim(
        claim_id,
        current_user_id(current_user),
        current_user["role"],
        decision=review.decision,
        notes=review.notes,
        approved_amount=review.approved_amount,
        override=review.override,
    )
    return ClaimResponse.model_validate(claim)


@router.post("/{claim_id}/open-voting", response_model=ClaimResponse)
async def open_voting(
    claim_id: UUID,
    body: Optional[TransitionNote] = None,
    workflow: ClaimWorkflow = Depends(get_workflow),
    current_user: dict = Depends(get_current_user),
):
    """
    Hand a claim to the community for a vote
    """
    claim = await workflow.open_voting(
        claim_id, current_user_id(current_user), current_user["role"], _notes(body)
    )
    return ClaimResponse.model_validate(claim)


@router.post("/{claim_id}/votes", response_model=VoteTallyResponse, status_code=201)
async def cast_vote(
    claim_id: UUID,
    vote: VoteCreate,
    workflow: ClaimWorkflow = Depends(get_workflow),
    current_user: dict = Depends(get_current_user),
):
    tally = await workflow.cast_vote(
        claim_id,
        current_user_id(current_user),
        current_user["role"],
        choice=vote.choice,
        reasoning=vote.reasoning,
        confidence=vote.confidence,
    )
    return VoteTallyResponse.model_validate(tally)


@router.get("/{claim_id}/votes")
async def get_votes(
    claim_id: UUID,
    workflow: ClaimWorkflow = Depends(get_workflow),
    current_user: dict = Depends(get_current_user),
):
    """
    Current tally plus the ballots the caller may see (all for validators,
    otherwise only their own)
    """
    viewer_id = current_user_id(current_user)
    await workflow.get_claim(claim_id, viewer_id, current_user["role"])
    tally = await workflow.get_vote_tally(claim_id)
    votes = await workflow.list_votes(claim_id, viewer_id, current_user["role"])
    return {
        "claim_id": str(claim_id),
        "tally": VoteTallyResponse.model_validate(tally),
        "votes": [VoteResponse.model_validate(v) for v in votes],
    }


@router.post("/{claim_id}/finalize-voting", response_model=VoteTallyResponse)
async def finalize_voting(
    claim_id: UUID,
    body: Optional[TransitionNote] = None,
    workflow: ClaimWorkflow = Depends(get_workflow),
    current_user: dict = Depends(get_current_user),
):
    tally = await workflow.finalize_voting(
        claim_id, current_user_id(current_user), current_user["role"], _notes(body)
    )
    return VoteTallyResponse.model_validate(tally)


@router.post("/{claim_id}/mark-paid", response_model=ClaimResponse)
async def mark_paid(
    claim_id: UUID,
    payment: MarkPaidRequest,
    workflow: ClaimWorkflow = Depends(get_workflow),
    current_user: dict = Depends(get_current_user),
):
    """
    Record off-chain settlement of an approved claim (admin only)
    """
    claim = await workflow.mark_paid(
        claim_id,
        current_user_id(current_user),
        current_user["role"],
        payment.settlement_ref,
    )
    return ClaimResponse.model_validate(claim)


@router.post("/{claim_id}/withdraw", response_model=ClaimResponse)
async def withdraw_claim(
    claim_id: UUID,
    body: Optional[TransitionNote] = None,
    workflow: ClaimWorkflow = Depends(get_workflow),
    current_user: dict = Depends(get_current_user),
):
    claim = await workflow.withdraw_claim(
        claim_id, current_user_id(current_user), current_user["role"], _notes(body)
    )
    return ClaimResponse.model_validate(claim)


@router.get("/{claim_id}/audit", response_model=List[AuditEntryResponse])
async def get_audit_trail(
    claim_id: UUID,
    workflow: ClaimWorkflow = Depends(get_workflow),
    current_user: dict = Depends(get_current_user),
):
    """
    Chronological audit trail of a claim's status changes
    """
    entries = await workflow.get_audit_trail(claim_id, current_user["role"])
    return [AuditEntryResponse.model_validate(e) for e in entries]


@router.post(
    "/{claim_id}/comments", response_model=CommentResponse, status_code=201
)
async def add_comment(
    claim_id: UUID,
    comment_data: CommentCreate,
    workflow: ClaimWorkflow = Depends(get_workflow),
    current_user: dict = Depends(get_current_user),
):
    comment = await workflow.add_comment(
        claim_id,
        current_user_id(current_user),
        current_user["role"],
        comment_data.content,
    )
    return CommentResponse.model_validate(comment)


@router.get("/{claim_id}/comments", response_model=List[CommentResponse])
async def list_comments(
    claim_id: UUID,
    workflow: ClaimWorkflow = Depends(get_workflow),
    current_user: dict = Depends(get_current_user),
):
    """
    Discussion thread, newest first
    """
    comments = await workflow.list_comments(
        claim_id, current_user_id(current_user), current_user["role"]
    )
    return [CommentResponse.model_validate(c) for c in comments]
