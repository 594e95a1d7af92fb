"""
Risk scoring strategies for new claims.

A score is advisory (0-100): it is stored once at submission and may flag the
claim for closer review, but never blocks the submission.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional, Protocol

from utils.clock import as_utc

MAX_SCORE = 100


@dataclass
class RiskContext:
    """Everything a scorer may look at when a claim is submitted."""

    requested_amount: int
    category: str
    submitted_at: datetime
    membership_days: int = 0
    recent_claims: int = 0  # non-cancelled claims in the last 30 days
    prior_paid_claims: int = 0


@dataclass
class RiskAssessment:
    score: int
    reasons: List[str] = field(default_factory=list)


class RiskScorer(Protocol):
    def score(self, context: RiskContext) -> RiskAssessment: ...


def clip_score(value: float) -> int:
    return int(min(max(value, 0), MAX_SCORE))


class AmountRiskScorer:
    """Linear in the requested amount: one point per $10, capped at 100."""

    def __init__(self, cents_per_point: int = 1000):
        self.cents_per_point = cents_per_point

    def score(self, context: RiskContext) -> RiskAssessment:
        score = clip_score(context.requested_amount / self.cents_per_point)
        reasons = ["LARGE_AMOUNT"] if score >= MAX_SCORE else []
        return RiskAssessment(score=score, reasons=reasons)


class BehaviouralRiskScorer:
    """
    Weighted heuristics over tenure, claim velocity, amount and timing,
    clipped to 100.
    """

    def __init__(
        self,
        baseline_amount: int = 50000,
        history_average: int = 25000,
        odd_hours: range = range(2, 7),
    ):
        self.baseline_amount = baseline_amount
        self.history_average = history_average
        self.odd_hours = odd_hours

    def score(self, context: RiskContext) -> RiskAssessment:
        points = 0
        reasons: List[str] = []

        if context.membership_days < 7:
            points += 30
            reasons.append("NEW_MEMBER")
        elif context.membership_days < 30:
            points += 10
            reasons.append("RECENT_MEMBER")

        if context.recent_claims > 3:
            points += 40
            reasons.append("HIGH_CLAIM_VELOCITY")
        elif context.recent_claims > 1:
            points += 20
            reasons.append("ELEVATED_CLAIM_VELOCITY")

        amount_points = self._amount_points(context)
        points += amount_points
        if amount_points >= 16:
            reasons.append("LARGE_AMOUNT")

        hour = as_utc(context.submitted_at).hour
        if hour in self.odd_hours:
            points += 10
            reasons.append("ODD_HOURS_SUBMISSION")

        return RiskAssessment(score=clip_score(points), reasons=reasons)

    def _amount_points(self, context: RiskContext) -> int:
        # Out of 20: first-time claimants are compared to a fixed baseline
        if context.prior_paid_claims == 0:
            return 16 if context.requested_amount > self.baseline_amount else 4
        return 18 if context.requested_amount > self.history_average * 3 else 2


def get_risk_scorer(name: Optional[str] = None) -> RiskScorer:
    if name == "behavioural":
        return BehaviouralRiskScorer()
    return AmountRiskScorer()
