from datetime import datetime, timezone

from services.risk_scoring import (
    AmountRiskScorer,
    BehaviouralRiskScorer,
    RiskContext,
    get_risk_scorer,
)

NOON = datetime(2026, 3, 2, 12, 0, tzinfo=timezone.utc)


def _context(amount, **kwargs):
    kwargs.setdefault("submitted_at", NOON)
    return RiskContext(requested_amount=amount, category="MEDICAL", **kwargs)


def test_amount_scorer_is_linear_in_dollars():
    scorer = AmountRiskScorer()

    assert scorer.score(_context(30000)).score == 30
    assert scorer.score(_context(80000)).score == 80
    assert scorer.score(_context(999)).score == 0


def test_amount_scorer_caps_at_100():
    assessment = AmountRiskScorer().score(_context(150000))

    assert assessment.score == 100
    assert assessment.reasons == ["LARGE_AMOUNT"]


def test_behavioural_scorer_low_risk_member():
    assessment = BehaviouralRiskScorer().score(
        _context(20000, membership_days=400, recent_claims=0, prior_paid_claims=2)
    )

    assert assessment.score == 2
    assert assessment.reasons == []


def test_behavioural_scorer_stacks_signals():
    assessment = BehaviouralRiskScorer().score(
        _context(
            90000,
            submitted_at=datetime(2026, 3, 2, 3, 30, tzinfo=timezone.utc),
            membership_days=3,
            recent_claims=5,
        )
    )

    # 30 new member + 40 velocity + 16 amount + 10 odd hours
    assert assessment.score == 96
    assert assessment.reasons == [
        "NEW_MEMBER",
        "HIGH_CLAIM_VELOCITY",
        "LARGE_AMOUNT",
        "ODD_HOURS_SUBMISSION",
    ]


def test_behavioural_scorer_compares_against_claim_history():
    assessment = BehaviouralRiskScorer().score(
        _context(
            90000,
            submitted_at=datetime(2026, 3, 2, 4, 0, tzinfo=timezone.utc),
            membership_days=1,
            recent_claims=10,
            prior_paid_claims=1,
        )
    )

    # 30 new member + 40 velocity + 18 above history + 10 odd hours
    assert assessment.score == 98
    assert "LARGE_AMOUNT" in assessment.reasons


def test_get_risk_scorer_by_name():
    assert isinstance(get_risk_scorer("behavioural"), BehaviouralRiskScorer)
    assert isinstance(get_risk_scorer("amount"), AmountRiskScorer)
    assert isinstance(get_risk_scorer(None), AmountRiskScorer)
