"""
Shared fixtures: a fresh SQLite database per test, a controllable clock and
the services wired the way main.create_app wires them.
"""

import uuid
from datetime import datetime, timedelta, timezone

import pytest

from database.connection import Database
from models.claim import ClaimCategory
from models.membership import MembershipStatus, MembershipTier
from schemas.claim import ClaimCreate
from services.audit_logger import AuditLogger
from services.claim_workflow import ClaimWorkflow
from services.membership_service import MembershipService
from services.risk_scoring import AmountRiskScorer
from utils.config import WorkflowSettings


class FakeClock:
    """Callable clock that only moves when told to."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs):
        self.now = self.now + timedelta(**kwargs)


@pytest.fixture
def clock():
    return FakeClock(datetime(2026, 3, 2, 12, 0, tzinfo=timezone.utc))


@pytest.fixture
def settings(tmp_path):
    return WorkflowSettings(
        database_url=f"sqlite+aiosqlite:///{tmp_path / 'claims.db'}",
        environment="test",
    )


@pytest.fixture
async def database(settings):
    db = Database(settings.database_url)
    await db.create_all()
    yield db
    await db.dispose()


@pytest.fixture
def audit_logger(clock):
    return AuditLogger(clock)


@pytest.fixture
def workflow(database, settings, audit_logger, clock):
    return ClaimWorkflow(
        database,
        settings,
        risk_scorer=AmountRiskScorer(),
        audit_logger=audit_logger,
        clock=clock,
    )


@pytest.fixture
def memberships(database, audit_logger, clock):
    return MembershipService(database, audit_logger=audit_logger, clock=clock)


@pytest.fixture
def make_member(memberships, clock):
    """Create a membership that joined `days` ago and return the user id."""

    async def _make(
        days: int = 90,
        status: MembershipStatus = MembershipStatus.ACTIVE,
        tier: MembershipTier = MembershipTier.BASIC,
        user_id=None,
    ):
        user_id = user_id or uuid.uuid4()
        await memberships.upsert(
            user_id,
            status=status,
            tier=tier,
            joined_at=clock.now - timedelta(days=days),
        )
        return user_id

    return _make


@pytest.fixture
def claim_input():
    def _build(amount: int = 30000, category: ClaimCategory = ClaimCategory.MEDICAL):
        return ClaimCreate(
            category=category,
            requested_amount=amount,
            description="Emergency room visit after a cycling accident",
        )

    return _build


@pytest.fixture
async def submitted_claim(workflow, make_member, claim_input):
    """A SUBMITTED claim from an eligible BASIC member: (claim_id, submitter_id)."""
    member_id = await make_member()
    result = await workflow.submit_claim(member_id, "MEMBER", claim_input(30000))
    return result.claim_id, member_id


@pytest.fixture
async def validator_id(make_member):
    return await make_member(tier=MembershipTier.VALIDATOR)


@pytest.fixture
async def admin_id(make_member):
    return await make_member(tier=MembershipTier.FOUNDER)
