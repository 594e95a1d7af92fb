"""
Claim eligibility: a member may submit claims once their membership has
been ACTIVE for the required number of days (60 by default).
"""

from dataclasses import dataclass, asdict
from datetime import datetime
from typing import Optional

from models.membership import Membership, MembershipStatus
from utils.clock import as_utc

REQUIRED_MEMBERSHIP_DAYS = 60
SECONDS_PER_DAY = 24 * 60 * 60


@dataclass(frozen=True)
class EligibilityResult:
    is_eligible: bool
    membership_days: int
    required_days: int
    remaining_days: int
    membership_status: Optional[str]
    message: str

    def to_dict(self):
        return asdict(self)


def membership_days(joined_at: datetime, now: datetime) -> int:
    """Whole days elapsed since `joined_at`; never negative."""
    elapsed = (as_utc(now) - as_utc(joined_at)).total_seconds()
    return max(int(elapsed // SECONDS_PER_DAY), 0)


def evaluate_eligibility(
    membership: Optional[Membership],
    now: datetime,
    required_days: int = REQUIRED_MEMBERSHIP_DAYS,
) -> EligibilityResult:
    """
    Decide whether a membership may submit claims at `now`.

    Pure function: fails closed for missing or non-ACTIVE memberships and
    always explains why.
    """
    if membership is None:
        return EligibilityResult(
            is_eligible=False,
            membership_days=0,
            required_days=required_days,
            remaining_days=required_days,
            membership_status=None,
            message="Active membership required to submit claims. No membership was found for this account.",
        )

    status = membership.status.value
    if membership.status != MembershipStatus.ACTIVE:
        return EligibilityResult(
            is_eligible=False,
            membership_days=0,
            required_days=required_days,
            remaining_days=required_days,
            membership_status=status,
            message=f"Active membership required to submit claims. Your membership is {status}.",
        )

    days = membership_days(membership.joined_at, now)
    if days >= required_days:
        return EligibilityResult(
            is_eligible=True,
            membership_days=days,
            required_days=required_days,
            remaining_days=0,
            membership_status=status,
            message=f"You are eligible to submit claims. You have been a member for {days} days.",
        )

    remaining = required_days - days
    return EligibilityResult(
        is_eligible=False,
        membership_days=days,
        required_days=required_days,
        remaining_days=remaining,
        membership_status=status,
        message=f"Eligibility requires {required_days} days of membership. You have {days} days; {remaining} more to go.",
    )
