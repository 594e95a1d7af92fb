"""
Community vote aggregation
"""

import math
from dataclasses import dataclass, asdict
from decimal import Decimal
from typing import Iterable, Optional

from models.vote import VoteChoice
from utils.config import QuorumMode


@dataclass(frozen=True)
class VoteTally:
    for_votes: int
    against_votes: int
    abstain_votes: int
    total_votes: int
    for_percentage: float
    against_percentage: float
    abstain_percentage: float
    quorum_required: int
    quorum_reached: bool
    passed: bool

    def to_dict(self):
        return asdict(self)


def _percentage(count: int, total: int) -> float:
    if total == 0:
        return 0.0
    return round(count * 100 / total, 2)


def quorum_required(
    quorum: Decimal, mode: QuorumMode, eligible_voters: Optional[int] = None
) -> int:
    """
    Number of votes that must be cast before the outcome counts. Fractional
    quorums round up in both modes.
    """
    if mode == QuorumMode.PERCENTAGE:
        if eligible_voters is None:
            raise ValueError("eligible_voters is required for percentage quorum")
        return math.ceil(Decimal(eligible_voters) * quorum / 100)
    return math.ceil(quorum)


def tally_votes(
    choices: Iterable[VoteChoice],
    quorum: Decimal,
    pass_threshold: Decimal,
    mode: QuorumMode = QuorumMode.ABSOLUTE,
    eligible_voters: Optional[int] = None,
) -> VoteTally:
    """
    Count votes and decide quorum and outcome.

    Percentages are taken over votes cast, abstentions included. A claim
    passes when quorum is reached and the FOR share is at least
    `pass_threshold` percent; the comparison is exact, so hitting the
    threshold exactly passes.
    """
    for_votes = against_votes = abstain_votes = 0
    for choice in choices:
        if choice == VoteChoice.FOR:
            for_votes += 1
        elif choice == VoteChoice.AGAINST:
            against_votes += 1
        else:
            abstain_votes += 1

    total = for_votes + against_votes + abstain_votes
    required = quorum_required(quorum, mode, eligible_voters)
    quorum_reached = total > 0 and total >= required
    meets_threshold = Decimal(for_votes) * 100 >= Decimal(pass_threshold) * total

    return VoteTally(
        for_votes=for_votes,
        against_votes=against_votes,
        abstain_votes=abstain_votes,
        total_votes=total,
        for_percentage=_percentage(for_votes, total),
        against_percentage=_percentage(against_votes, total),
        abstain_percentage=_percentage(abstain_votes, total),
        quorum_required=required,
        quorum_reached=quorum_reached,
        passed=quorum_reached and meets_threshold,
    )
