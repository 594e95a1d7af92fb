from decimal import Decimal

import pytest

from models.vote import VoteChoice
from services.voting import quorum_required, tally_votes
from utils.config import QuorumMode

FOR, AGAINST, ABSTAIN = VoteChoice.FOR, VoteChoice.AGAINST, VoteChoice.ABSTAIN


def _tally(choices, quorum="3", threshold="60", **kwargs):
    return tally_votes(
        choices, quorum=Decimal(quorum), pass_threshold=Decimal(threshold), **kwargs
    )


def test_exact_threshold_passes():
    tally = _tally([FOR, FOR, FOR, AGAINST, AGAINST])

    assert tally.for_votes == 3
    assert tally.against_votes == 2
    assert tally.total_votes == 5
    assert tally.for_percentage == 60.0
    assert tally.quorum_reached is True
    assert tally.passed is True


def test_just_below_threshold_fails():
    tally = _tally([FOR, FOR, FOR, AGAINST, AGAINST, AGAINST])

    assert tally.for_percentage == 50.0
    assert tally.passed is False


def test_below_quorum_never_passes():
    tally = _tally([FOR, FOR])

    assert tally.for_percentage == 100.0
    assert tally.quorum_reached is False
    assert tally.passed is False


def test_no_votes():
    tally = _tally([], quorum="0")

    assert tally.total_votes == 0
    assert tally.for_percentage == 0.0
    assert tally.quorum_reached is False
    assert tally.passed is False


def test_abstentions_count_towards_quorum_and_percentages():
    tally = _tally([FOR, FOR, ABSTAIN])

    assert tally.quorum_reached is True
    assert tally.abstain_votes == 1
    assert tally.for_percentage == 66.67
    assert tally.abstain_percentage == 33.33
    assert tally.passed is True


def test_percentages_sum_to_100():
    tally = _tally([FOR, AGAINST, ABSTAIN, FOR, AGAINST, FOR, FOR])

    total = tally.for_percentage + tally.against_percentage + tally.abstain_percentage
    assert total == pytest.approx(100, abs=0.02)


def test_percentage_quorum_rounds_up():
    assert quorum_required(Decimal("10"), QuorumMode.PERCENTAGE, eligible_voters=25) == 3
    assert quorum_required(Decimal("10"), QuorumMode.PERCENTAGE, eligible_voters=30) == 3
    assert quorum_required(Decimal("10"), QuorumMode.PERCENTAGE, eligible_voters=31) == 4


def test_percentage_quorum_needs_voter_count():
    with pytest.raises(ValueError):
        quorum_required(Decimal("10"), QuorumMode.PERCENTAGE)


def test_percentage_mode_tally():
    tally = _tally(
        [FOR, FOR, AGAINST],
        quorum="50",
        mode=QuorumMode.PERCENTAGE,
        eligible_voters=8,
    )

    assert tally.quorum_required == 4
    assert tally.quorum_reached is False

    tally = _tally(
        [FOR, FOR, AGAINST, FOR],
        quorum="50",
        mode=QuorumMode.PERCENTAGE,
        eligible_voters=8,
    )

    assert tally.quorum_reached is True
    assert tally.passed is True


def test_fractional_absolute_quorum_rounds_up():
    assert quorum_required(Decimal("2.5"), QuorumMode.ABSOLUTE) == 3

    tally = _tally([FOR, FOR], quorum="2.5")
    assert tally.quorum_required == 3
    assert tally.quorum_reached is False
