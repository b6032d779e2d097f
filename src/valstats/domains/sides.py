"""
Round side tracking.

Red attacks first. Sides swap once at halftime and then alternate every
round in overtime, where two consecutive rounds form one overtime period.
"""

from dataclasses import dataclass

from valstats.core.constants import (
    OVERTIME_PERIOD_ROUNDS,
    REGULATION_ROUNDS,
    STARTING_ATTACKER,
    TeamSide,
)


@dataclass(frozen=True)
class RoundContext:
    """Side assignment for a single round."""

    round_index: int
    attacking_side: TeamSide
    is_overtime: bool
    overtime_period_index: int | None = None

    @property
    def defending_side(self) -> TeamSide:
        return self.attacking_side.opponent


def _check_regulation(regulation_rounds: int) -> None:
    if regulation_rounds <= 0 or regulation_rounds % 2:
        raise ValueError(f"regulation_rounds must be a positive even number, got {regulation_rounds}")


def side_for_round(round_index: int, regulation_rounds: int = REGULATION_ROUNDS) -> RoundContext:
    """
    Determine which side attacks in a round.

    Args:
        round_index: 0-based round index
        regulation_rounds: Rounds before overtime (halftime at half of this)

    Returns:
        RoundContext for the round
    """
    _check_regulation(regulation_rounds)
    if round_index < 0:
        raise ValueError(f"round_index must be >= 0, got {round_index}")

    if round_index < regulation_rounds:
        attacker = STARTING_ATTACKER
        if round_index >= regulation_rounds // 2:
            attacker = attacker.opponent
        return RoundContext(round_index, attacker, is_overtime=False)

    # Overtime flips every round, starting from the side that defended
    # the last regulation round.
    overtime_round = round_index - regulation_rounds
    attacker = STARTING_ATTACKER if overtime_round % 2 == 0 else STARTING_ATTACKER.opponent
    return RoundContext(
        round_index,
        attacker,
        is_overtime=True,
        overtime_period_index=overtime_round // OVERTIME_PERIOD_ROUNDS,
    )


class RoundSideTracker:
    """
    Walks a match round by round, keeping overtime counters.

    Usage:
        tracker = RoundSideTracker()
        for index, rnd in enumerate(rounds):
            ctx = tracker.advance(index)
    """

    def __init__(self, regulation_rounds: int = REGULATION_ROUNDS):
        _check_regulation(regulation_rounds)
        self.regulation_rounds = regulation_rounds
        self.overtime_rounds = 0
        self._next_index = 0

    def advance(self, round_index: int) -> RoundContext:
        """Return the context for the next round; rounds must be visited in order."""
        if round_index != self._next_index:
            raise ValueError(f"Expected round {self._next_index}, got {round_index}")
        ctx = side_for_round(round_index, self.regulation_rounds)
        if ctx.is_overtime:
            self.overtime_rounds += 1
        self._next_index += 1
        return ctx

    @property
    def entered_overtime(self) -> bool:
        return self.overtime_rounds > 0

    @property
    def overtime_periods(self) -> int:
        """Number of completed two-round overtime periods."""
        return self.overtime_rounds // OVERTIME_PERIOD_ROUNDS
