"""
valstats - Constants

Team identifiers, round structure, and side labels shared by every stage of
match processing.
"""

from enum import StrEnum


class TeamSide(StrEnum):
    """Original team colour as reported by match telemetry."""

    RED = "Red"
    BLUE = "Blue"

    @property
    def opponent(self) -> "TeamSide":
        return TeamSide.BLUE if self is TeamSide.RED else TeamSide.RED


class TeamSlot(StrEnum):
    """
    Stable team label for the whole match.

    Team1 is whichever colour the caller says started on attack, so the
    label survives the halftime swap.
    """

    TEAM1 = "Team1"
    TEAM2 = "Team2"


class Pick(StrEnum):
    """Side a team started the match on."""

    ATTACKERS = "Attackers"
    DEFENDERS = "Defenders"


# Round structure
REGULATION_ROUNDS = 24  # 12 rounds per half
OVERTIME_PERIOD_ROUNDS = 2  # one round on each side per period

# The colour on attack at round index 0
STARTING_ATTACKER = TeamSide.RED

# Bonus credited to the eventual match winner in the overtime breakdown
OVERTIME_WINNER_BONUS = 2

VALID_TEAM_IDS = frozenset(side.value for side in TeamSide)
