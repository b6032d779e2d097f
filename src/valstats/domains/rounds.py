"""
Per-round player participation.

Builds one PlayerRoundRecord per player per played round and accumulates
side and KAST counts across the match.
"""

import logging
from dataclasses import dataclass, field

from valstats.core.constants import REGULATION_ROUNDS
from valstats.core.telemetry import MatchTelemetry, RoundPlayerStats
from valstats.domains.combat import KillTimeline
from valstats.domains.sides import RoundContext, RoundSideTracker

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PlayerRoundRecord:
    """What one player did in one round."""

    kills: int
    deaths: int
    assists: int
    traded: bool  # this player's death was avenged by a teammate
    trade_kill: bool  # this player avenged a teammate
    was_attack: bool

    @property
    def survived(self) -> bool:
        return self.deaths == 0

    @property
    def kast_eligible(self) -> bool:
        """Kill, Assist, Survived or Traded."""
        return self.kills > 0 or self.assists > 0 or self.survived or self.traded


@dataclass
class PlayerRoundTotals:
    """Round-level accumulators for one player over a match."""

    puuid: str
    rounds_played: int = 0
    attack_rounds: int = 0
    defense_rounds: int = 0
    kast_rounds: int = 0
    records: dict[int, PlayerRoundRecord] = field(default_factory=dict)

    def add(self, round_index: int, record: PlayerRoundRecord) -> None:
        self.records[round_index] = record
        self.rounds_played += 1
        if record.was_attack:
            self.attack_rounds += 1
        else:
            self.defense_rounds += 1
        if record.kast_eligible:
            self.kast_rounds += 1


class PlayerRoundAggregator:
    """
    Walks every round of a match with side tracking.

    Players missing from a round's stats (disconnected, not yet joined)
    contribute nothing for that round. Players not on the roster are
    ignored entirely.
    """

    def __init__(self, telemetry: MatchTelemetry, timeline: KillTimeline,
                 regulation_rounds: int = REGULATION_ROUNDS):
        self.telemetry = telemetry
        self.timeline = timeline
        self.regulation_rounds = regulation_rounds
        self.roster = telemetry.roster()

    def aggregate(self) -> dict[str, PlayerRoundTotals]:
        totals = {puuid: PlayerRoundTotals(puuid) for puuid in self.roster}
        tracker = RoundSideTracker(self.regulation_rounds)

        for round_index, rnd in enumerate(self.telemetry.rounds):
            ctx = tracker.advance(round_index)
            for stats in rnd.player_stats:
                if stats.puuid not in self.roster:
                    logger.debug(f"Round {round_index}: skipping unrostered player {stats.puuid}")
                    continue
                if round_index in totals[stats.puuid].records:
                    logger.warning(f"Round {round_index}: duplicate stats for {stats.puuid}, ignored")
                    continue
                record = self._build_record(ctx, stats)
                totals[stats.puuid].add(round_index, record)

        return totals

    def _build_record(self, ctx: RoundContext, stats: RoundPlayerStats) -> PlayerRoundRecord:
        team_id = self.roster[stats.puuid].team_id
        return PlayerRoundRecord(
            kills=stats.kills,
            deaths=stats.deaths,
            assists=stats.assists,
            traded=self.timeline.was_traded(ctx.round_index, stats.puuid),
            trade_kill=self.timeline.made_trade(ctx.round_index, stats.puuid),
            was_attack=team_id == ctx.attacking_side.value,
        )


def aggregate_rounds(
    telemetry: MatchTelemetry,
    timeline: KillTimeline,
    regulation_rounds: int = REGULATION_ROUNDS,
) -> dict[str, PlayerRoundTotals]:
    """Convenience function for one-shot round aggregation."""
    return PlayerRoundAggregator(telemetry, timeline, regulation_rounds).aggregate()
