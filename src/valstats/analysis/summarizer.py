"""
Match statistics summarizer.

Turns validated telemetry into a MatchSummary: one MatchStatRecord per
rostered player, a per-team round breakdown by side, and a round log.

Formulas (rounding halves toward +infinity):
- ACS          = score / max(rounds_played, 1)
- ADR          = damage_dealt / max(rounds_played, 1)
- Damage delta = (damage_dealt - damage_received) / rounds_played, 0 when undefined
- HS%          = 100 * headshots / (headshots + bodyshots + legshots)
- KAST         = 100 * kast_rounds / max(rounds_played, 1)

Overtime credit per team: 0 unless at least one two-round overtime period
completed; otherwise (periods - 1), plus 2 for the team that won the match.
"""

import logging
import math
from dataclasses import dataclass

from valstats.core.constants import (
    OVERTIME_WINNER_BONUS,
    REGULATION_ROUNDS,
    Pick,
    TeamSide,
    TeamSlot,
)
from valstats.core.telemetry import MatchTelemetry, TelemetryPlayer, parse_telemetry
from valstats.core.utils import round_half_up, timed
from valstats.analysis.models import (
    MatchOverview,
    MatchStatRecord,
    MatchSummary,
    PlayerOverview,
    PlayerRef,
    RoundSummary,
    TeamOverview,
    TeamResult,
    TeamRoundBreakdown,
)
from valstats.domains.combat import KillTimeline, process_kills
from valstats.domains.rounds import PlayerRoundTotals, aggregate_rounds
from valstats.domains.sides import RoundSideTracker

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TeamAssignment:
    """Fixed mapping between original colours and Team1/Team2 for one match."""

    team1_side: TeamSide

    @classmethod
    def from_flag(cls, team1_attacking: bool) -> "TeamAssignment":
        # Red attacks first, so "Team1 started on attack" means Team1 is Red
        return cls(TeamSide.RED if team1_attacking else TeamSide.BLUE)

    @property
    def team2_side(self) -> TeamSide:
        return self.team1_side.opponent

    def slot_for(self, side: TeamSide | str) -> TeamSlot:
        return TeamSlot.TEAM1 if TeamSide(side) is self.team1_side else TeamSlot.TEAM2

    def side_for(self, slot: TeamSlot) -> TeamSide:
        return self.team1_side if slot is TeamSlot.TEAM1 else self.team2_side

    def pick_for(self, slot: TeamSlot) -> Pick:
        attacking_first = self.side_for(slot) is TeamSide.RED
        return Pick.ATTACKERS if attacking_first else Pick.DEFENDERS


# =============================================================================
# Formula helpers
# =============================================================================


def overtime_credit(overtime_periods: int, is_match_winner: bool) -> int:
    """Overtime rounds credited to a team in the round breakdown."""
    if overtime_periods <= 0:
        return 0
    credit = overtime_periods - 1
    if is_match_winner:
        credit += OVERTIME_WINNER_BONUS
    return credit


def headshot_percentage(headshots: int, bodyshots: int, legshots: int) -> int:
    total = headshots + bodyshots + legshots
    if total <= 0:
        return 0
    return round_half_up(headshots / total * 100)


def damage_delta_per_round(dealt: int, received: int, rounds_played: int) -> int:
    if rounds_played <= 0:
        return 0
    value = (dealt - received) / rounds_played
    if not math.isfinite(value):
        return 0
    return round_half_up(value)


# =============================================================================
# Summarizer
# =============================================================================


class MatchStatSummarizer:
    """
    Summarizes one match.

    Usage:
        summary = MatchStatSummarizer(telemetry, team1_attacking=True).summarize()
        for record in summary.records:
            print(record.name, record.acs)
    """

    def __init__(
        self,
        telemetry: MatchTelemetry,
        team1_attacking: bool,
        regulation_rounds: int = REGULATION_ROUNDS,
    ):
        self.telemetry = telemetry
        self.assignment = TeamAssignment.from_flag(team1_attacking)
        self.regulation_rounds = regulation_rounds
        self.roster = telemetry.roster()

        self.timeline: KillTimeline = process_kills(telemetry.kills, self.roster)
        self.round_totals: dict[str, PlayerRoundTotals] = aggregate_rounds(
            telemetry, self.timeline, regulation_rounds
        )

    # -------------------------------------------------------------------------
    # Players
    # -------------------------------------------------------------------------

    def _team_rounds(self, side: TeamSide) -> tuple[int, int]:
        """(rounds won, rounds lost) for a colour, from the teams block."""
        won = self.telemetry.team(side).rounds_won
        lost = self.telemetry.team(side.opponent).rounds_won
        return won, lost

    def build_record(self, player: TelemetryPlayer) -> MatchStatRecord:
        stats = player.stats
        totals = self.round_totals[player.puuid]
        rounds_played = totals.rounds_played
        side = TeamSide(player.team_id)
        first_bloods = self.timeline.first_kill_counts.get(player.puuid, 0)
        first_deaths = self.timeline.first_death_counts.get(player.puuid, 0)
        rounds_won, rounds_lost = self._team_rounds(side)

        return MatchStatRecord(
            name=player.full_name,
            puuid=player.puuid,
            rank=player.rank_id,
            team=self.assignment.slot_for(side),
            agent=player.agent_name,
            acs=round_half_up(stats.score / max(rounds_played, 1)),
            kills=stats.kills,
            deaths=stats.deaths,
            assists=stats.assists,
            kda_diff=stats.kills - stats.deaths,
            kast=round_half_up(100 * totals.kast_rounds / max(rounds_played, 1)),
            hs_percentage=headshot_percentage(stats.headshots, stats.bodyshots, stats.legshots),
            first_bloods=first_bloods,
            first_deaths=first_deaths,
            fkfd_diff=first_bloods - first_deaths,
            trades=self.timeline.trade_counts.get(player.puuid, 0),
            traded=self.timeline.traded_counts.get(player.puuid, 0),
            adr=round_half_up(stats.damage_dealt / max(rounds_played, 1)),
            damage_delta=damage_delta_per_round(
                stats.damage_dealt, stats.damage_received, rounds_played
            ),
            attack_rounds=totals.attack_rounds,
            defense_rounds=totals.defense_rounds,
            rounds_won=rounds_won,
            rounds_lost=rounds_lost,
            match_won=self.telemetry.team(side).won,
        )

    # -------------------------------------------------------------------------
    # Rounds
    # -------------------------------------------------------------------------

    def _player_ref(self, puuid: str) -> PlayerRef | None:
        player = self.roster.get(puuid)
        if player is None:
            return None
        return PlayerRef(puuid=puuid, name=player.full_name, rank=player.rank_id)

    def build_rounds(self) -> tuple[dict[TeamSlot, TeamRoundBreakdown], list[RoundSummary]]:
        """Walk rounds in order, tallying side wins and building the round log."""
        attack = {TeamSlot.TEAM1: 0, TeamSlot.TEAM2: 0}
        defense = {TeamSlot.TEAM1: 0, TeamSlot.TEAM2: 0}
        summaries: list[RoundSummary] = []
        tracker = RoundSideTracker(self.regulation_rounds)

        for round_index, rnd in enumerate(self.telemetry.rounds):
            ctx = tracker.advance(round_index)
            attacking_slot = self.assignment.slot_for(ctx.attacking_side)
            winner_slot = (
                self.assignment.slot_for(rnd.winning_team_id) if rnd.winning_team_id else None
            )

            if winner_slot is not None and not ctx.is_overtime:
                if winner_slot is attacking_slot:
                    attack[winner_slot] += 1
                else:
                    defense[winner_slot] += 1

            first = self.timeline.first_kills.get(round_index)
            summaries.append(
                RoundSummary(
                    round_number=round_index + 1,
                    winning_team=winner_slot,
                    attacking_team=attacking_slot,
                    result=rnd.result,
                    site=rnd.plant_site,
                    first_kill=self._player_ref(first.killer_puuid) if first else None,
                    first_death=self._player_ref(first.victim_puuid) if first else None,
                    ceremony=rnd.ceremony,
                    is_overtime=ctx.is_overtime,
                )
            )

        winner = self.telemetry.winning_side
        breakdown = {}
        for slot in (TeamSlot.TEAM1, TeamSlot.TEAM2):
            side = self.assignment.side_for(slot)
            breakdown[slot] = TeamRoundBreakdown(
                attack=attack[slot],
                defense=defense[slot],
                total=self.telemetry.team(side).rounds_won,
                overtime=overtime_credit(tracker.overtime_periods, side is winner),
            )

        if tracker.entered_overtime:
            logger.debug(
                f"Match {self.telemetry.match_id} went to overtime: "
                f"{tracker.overtime_rounds} rounds, {tracker.overtime_periods} periods"
            )
        return breakdown, summaries

    # -------------------------------------------------------------------------
    # Documents
    # -------------------------------------------------------------------------

    def summarize(self) -> MatchSummary:
        records = [self.build_record(player) for player in self.telemetry.players]
        breakdown, round_log = self.build_rounds()
        winner = self.telemetry.winning_side
        meta = self.telemetry.metadata

        teams = []
        for slot in (TeamSlot.TEAM1, TeamSlot.TEAM2):
            side = self.assignment.side_for(slot)
            teams.append(
                TeamResult(
                    team_id=slot,
                    won=side is winner,
                    pick=self.assignment.pick_for(slot),
                    rounds=breakdown[slot],
                    players=tuple(r for r in records if r.team is slot),
                )
            )

        return MatchSummary(
            match_id=meta.match_id,
            map=meta.map_name,
            start_time=meta.started_at,
            game_server=meta.cluster,
            game_mode=meta.queue_name,
            game_duration_ms=meta.game_length_ms,
            season=meta.season_label,
            patch=meta.patch_version,
            teams=(teams[0], teams[1]),
            rounds=tuple(round_log),
        )

    def overview(self) -> MatchOverview:
        meta = self.telemetry.metadata
        teams = []
        for slot in (TeamSlot.TEAM1, TeamSlot.TEAM2):
            side = self.assignment.side_for(slot)
            team = self.telemetry.team(side)
            teams.append(
                TeamOverview(
                    team_id=slot,
                    has_won=team.won,
                    pick=self.assignment.pick_for(slot),
                    rounds_won=team.rounds_won,
                    players=tuple(
                        PlayerOverview(name=p.full_name, puuid=p.puuid, agent=p.agent_name)
                        for p in self.telemetry.players
                        if p.team_id == side.value
                    ),
                )
            )
        return MatchOverview(
            match_id=meta.match_id,
            map=meta.map_name,
            game_start=meta.started_at,
            game_server=meta.cluster,
            teams=(teams[0], teams[1]),
        )


# =============================================================================
# Convenience Functions
# =============================================================================


@timed
def summarize_match(
    telemetry: MatchTelemetry | dict,
    team1_attacking: bool,
    regulation_rounds: int = REGULATION_ROUNDS,
) -> MatchSummary:
    """Validate telemetry (if raw) and produce the detailed match summary."""
    parsed = parse_telemetry(telemetry)
    summary = MatchStatSummarizer(parsed, team1_attacking, regulation_rounds).summarize()
    logger.info(
        f"Summarized match {summary.match_id} on {summary.map}: "
        f"{len(summary.records)} players, {len(summary.rounds)} rounds"
    )
    return summary


def summarize_overview(telemetry: MatchTelemetry | dict, team1_attacking: bool) -> MatchOverview:
    """Validate telemetry (if raw) and produce the basic match overview."""
    parsed = parse_telemetry(telemetry)
    return MatchStatSummarizer(parsed, team1_attacking).overview()
