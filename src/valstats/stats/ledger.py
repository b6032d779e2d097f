"""
Aggregate statistics ledger.

Folds a MatchStatRecord into a StatsSection (apply) or takes it back out
(reverse). The two are exact inverses:

    reverse_match(apply_match(s, r, won), r, won) == s

up to floating-point reassociation in the averaged fields. Averages use the
running-mean update over the game count before the change, n:

    apply:    avg' = (avg * n + x) / (n + 1)
    reverse:  avg' = (avg * n - x) / (n - 1),   0 when n - 1 == 0

Both operations touch the section itself and ``agents[record.agent]``. A
reverse that leaves an agent with no games removes the agent entry.
"""

import logging
from collections.abc import Callable
from dataclasses import replace
from datetime import datetime

from valstats.analysis.models import MatchStatRecord
from valstats.core.errors import ConsistencyError
from valstats.stats.sections import (
    AVERAGE_FIELDS,
    SIGNED_TOTALS,
    TOTAL_FIELDS,
    PlayerProfile,
    StatsSection,
    Tally,
    utc_now,
)

logger = logging.getLogger(__name__)


# =============================================================================
# Single-scope updates
# =============================================================================


def _apply_scope(section: StatsSection, record: MatchStatRecord, won: bool) -> StatsSection:
    previous_games = section.games.played
    new_games = previous_games + 1

    changes: dict = {
        "games": Tally.of(section.games.won + int(won), section.games.lost + int(not won)),
        "rounds": Tally.of(
            section.rounds.won + record.rounds_won, section.rounds.lost + record.rounds_lost
        ),
    }
    for total, source in TOTAL_FIELDS.items():
        changes[total] = getattr(section, total) + getattr(record, source)
    for avg, source in AVERAGE_FIELDS.items():
        changes[avg] = (getattr(section, avg) * previous_games + getattr(record, source)) / new_games

    return replace(section, **changes)


def _reverse_scope(
    section: StatsSection, record: MatchStatRecord, won: bool, scope: str
) -> StatsSection:
    previous_games = section.games.played
    new_games = previous_games - 1

    games_won = section.games.won - int(won)
    games_lost = section.games.lost - int(not won)
    rounds_won = section.rounds.won - record.rounds_won
    rounds_lost = section.rounds.lost - record.rounds_lost

    negative = [
        name
        for name, value in (
            ("games.won", games_won),
            ("games.lost", games_lost),
            ("rounds.won", rounds_won),
            ("rounds.lost", rounds_lost),
        )
        if value < 0
    ]

    changes: dict = {
        "games": Tally.of(games_won, games_lost),
        "rounds": Tally.of(rounds_won, rounds_lost),
    }
    for total, source in TOTAL_FIELDS.items():
        value = getattr(section, total) - getattr(record, source)
        if value < 0 and total not in SIGNED_TOTALS:
            negative.append(total)
        changes[total] = value

    if negative:
        raise ConsistencyError(
            f"Reversing match for {record.puuid} would make {', '.join(negative)} "
            f"negative in {scope}"
        )

    for avg, source in AVERAGE_FIELDS.items():
        if new_games == 0:
            changes[avg] = 0.0
        else:
            changes[avg] = (getattr(section, avg) * previous_games - getattr(record, source)) / new_games

    return replace(section, **changes)


# =============================================================================
# Section updates (scope + agent)
# =============================================================================


def apply_match(section: StatsSection, record: MatchStatRecord, won: bool) -> StatsSection:
    """Return ``section`` with the record folded in, including its agent entry."""
    agent_section = section.agent(record.agent) or StatsSection()
    updated = _apply_scope(section, record, won)
    return updated.with_agent(record.agent, _apply_scope(agent_section, record, won))


def reverse_match(
    section: StatsSection, record: MatchStatRecord, won: bool, scope: str = "section"
) -> StatsSection:
    """
    Return ``section`` with the record taken back out.

    Raises:
        ConsistencyError: the record was never applied to this section
    """
    agent_section = section.agent(record.agent)
    if agent_section is None:
        raise ConsistencyError(
            f"Reversing match for {record.puuid}: agent {record.agent!r} missing in {scope}"
        )

    updated = _reverse_scope(section, record, won, scope)
    agent_section = _reverse_scope(agent_section, record, won, f"{scope}/{record.agent}")
    if agent_section.is_empty:
        return updated.without_agent(record.agent)
    return updated.with_agent(record.agent, agent_section)


# =============================================================================
# Profile updates (career + season)
# =============================================================================


class AggregateStatsLedger:
    """
    Applies and reverses match records against player profiles.

    Every call returns a new PlayerProfile; the caller persists it.

    Usage:
        ledger = AggregateStatsLedger()
        profile = ledger.apply_to_profile(store.get_player_profile(puuid), record, "e9a1")
    """

    def __init__(self, clock: Callable[[], datetime] = utc_now):
        self.clock = clock

    @staticmethod
    def apply(section: StatsSection, record: MatchStatRecord, won: bool) -> StatsSection:
        return apply_match(section, record, won)

    @staticmethod
    def reverse(section: StatsSection, record: MatchStatRecord, won: bool) -> StatsSection:
        return reverse_match(section, record, won)

    def apply_to_profile(
        self, profile: PlayerProfile | None, record: MatchStatRecord, season_id: str
    ) -> PlayerProfile:
        """Fold a record into career and season scopes, creating the profile if needed."""
        if profile is None:
            logger.debug(f"Creating profile for {record.name} ({record.puuid})")
            profile = PlayerProfile(puuid=record.puuid, current_name=record.name)

        won = record.match_won
        season = profile.season(season_id) or StatsSection()
        return replace(
            profile,
            current_name=record.name,
            overall_stats=apply_match(profile.overall_stats, record, won),
            season_stats={**profile.season_stats, season_id: apply_match(season, record, won)},
            last_updated=self.clock(),
        )

    def reverse_from_profile(
        self, profile: PlayerProfile, record: MatchStatRecord, season_id: str
    ) -> PlayerProfile:
        """
        Take a record back out of career and season scopes.

        Raises:
            ConsistencyError: the profile never received this record
        """
        season = profile.season(season_id)
        if season is None:
            raise ConsistencyError(
                f"Reversing match for {record.puuid}: no stats for season {season_id!r}"
            )

        won = record.match_won
        return replace(
            profile,
            overall_stats=reverse_match(profile.overall_stats, record, won, scope="overall"),
            season_stats={
                **profile.season_stats,
                season_id: reverse_match(season, record, won, scope=f"season {season_id}"),
            },
            last_updated=self.clock(),
        )
