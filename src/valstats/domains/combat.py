"""
Kill timeline analysis.

Implements per-round combat facts derived from the ordered kill feed:
- First blood / first death per round
- Trade detection (a teammate of the victim kills the killer later in
  the same round)
"""

import logging
from collections import defaultdict
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field

from valstats.core.telemetry import KillEvent, TelemetryPlayer

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FirstKill:
    """Opening kill of a round."""

    killer_puuid: str
    victim_puuid: str
    time_ms: int


@dataclass(frozen=True)
class Trade:
    """
    A death avenged by a teammate.

    ``victim_puuid`` died to ``killer_puuid``; ``trader_puuid`` (same
    original team as the victim) then killed ``killer_puuid`` in the same
    round.
    """

    round_index: int
    victim_puuid: str
    killer_puuid: str
    trader_puuid: str
    death_time_ms: int
    trade_time_ms: int

    @property
    def time_delta_ms(self) -> int:
        return self.trade_time_ms - self.death_time_ms


@dataclass
class KillTimeline:
    """Everything the round aggregator and summarizer need from the kill feed."""

    first_kills: dict[int, FirstKill] = field(default_factory=dict)
    trades: list[Trade] = field(default_factory=list)

    first_kill_counts: dict[str, int] = field(default_factory=lambda: defaultdict(int))
    first_death_counts: dict[str, int] = field(default_factory=lambda: defaultdict(int))
    trade_counts: dict[str, int] = field(default_factory=lambda: defaultdict(int))
    traded_counts: dict[str, int] = field(default_factory=lambda: defaultdict(int))

    # round index -> puuids whose death was traded / who made a trade kill
    traded_in_round: dict[int, set[str]] = field(default_factory=lambda: defaultdict(set))
    trade_kill_in_round: dict[int, set[str]] = field(default_factory=lambda: defaultdict(set))

    def was_traded(self, round_index: int, puuid: str) -> bool:
        return puuid in self.traded_in_round.get(round_index, ())

    def made_trade(self, round_index: int, puuid: str) -> bool:
        return puuid in self.trade_kill_in_round.get(round_index, ())


def _group_by_round(kills: Iterable[KillEvent]) -> dict[int, list[KillEvent]]:
    """Bucket kills per round, ordered by time (stable for equal times)."""
    by_round: dict[int, list[KillEvent]] = defaultdict(list)
    for kill in kills:
        by_round[kill.round_index].append(kill)
    return {r: sorted(events, key=lambda k: k.time_in_round_ms) for r, events in by_round.items()}


class KillEventProcessor:
    """
    Processes one match's kill feed.

    Only rostered players accrue counts; kills involving anyone else are
    skipped for counting but still occupy their place in the timeline.

    Usage:
        timeline = KillEventProcessor(roster).process(telemetry.kills)
    """

    def __init__(self, roster: Mapping[str, TelemetryPlayer]):
        self.roster = roster

    def _team_of(self, puuid: str) -> str | None:
        player = self.roster.get(puuid)
        return player.team_id if player else None

    def process(self, kills: Iterable[KillEvent]) -> KillTimeline:
        timeline = KillTimeline()
        by_round = _group_by_round(kills)

        for round_index in sorted(by_round):
            events = by_round[round_index]
            self._record_first_kill(timeline, round_index, events[0])
            self._detect_trades(timeline, round_index, events)

        logger.debug(
            f"Kill timeline: {len(timeline.first_kills)} opening kills, "
            f"{len(timeline.trades)} trades"
        )
        return timeline

    def _record_first_kill(self, timeline: KillTimeline, round_index: int, kill: KillEvent) -> None:
        timeline.first_kills[round_index] = FirstKill(
            killer_puuid=kill.killer_puuid,
            victim_puuid=kill.victim_puuid,
            time_ms=kill.time_in_round_ms,
        )
        if kill.killer_puuid in self.roster:
            timeline.first_kill_counts[kill.killer_puuid] += 1
        if kill.victim_puuid in self.roster:
            timeline.first_death_counts[kill.victim_puuid] += 1

    def _detect_trades(
        self, timeline: KillTimeline, round_index: int, events: list[KillEvent]
    ) -> None:
        for kill in events:
            # The killer's own death later in the round, if any
            revenge = next(
                (
                    k
                    for k in events
                    if k.victim_puuid == kill.killer_puuid
                    and k.time_in_round_ms > kill.time_in_round_ms
                ),
                None,
            )
            if revenge is None:
                continue

            victim_team = self._team_of(kill.victim_puuid)
            trader_team = self._team_of(revenge.killer_puuid)
            if victim_team is None or victim_team != trader_team:
                continue

            trade = Trade(
                round_index=round_index,
                victim_puuid=kill.victim_puuid,
                killer_puuid=kill.killer_puuid,
                trader_puuid=revenge.killer_puuid,
                death_time_ms=kill.time_in_round_ms,
                trade_time_ms=revenge.time_in_round_ms,
            )
            timeline.trades.append(trade)
            timeline.traded_counts[trade.victim_puuid] += 1
            timeline.trade_counts[trade.trader_puuid] += 1
            timeline.traded_in_round[round_index].add(trade.victim_puuid)
            timeline.trade_kill_in_round[round_index].add(trade.trader_puuid)


def process_kills(
    kills: Iterable[KillEvent], roster: Mapping[str, TelemetryPlayer]
) -> KillTimeline:
    """Convenience function for one-shot kill processing."""
    return KillEventProcessor(roster).process(kills)
