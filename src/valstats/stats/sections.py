"""
Aggregate statistics value types.

A StatsSection is one aggregate scope (career, one season, or one agent
within either). Sections are frozen; the ledger produces new sections
rather than editing stored ones.
"""

from dataclasses import dataclass, field, fields, replace
from datetime import UTC, datetime
from typing import Any

from valstats.core.utils import safe_divide

# StatsSection field -> MatchStatRecord field, summed per match
TOTAL_FIELDS: dict[str, str] = {
    "total_kills": "kills",
    "total_deaths": "deaths",
    "total_assists": "assists",
    "total_kda_diff": "kda_diff",
    "total_first_bloods": "first_bloods",
    "total_first_deaths": "first_deaths",
    "total_fkfd_diff": "fkfd_diff",
    "total_trades": "trades",
    "total_traded": "traded",
    "total_attack_rounds": "attack_rounds",
    "total_defense_rounds": "defense_rounds",
}

# Difference totals may legitimately be negative
SIGNED_TOTALS = frozenset({"total_kda_diff", "total_fkfd_diff"})

# StatsSection field -> MatchStatRecord field, running mean per game
AVERAGE_FIELDS: dict[str, str] = {
    "avg_acs": "acs",
    "avg_hs_percentage": "hs_percentage",
    "avg_damage_delta": "damage_delta",
    "avg_kast": "kast",
    "avg_adr": "adr",
}


def utc_now() -> datetime:
    """Return current UTC time (timezone-aware)."""
    return datetime.now(UTC)


@dataclass(frozen=True)
class Tally:
    """Won/lost counter with a derived win percentage."""

    won: int = 0
    lost: int = 0
    pct: float = 0.0

    @property
    def played(self) -> int:
        return self.won + self.lost

    @classmethod
    def of(cls, won: int, lost: int) -> "Tally":
        return cls(won=won, lost=lost, pct=safe_divide(won, won + lost) * 100)

    def to_dict(self) -> dict[str, Any]:
        return {"won": self.won, "lost": self.lost, "pct": self.pct}


@dataclass(frozen=True)
class StatsSection:
    """Cumulative and averaged statistics for one scope."""

    games: Tally = field(default_factory=Tally)
    rounds: Tally = field(default_factory=Tally)

    # Totaled stats
    total_kills: int = 0
    total_deaths: int = 0
    total_assists: int = 0
    total_kda_diff: int = 0
    total_first_bloods: int = 0
    total_first_deaths: int = 0
    total_fkfd_diff: int = 0
    total_trades: int = 0
    total_traded: int = 0
    total_attack_rounds: int = 0
    total_defense_rounds: int = 0

    # Averaged stats (per game)
    avg_acs: float = 0.0
    avg_hs_percentage: float = 0.0
    avg_damage_delta: float = 0.0
    avg_kast: float = 0.0
    avg_adr: float = 0.0

    # Agent breakdown, one level deep; never mutated in place
    agents: dict[str, "StatsSection"] = field(default_factory=dict)

    @property
    def games_played(self) -> int:
        return self.games.played

    @property
    def is_empty(self) -> bool:
        return self.games.played == 0

    def agent(self, name: str) -> "StatsSection | None":
        return self.agents.get(name)

    def with_agent(self, name: str, section: "StatsSection") -> "StatsSection":
        """Copy with ``agents[name]`` inserted or replaced."""
        return replace(self, agents={**self.agents, name: section})

    def without_agent(self, name: str) -> "StatsSection":
        """Copy with ``agents[name]`` removed."""
        return replace(self, agents={k: v for k, v in self.agents.items() if k != name})

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"games": self.games.to_dict(), "rounds": self.rounds.to_dict()}
        for name in (*TOTAL_FIELDS, *AVERAGE_FIELDS):
            data[name] = getattr(self, name)
        data["agents"] = {name: section.to_dict() for name, section in self.agents.items()}
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "StatsSection":
        known = {f.name for f in fields(cls)}
        values = {k: v for k, v in data.items() if k in known and k not in ("games", "rounds", "agents")}
        return cls(
            games=Tally(**data.get("games", {})),
            rounds=Tally(**data.get("rounds", {})),
            agents={name: cls.from_dict(s) for name, s in (data.get("agents") or {}).items()},
            **values,
        )


@dataclass(frozen=True)
class PlayerProfile:
    """Long-lived aggregate for one player."""

    puuid: str
    current_name: str
    overall_stats: StatsSection = field(default_factory=StatsSection)
    season_stats: dict[str, StatsSection] = field(default_factory=dict)
    last_updated: datetime = field(default_factory=utc_now)

    # Store revision, bumped on every successful write
    version: int = 0

    def season(self, season_id: str) -> StatsSection | None:
        return self.season_stats.get(season_id)

    def to_dict(self) -> dict[str, Any]:
        return {
            "puuid": self.puuid,
            "current_name": self.current_name,
            "overall_stats": self.overall_stats.to_dict(),
            "season_stats": {sid: s.to_dict() for sid, s in self.season_stats.items()},
            "last_updated": self.last_updated.isoformat(),
            "version": self.version,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "PlayerProfile":
        last_updated = data.get("last_updated")
        return cls(
            puuid=data["puuid"],
            current_name=data.get("current_name", ""),
            overall_stats=StatsSection.from_dict(data.get("overall_stats", {})),
            season_stats={
                sid: StatsSection.from_dict(s) for sid, s in (data.get("season_stats") or {}).items()
            },
            last_updated=datetime.fromisoformat(last_updated) if last_updated else utc_now(),
            version=data.get("version", 0),
        )
