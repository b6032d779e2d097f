"""
Data Models for Match Summaries

Immutable value types produced by the match summarizer and persisted by
the store:
- MatchStatRecord: one player's statistics for one match
- TeamRoundBreakdown / TeamResult: team-level round wins by side
- RoundSummary: per-round outcome with opening kill
- MatchSummary / MatchOverview: detailed and basic match documents
- StoredMatch: a summary as held by the store, keyed by season
"""

from dataclasses import asdict, dataclass, field, fields
from datetime import datetime
from typing import Any

from valstats.core.constants import Pick, TeamSlot


@dataclass(frozen=True)
class MatchStatRecord:
    """Per-player, per-match statistics. Immutable once produced."""

    name: str
    puuid: str
    rank: int | None
    team: TeamSlot
    agent: str
    acs: int
    kills: int
    deaths: int
    assists: int
    kda_diff: int
    kast: int
    hs_percentage: int
    first_bloods: int
    first_deaths: int
    fkfd_diff: int
    trades: int
    traded: int
    adr: int
    damage_delta: int
    attack_rounds: int
    defense_rounds: int
    rounds_won: int
    rounds_lost: int
    match_won: bool

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["team"] = str(self.team)
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "MatchStatRecord":
        names = {f.name for f in fields(cls)}
        values = {k: v for k, v in data.items() if k in names}
        values["team"] = TeamSlot(values["team"])
        return cls(**values)


@dataclass(frozen=True)
class TeamRoundBreakdown:
    """Rounds won by a team, split by side."""

    attack: int = 0  # regulation rounds won on attack
    defense: int = 0  # regulation rounds won on defense
    total: int = 0
    overtime: int = 0


@dataclass(frozen=True)
class PlayerRef:
    puuid: str
    name: str
    rank: int | None = None


@dataclass(frozen=True)
class RoundSummary:
    round_number: int  # 1-based
    winning_team: TeamSlot | None
    attacking_team: TeamSlot
    result: str | None
    site: str | None
    first_kill: PlayerRef | None
    first_death: PlayerRef | None
    ceremony: str | None
    is_overtime: bool


@dataclass(frozen=True)
class TeamResult:
    team_id: TeamSlot
    won: bool
    pick: Pick
    rounds: TeamRoundBreakdown
    players: tuple[MatchStatRecord, ...] = ()


@dataclass(frozen=True)
class MatchSummary:
    """Detailed match document: teams with player records and round log."""

    match_id: str
    map: str
    start_time: str | None
    game_server: str | None
    game_mode: str | None
    game_duration_ms: int
    season: str | None
    patch: str | None
    teams: tuple[TeamResult, TeamResult]
    rounds: tuple[RoundSummary, ...] = ()

    @property
    def records(self) -> list[MatchStatRecord]:
        """Every player record of both teams, Team1 first."""
        return [player for team in self.teams for player in team.players]

    def team(self, slot: TeamSlot) -> TeamResult:
        return next(t for t in self.teams if t.team_id == slot)

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["teams"] = [
            {**team_dict, "players": [p.to_dict() for p in team.players]}
            for team_dict, team in zip(data["teams"], self.teams)
        ]
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "MatchSummary":
        teams = tuple(
            TeamResult(
                team_id=TeamSlot(t["team_id"]),
                won=t["won"],
                pick=Pick(t["pick"]),
                rounds=TeamRoundBreakdown(**t["rounds"]),
                players=tuple(MatchStatRecord.from_dict(p) for p in t["players"]),
            )
            for t in data["teams"]
        )
        rounds = tuple(_round_from_dict(r) for r in data.get("rounds", []))
        return cls(
            match_id=data["match_id"],
            map=data["map"],
            start_time=data.get("start_time"),
            game_server=data.get("game_server"),
            game_mode=data.get("game_mode"),
            game_duration_ms=data.get("game_duration_ms", 0),
            season=data.get("season"),
            patch=data.get("patch"),
            teams=teams,  # type: ignore[arg-type]
            rounds=rounds,
        )


def _round_from_dict(data: dict[str, Any]) -> RoundSummary:
    def ref(value: dict | None) -> PlayerRef | None:
        return PlayerRef(**value) if value else None

    winner = data.get("winning_team")
    return RoundSummary(
        round_number=data["round_number"],
        winning_team=TeamSlot(winner) if winner else None,
        attacking_team=TeamSlot(data["attacking_team"]),
        result=data.get("result"),
        site=data.get("site"),
        first_kill=ref(data.get("first_kill")),
        first_death=ref(data.get("first_death")),
        ceremony=data.get("ceremony"),
        is_overtime=data.get("is_overtime", False),
    )


# =============================================================================
# Basic overview (scoreboard header)
# =============================================================================


@dataclass(frozen=True)
class PlayerOverview:
    name: str
    puuid: str
    agent: str


@dataclass(frozen=True)
class TeamOverview:
    team_id: TeamSlot
    has_won: bool
    pick: Pick
    rounds_won: int
    players: tuple[PlayerOverview, ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class MatchOverview:
    """Basic match document for listings."""

    match_id: str
    map: str
    game_start: str | None
    game_server: str | None
    teams: tuple[TeamOverview, TeamOverview]

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class StoredMatch:
    """A match as persisted: enough to reverse it without telemetry."""

    match_id: str
    season_id: str
    summary: MatchSummary
    overview: dict[str, Any] | None
    created_at: datetime | None

    @property
    def records(self) -> list[MatchStatRecord]:
        return self.summary.records
