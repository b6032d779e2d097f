"""
Match telemetry input model.

Validates one completed match as delivered by the public match API
(``{"data": {"metadata": ..., "players": ..., "rounds": ..., "kills": ...}}``)
into immutable pydantic models with flat, snake_case fields. Every model
also accepts its own field names, so fixtures can be written either way.

Missing or malformed sections raise ``ValidationError``; a team id other
than Red/Blue raises ``DataIntegrityError``.
"""

import json
import logging
from pathlib import Path
from typing import Any

import pydantic
from pydantic import BaseModel, ConfigDict, Field, model_validator

from valstats.core.constants import VALID_TEAM_IDS, TeamSide
from valstats.core.errors import DataIntegrityError, ValidationError

logger = logging.getLogger(__name__)


def _dig(data: dict, *path: str) -> Any:
    """Follow nested keys, returning None when any level is absent."""
    current: Any = data
    for key in path:
        if not isinstance(current, dict):
            return None
        current = current.get(key)
    return current


def _lift(data: Any, mapping: dict[str, tuple[str, ...]]) -> Any:
    """Copy nested raw values onto flat field names unless already present."""
    if not isinstance(data, dict):
        return data
    flat = dict(data)
    for field_name, path in mapping.items():
        if field_name in flat:
            continue
        value = _dig(data, *path)
        if value is not None:
            flat[field_name] = value
    return flat


class TelemetryModel(BaseModel):
    """Base for all telemetry models: immutable, unknown keys ignored."""

    model_config = ConfigDict(frozen=True, extra="ignore")


class MatchMetadata(TelemetryModel):
    match_id: str = Field(min_length=1)
    map_name: str = "Unknown"
    started_at: str | None = None
    cluster: str | None = None
    queue_name: str | None = None
    game_length_ms: int = 0
    season_label: str | None = None
    patch_version: str | None = None

    @model_validator(mode="before")
    @classmethod
    def _from_raw(cls, data: Any) -> Any:
        return _lift(
            data,
            {
                "map_name": ("map", "name"),
                "queue_name": ("queue", "name"),
                "game_length_ms": ("game_length_in_ms",),
                "season_label": ("season", "short"),
                "patch_version": ("game_version",),
            },
        )


class TeamInfo(TelemetryModel):
    team_id: str
    won: bool = False
    rounds_won: int = Field(default=0, ge=0)

    @model_validator(mode="before")
    @classmethod
    def _from_raw(cls, data: Any) -> Any:
        return _lift(data, {"rounds_won": ("rounds", "won")})


class PlayerMatchTotals(TelemetryModel):
    """Whole-match scoreboard numbers for one player."""

    score: int = 0
    kills: int = 0
    deaths: int = 0
    assists: int = 0
    damage_dealt: int = 0
    damage_received: int = 0
    headshots: int = 0
    bodyshots: int = 0
    legshots: int = 0

    @model_validator(mode="before")
    @classmethod
    def _from_raw(cls, data: Any) -> Any:
        return _lift(
            data,
            {"damage_dealt": ("damage", "dealt"), "damage_received": ("damage", "received")},
        )


class TelemetryPlayer(TelemetryModel):
    puuid: str = Field(min_length=1)
    display_name: str
    tag: str = ""
    team_id: str
    agent_name: str
    rank_id: int | None = None
    stats: PlayerMatchTotals = Field(default_factory=PlayerMatchTotals)

    @model_validator(mode="before")
    @classmethod
    def _from_raw(cls, data: Any) -> Any:
        return _lift(
            data,
            {
                "display_name": ("name",),
                "agent_name": ("agent", "name"),
                "rank_id": ("tier", "id"),
            },
        )

    @property
    def full_name(self) -> str:
        return f"{self.display_name}#{self.tag}"


class RoundPlayerStats(TelemetryModel):
    puuid: str
    team_id: str | None = None
    kills: int = 0
    deaths: int = 0
    assists: int = 0

    @model_validator(mode="before")
    @classmethod
    def _from_raw(cls, data: Any) -> Any:
        return _lift(
            data,
            {
                "puuid": ("player", "puuid"),
                "team_id": ("player", "team"),
                "kills": ("stats", "kills"),
                "deaths": ("stats", "deaths"),
                "assists": ("stats", "assists"),
            },
        )


class TelemetryRound(TelemetryModel):
    winning_team_id: str | None = None
    result: str | None = None
    plant_site: str | None = None
    ceremony: str | None = None
    player_stats: tuple[RoundPlayerStats, ...] = ()

    @model_validator(mode="before")
    @classmethod
    def _from_raw(cls, data: Any) -> Any:
        flat = _lift(data, {"winning_team_id": ("winning_team",), "plant_site": ("plant", "site")})
        if isinstance(flat, dict) and "player_stats" not in flat and "stats" in flat:
            flat["player_stats"] = flat.pop("stats") or ()
        return flat


class KillEvent(TelemetryModel):
    round_index: int = Field(ge=0)
    time_in_round_ms: int = Field(ge=0)
    killer_puuid: str
    victim_puuid: str

    @model_validator(mode="before")
    @classmethod
    def _from_raw(cls, data: Any) -> Any:
        return _lift(
            data,
            {
                "round_index": ("round",),
                "time_in_round_ms": ("time_in_round_in_ms",),
                "killer_puuid": ("killer", "puuid"),
                "victim_puuid": ("victim", "puuid"),
            },
        )


class MatchTelemetry(TelemetryModel):
    """One completed match: metadata, two teams, roster, rounds and kills."""

    metadata: MatchMetadata
    teams: tuple[TeamInfo, ...] = Field(min_length=1)
    players: tuple[TelemetryPlayer, ...] = Field(min_length=1)
    rounds: tuple[TelemetryRound, ...] = Field(min_length=1)
    kills: tuple[KillEvent, ...] = ()

    @model_validator(mode="before")
    @classmethod
    def _unwrap(cls, data: Any) -> Any:
        # API responses wrap the match in {"status": ..., "data": {...}}
        if isinstance(data, dict) and "metadata" not in data and isinstance(data.get("data"), dict):
            data = data["data"]
        if isinstance(data, dict) and data.get("kills") is None:
            data = {**data, "kills": ()}
        return data

    @property
    def match_id(self) -> str:
        return self.metadata.match_id

    def team(self, side: TeamSide) -> TeamInfo:
        return next(t for t in self.teams if t.team_id == side.value)

    @property
    def winning_side(self) -> TeamSide | None:
        """The colour that won the match, or None for a draw."""
        for team in self.teams:
            if team.won:
                return TeamSide(team.team_id)
        return None

    def roster(self) -> dict[str, TelemetryPlayer]:
        return {p.puuid: p for p in self.players}


def _check_team_ids(telemetry: MatchTelemetry) -> None:
    """Reject any team id that is neither Red nor Blue."""
    seen = [team.team_id for team in telemetry.teams]
    for team_id in seen:
        if team_id not in VALID_TEAM_IDS:
            raise DataIntegrityError(f"Unknown team id in teams block: {team_id!r}")
    if sorted(seen) != sorted(VALID_TEAM_IDS):
        raise ValidationError(f"Expected exactly one Red and one Blue team, got {seen}")

    for player in telemetry.players:
        if player.team_id not in VALID_TEAM_IDS:
            raise DataIntegrityError(
                f"Player {player.puuid} has unknown team id {player.team_id!r}"
            )

    for index, rnd in enumerate(telemetry.rounds):
        if rnd.winning_team_id is not None and rnd.winning_team_id not in VALID_TEAM_IDS:
            raise DataIntegrityError(
                f"Round {index} has unknown winning team {rnd.winning_team_id!r}"
            )


def parse_telemetry(raw: dict[str, Any] | MatchTelemetry) -> MatchTelemetry:
    """
    Validate raw match telemetry.

    Args:
        raw: API document (wrapped in ``data`` or not) or an already parsed model

    Returns:
        Immutable MatchTelemetry

    Raises:
        ValidationError: required sections missing or malformed
        DataIntegrityError: a team id other than Red/Blue
    """
    if isinstance(raw, MatchTelemetry):
        telemetry = raw
    else:
        if not isinstance(raw, dict):
            raise ValidationError(f"Telemetry must be a mapping, got {type(raw).__name__}")
        try:
            telemetry = MatchTelemetry.model_validate(raw)
        except pydantic.ValidationError as e:
            raise ValidationError(
                f"Malformed match telemetry: {e.error_count()} error(s)",
                errors=e.errors(include_url=False),
            ) from e

    _check_team_ids(telemetry)
    logger.debug(
        f"Parsed match {telemetry.match_id}: {len(telemetry.players)} players, "
        f"{len(telemetry.rounds)} rounds, {len(telemetry.kills)} kills"
    )
    return telemetry


def load_telemetry(path: Path | str) -> dict[str, Any]:
    """Read a raw telemetry JSON document from disk."""
    with open(path, encoding="utf-8") as f:
        return json.load(f)
