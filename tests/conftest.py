"""Shared fixtures: synthetic match telemetry in the public API layout."""

import os

import pytest

from valstats.core.config import reset_config

RED = [f"red-{i}" for i in range(1, 6)]
BLUE = [f"blue-{i}" for i in range(1, 6)]
AGENTS = ["Jett", "Sova", "Omen", "Killjoy", "Skye"]

DEFAULT_PLAYER_STATS = {
    "score": 2600,
    "kills": 10,
    "deaths": 8,
    "assists": 3,
    "headshots": 10,
    "bodyshots": 25,
    "legshots": 5,
    "damage": {"dealt": 1950, "received": 1700},
}


def build_match(
    winners,
    kills=(),
    players=None,
    player_stats=None,
    round_stats=None,
    match_id="match-0001",
    map_name="Ascent",
):
    """
    Build a raw match document.

    Args:
        winners: Winning team id ("Red"/"Blue") per round
        kills: (round, time_ms, killer, victim) tuples
        players: (puuid, team_id) pairs, defaults to five per team
        player_stats: puuid -> overrides for the whole-match stats block
        round_stats: round -> puuid -> (kills, deaths, assists); otherwise
            derived from ``kills``
    """
    if players is None:
        players = [(p, "Red") for p in RED] + [(p, "Blue") for p in BLUE]
    player_stats = player_stats or {}
    round_stats = round_stats or {}

    red_wins = sum(1 for w in winners if w == "Red")
    blue_wins = sum(1 for w in winners if w == "Blue")

    raw_players = []
    for index, (puuid, team) in enumerate(players):
        stats = {**DEFAULT_PLAYER_STATS, **player_stats.get(puuid, {})}
        raw_players.append(
            {
                "puuid": puuid,
                "name": puuid.replace("-", "").title(),
                "tag": "NA1",
                "team_id": team,
                "agent": {"id": f"agent-{index % 5}", "name": AGENTS[index % 5]},
                "tier": {"id": 20, "name": "Diamond 3"},
                "stats": stats,
            }
        )

    raw_rounds = []
    for index, winner in enumerate(winners):
        round_kills = [k for k in kills if k[0] == index]
        stats = []
        for puuid, team in players:
            override = round_stats.get(index, {}).get(puuid)
            if override is not None:
                k, d, a = override
            else:
                k = sum(1 for kill in round_kills if kill[2] == puuid)
                d = sum(1 for kill in round_kills if kill[3] == puuid)
                a = 0
            stats.append(
                {
                    "player": {"puuid": puuid, "name": puuid, "tag": "NA1", "team": team},
                    "stats": {"score": 200, "kills": k, "deaths": d, "assists": a},
                }
            )
        raw_rounds.append(
            {
                "winning_team": winner,
                "result": "Elimination",
                "ceremony": "CeremonyDefault",
                "plant": {"site": "A"} if index % 2 else None,
                "stats": stats,
            }
        )

    return {
        "status": 200,
        "data": {
            "metadata": {
                "match_id": match_id,
                "map": {"id": "map-1", "name": map_name},
                "game_version": "release-09.01",
                "game_length_in_ms": 2_100_000,
                "started_at": "2024-06-01T18:00:00.000Z",
                "queue": {"id": "custom", "name": "Custom"},
                "season": {"id": "s-1", "short": "e9a1"},
                "cluster": "Frankfurt",
            },
            "players": raw_players,
            "teams": [
                {
                    "team_id": "Red",
                    "won": red_wins > blue_wins,
                    "rounds": {"won": red_wins, "lost": blue_wins},
                },
                {
                    "team_id": "Blue",
                    "won": blue_wins > red_wins,
                    "rounds": {"won": blue_wins, "lost": red_wins},
                },
            ],
            "rounds": raw_rounds,
            "kills": [
                {
                    "round": r,
                    "time_in_round_in_ms": t,
                    "killer": {"puuid": killer, "name": killer, "tag": "NA1", "team": "x"},
                    "victim": {"puuid": victim, "name": victim, "tag": "NA1", "team": "x"},
                    "weapon": {"name": "Vandal"},
                }
                for r, t, killer, victim in kills
            ],
        },
    }


def standard_match(match_id="match-0001"):
    """13-7 Red win with a first kill and one trade in round 0."""
    winners = ["Red"] * 8 + ["Blue"] * 7 + ["Red"] * 5
    kills = [
        (0, 12_000, "blue-1", "red-1"),
        (0, 14_500, "red-2", "blue-1"),
        (1, 30_000, "red-3", "blue-2"),
        (2, 8_000, "blue-3", "red-4"),
    ]
    return build_match(winners, kills=kills, match_id=match_id)


@pytest.fixture
def match_factory():
    return build_match


@pytest.fixture
def raw_match():
    return standard_match()


@pytest.fixture(autouse=True)
def _fresh_config(monkeypatch, tmp_path):
    """Each test starts from default config, untouched by host files or env."""
    for key in list(os.environ):
        if key.startswith("VALSTATS_"):
            monkeypatch.delenv(key, raising=False)
    monkeypatch.setenv("HOME", str(tmp_path / "home"))
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "home" / ".config"))
    monkeypatch.chdir(tmp_path)
    reset_config()
    yield
    reset_config()


@pytest.fixture
def standard_match_factory():
    return standard_match
