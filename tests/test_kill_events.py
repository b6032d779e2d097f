"""Tests for kill timeline processing: opening kills and trades."""

import pytest

from valstats.core.telemetry import KillEvent, TelemetryPlayer
from valstats.domains.combat import KillEventProcessor, process_kills


def _player(puuid, team):
    return TelemetryPlayer(puuid=puuid, display_name=puuid, team_id=team, agent_name="Jett")


def _kill(round_index, time_ms, killer, victim):
    return KillEvent(
        round_index=round_index, time_in_round_ms=time_ms, killer_puuid=killer, victim_puuid=victim
    )


@pytest.fixture
def roster():
    players = [
        _player("r1", "Red"),
        _player("r2", "Red"),
        _player("r3", "Red"),
        _player("b1", "Blue"),
        _player("b2", "Blue"),
    ]
    return {p.puuid: p for p in players}


class TestFirstKills:
    """Opening kill per round."""

    def test_earliest_kill_is_first_blood(self, roster):
        kills = [_kill(0, 5000, "r1", "b1"), _kill(0, 2000, "b2", "r2")]
        timeline = process_kills(kills, roster)

        first = timeline.first_kills[0]
        assert first.killer_puuid == "b2"
        assert first.victim_puuid == "r2"
        assert timeline.first_kill_counts["b2"] == 1
        assert timeline.first_death_counts["r2"] == 1
        assert timeline.first_kill_counts.get("r1", 0) == 0

    def test_tie_goes_to_first_reported_event(self, roster):
        kills = [_kill(0, 3000, "r1", "b1"), _kill(0, 3000, "b2", "r2")]
        timeline = process_kills(kills, roster)

        assert timeline.first_kills[0].killer_puuid == "r1"

    def test_one_opening_kill_per_round(self, roster):
        kills = [
            _kill(0, 1000, "r1", "b1"),
            _kill(1, 1500, "b1", "r1"),
            _kill(1, 900, "b2", "r3"),
            _kill(3, 4000, "r2", "b2"),
        ]
        timeline = process_kills(kills, roster)

        assert sorted(timeline.first_kills) == [0, 1, 3]
        assert timeline.first_kills[1].killer_puuid == "b2"
        assert sum(timeline.first_kill_counts.values()) == 3
        assert sum(timeline.first_death_counts.values()) == 3

    def test_unrostered_players_not_counted(self, roster):
        timeline = process_kills([_kill(0, 100, "ghost", "r1")], roster)

        assert timeline.first_kills[0].killer_puuid == "ghost"
        assert "ghost" not in timeline.first_kill_counts
        assert timeline.first_death_counts["r1"] == 1

    def test_no_kills(self, roster):
        timeline = process_kills([], roster)
        assert timeline.first_kills == {}
        assert timeline.trades == []


class TestTradeDetection:
    """A teammate of the victim kills the killer later in the round."""

    def test_detects_trade(self, roster):
        kills = [_kill(0, 10_000, "b1", "r1"), _kill(0, 12_000, "r2", "b1")]
        timeline = KillEventProcessor(roster).process(kills)

        assert len(timeline.trades) == 1
        trade = timeline.trades[0]
        assert trade.victim_puuid == "r1"
        assert trade.killer_puuid == "b1"
        assert trade.trader_puuid == "r2"
        assert trade.time_delta_ms == 2000

    def test_trade_symmetry(self, roster):
        """Victim's traded count and trader's trades count move together."""
        kills = [_kill(0, 10_000, "b1", "r1"), _kill(0, 12_000, "r2", "b1")]
        timeline = process_kills(kills, roster)

        assert timeline.traded_counts["r1"] == 1
        assert timeline.trade_counts["r2"] == 1
        assert sum(timeline.traded_counts.values()) == sum(timeline.trade_counts.values())
        assert timeline.was_traded(0, "r1")
        assert timeline.made_trade(0, "r2")
        assert not timeline.was_traded(0, "r2")
        assert not timeline.made_trade(1, "r2")

    def test_trade_window_is_whole_round(self, roster):
        kills = [_kill(0, 1_000, "b1", "r1"), _kill(0, 95_000, "r3", "b1")]
        timeline = process_kills(kills, roster)
        assert timeline.traded_counts["r1"] == 1

    def test_killer_dying_to_own_team_is_not_a_trade(self, roster):
        kills = [_kill(0, 1_000, "b1", "r1"), _kill(0, 2_000, "b2", "b1")]
        timeline = process_kills(kills, roster)
        assert timeline.trades == []

    def test_earlier_death_is_not_a_trade(self, roster):
        kills = [_kill(0, 5_000, "r2", "b1"), _kill(0, 5_000, "b1", "r1")]
        timeline = process_kills(kills, roster)
        assert timeline.trades == []

    def test_trade_must_be_same_round(self, roster):
        kills = [_kill(0, 5_000, "b1", "r1"), _kill(1, 6_000, "r2", "b1")]
        timeline = process_kills(kills, roster)
        assert timeline.trades == []

    def test_unrostered_trader_ignored(self, roster):
        kills = [_kill(0, 5_000, "b1", "r1"), _kill(0, 6_000, "ghost", "b1")]
        timeline = process_kills(kills, roster)
        assert timeline.trades == []
        assert timeline.traded_counts.get("r1", 0) == 0

    def test_only_first_revenge_counts(self, roster):
        """The killer can only die once; later events naming them are ignored."""
        kills = [
            _kill(0, 1_000, "b1", "r1"),
            _kill(0, 2_000, "r2", "b1"),
            _kill(0, 3_000, "r3", "b1"),
        ]
        timeline = process_kills(kills, roster)

        assert len(timeline.trades) == 1
        assert timeline.trade_counts["r2"] == 1
        assert timeline.trade_counts.get("r3", 0) == 0

    def test_chain_of_trades(self, roster):
        kills = [
            _kill(0, 1_000, "b1", "r1"),
            _kill(0, 2_000, "r2", "b1"),
            _kill(0, 3_000, "b2", "r2"),
        ]
        timeline = process_kills(kills, roster)

        # r1 avenged by r2, then b1 avenged by b2
        assert len(timeline.trades) == 2
        assert timeline.traded_counts["r1"] == 1
        assert timeline.traded_counts["b1"] == 1
        assert timeline.trade_counts["r2"] == 1
        assert timeline.trade_counts["b2"] == 1
        assert timeline.traded_counts.get("r2", 0) == 0
