"""Tests for telemetry validation."""

import json

import pytest

from valstats.core.constants import TeamSide
from valstats.core.errors import DataIntegrityError, ValidationError, ValstatsError
from valstats.core.telemetry import MatchTelemetry, load_telemetry, parse_telemetry


class TestParseTelemetry:
    def test_parses_api_layout(self, raw_match):
        telemetry = parse_telemetry(raw_match)

        assert telemetry.match_id == "match-0001"
        assert telemetry.metadata.map_name == "Ascent"
        assert telemetry.metadata.season_label == "e9a1"
        assert telemetry.metadata.game_length_ms == 2_100_000
        assert len(telemetry.players) == 10
        assert len(telemetry.rounds) == 20
        assert len(telemetry.kills) == 4

        player = telemetry.roster()["red-1"]
        assert player.full_name == "Red1#NA1"
        assert player.agent_name == "Jett"
        assert player.rank_id == 20
        assert player.stats.damage_dealt == 1950

        kill = telemetry.kills[0]
        assert (kill.round_index, kill.time_in_round_ms) == (0, 12_000)
        assert kill.killer_puuid == "blue-1"

        rnd = telemetry.rounds[1]
        assert rnd.winning_team_id == "Red"
        assert rnd.plant_site == "A"
        assert rnd.player_stats[0].team_id == "Red"

    def test_accepts_unwrapped_document(self, raw_match):
        telemetry = parse_telemetry(raw_match["data"])
        assert telemetry.match_id == "match-0001"

    def test_accepts_parsed_model(self, raw_match):
        telemetry = parse_telemetry(raw_match)
        assert parse_telemetry(telemetry) is telemetry

    def test_winning_side(self, raw_match, match_factory):
        assert parse_telemetry(raw_match).winning_side is TeamSide.RED
        draw = match_factory(["Red", "Blue"])
        assert parse_telemetry(draw).winning_side is None

    def test_missing_kills_is_empty(self, raw_match):
        raw_match["data"]["kills"] = None
        assert parse_telemetry(raw_match).kills == ()

    def test_models_are_frozen(self, raw_match):
        telemetry = parse_telemetry(raw_match)
        with pytest.raises(Exception):
            telemetry.metadata.match_id = "other"


class TestValidationErrors:
    @pytest.mark.parametrize("section", ["players", "rounds", "teams", "metadata"])
    def test_missing_section(self, raw_match, section):
        del raw_match["data"][section]
        with pytest.raises(ValidationError) as excinfo:
            parse_telemetry(raw_match)
        assert excinfo.value.errors

    @pytest.mark.parametrize("section", ["players", "rounds"])
    def test_empty_section(self, raw_match, section):
        raw_match["data"][section] = []
        with pytest.raises(ValidationError):
            parse_telemetry(raw_match)

    def test_malformed_kill(self, raw_match):
        raw_match["data"]["kills"][0]["time_in_round_in_ms"] = "soon"
        with pytest.raises(ValidationError):
            parse_telemetry(raw_match)

    def test_not_a_mapping(self):
        with pytest.raises(ValidationError):
            parse_telemetry(["not", "a", "match"])

    def test_validation_error_is_value_error(self, raw_match):
        del raw_match["data"]["players"]
        with pytest.raises(ValueError):
            parse_telemetry(raw_match)

    def test_single_team(self, raw_match):
        raw_match["data"]["teams"] = raw_match["data"]["teams"][:1]
        with pytest.raises(ValidationError):
            parse_telemetry(raw_match)


class TestDataIntegrity:
    def test_unknown_team_in_teams_block(self, raw_match):
        raw_match["data"]["teams"][1]["team_id"] = "Green"
        with pytest.raises(DataIntegrityError):
            parse_telemetry(raw_match)

    def test_unknown_player_team(self, raw_match):
        raw_match["data"]["players"][3]["team_id"] = "Neutral"
        with pytest.raises(DataIntegrityError, match="red-4"):
            parse_telemetry(raw_match)

    def test_unknown_round_winner(self, raw_match):
        raw_match["data"]["rounds"][5]["winning_team"] = "Purple"
        with pytest.raises(DataIntegrityError):
            parse_telemetry(raw_match)

    def test_common_base_class(self, raw_match):
        raw_match["data"]["teams"][0]["team_id"] = "Green"
        with pytest.raises(ValstatsError):
            parse_telemetry(raw_match)


def test_load_telemetry(tmp_path, raw_match):
    path = tmp_path / "match.json"
    path.write_text(json.dumps(raw_match))

    assert isinstance(parse_telemetry(load_telemetry(path)), MatchTelemetry)
