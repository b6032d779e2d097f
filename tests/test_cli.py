"""Tests for the valstats command line interface."""

import json
import logging

import pytest
from typer.testing import CliRunner

from valstats import __version__
from valstats.cli import app
from valstats.infra.database import DatabaseManager

runner = CliRunner()


@pytest.fixture(autouse=True)
def _drop_cli_log_handlers():
    """The CLI installs root handlers bound to the runner's streams."""
    yield
    root = logging.getLogger()
    for handler in list(root.handlers):
        if getattr(handler, "_valstats", False):
            root.removeHandler(handler)


@pytest.fixture
def match_file(tmp_path, raw_match):
    path = tmp_path / "match.json"
    path.write_text(json.dumps(raw_match))
    return path


@pytest.fixture
def db_path(tmp_path):
    return tmp_path / "cli.db"


def test_version():
    result = runner.invoke(app, ["--version"])
    assert result.exit_code == 0
    assert __version__ in result.output


class TestSummarize:
    def test_summarize_and_export(self, tmp_path, match_file):
        output = tmp_path / "summary.json"
        result = runner.invoke(app, ["summarize", str(match_file), "--output", str(output)])

        assert result.exit_code == 0, result.output
        assert "Player Statistics" in result.output
        assert json.loads(output.read_text())["match_id"] == "match-0001"

    def test_team1_defending(self, tmp_path, match_file):
        output = tmp_path / "summary.csv"
        result = runner.invoke(
            app, ["summarize", str(match_file), "--team1-defending", "-o", str(output)]
        )

        assert result.exit_code == 0, result.output
        lines = output.read_text().splitlines()
        red1 = next(line for line in lines if ",red-1," in line)
        assert ",Team2," in red1

    def test_invalid_telemetry(self, tmp_path, raw_match):
        del raw_match["data"]["players"]
        path = tmp_path / "broken.json"
        path.write_text(json.dumps(raw_match))

        result = runner.invoke(app, ["summarize", str(path)])
        assert result.exit_code == 1
        assert "Error summarizing match" in result.output

    def test_bad_output_format(self, tmp_path, match_file):
        result = runner.invoke(
            app, ["summarize", str(match_file), "-o", str(tmp_path / "summary.txt")]
        )
        assert result.exit_code == 1
        assert "Export failed" in result.output


class TestMatchCommands:
    def test_add_profile_remove(self, match_file, db_path):
        result = runner.invoke(app, ["add", str(match_file), "--season", "e9a1", "--db", str(db_path)])
        assert result.exit_code == 0, result.output
        assert "Match successfully added" in result.output

        result = runner.invoke(app, ["profile", "red-1", "--db", str(db_path)])
        assert result.exit_code == 0, result.output
        assert "Red1#NA1" in result.output
        assert "Career" in result.output
        assert "Season e9a1" in result.output

        result = runner.invoke(app, ["remove", "match-0001", "--db", str(db_path)])
        assert result.exit_code == 0, result.output
        assert "Match successfully removed" in result.output

        db = DatabaseManager(db_path)
        try:
            assert not db.match_exists("match-0001")
            assert db.get_player_profile("red-1").overall_stats.games_played == 0
        finally:
            db.close()

    def test_add_duplicate_fails(self, match_file, db_path):
        args = ["add", str(match_file), "--season", "e9a1", "--db", str(db_path)]
        runner.invoke(app, args)
        result = runner.invoke(app, args)

        assert result.exit_code == 1
        assert "already exists" in result.output

    def test_add_uses_current_season(self, match_file, db_path, monkeypatch):
        monkeypatch.setenv("VALSTATS_CURRENT_SEASON", "e9a3")
        result = runner.invoke(app, ["add", str(match_file), "--db", str(db_path)])
        assert result.exit_code == 0, result.output

        db = DatabaseManager(db_path)
        try:
            assert db.get_match_record("match-0001").season_id == "e9a3"
        finally:
            db.close()

    def test_add_without_season(self, match_file, db_path):
        result = runner.invoke(app, ["add", str(match_file), "--db", str(db_path)])
        assert result.exit_code == 1
        assert "no season" in result.output

    def test_remove_unknown(self, db_path):
        result = runner.invoke(app, ["remove", "missing", "--db", str(db_path)])
        assert result.exit_code == 1
        assert "does not exist" in result.output

    def test_profile_unknown(self, db_path):
        result = runner.invoke(app, ["profile", "nobody", "--db", str(db_path)])
        assert result.exit_code == 1

    def test_profile_unknown_season(self, match_file, db_path):
        runner.invoke(app, ["add", str(match_file), "--season", "e9a1", "--db", str(db_path)])
        result = runner.invoke(app, ["profile", "red-1", "--season", "e1a1", "--db", str(db_path)])
        assert result.exit_code == 1


class TestInitConfig:
    def test_writes_default_config(self, tmp_path):
        path = tmp_path / "valstats.yaml"
        result = runner.invoke(app, ["init-config", str(path)])

        assert result.exit_code == 0, result.output
        assert "regulation_rounds: 24" in path.read_text()

    def test_refuses_to_overwrite(self, tmp_path):
        path = tmp_path / "valstats.yaml"
        path.write_text("pipeline: {}\n")

        assert runner.invoke(app, ["init-config", str(path)]).exit_code == 1
        assert runner.invoke(app, ["init-config", str(path), "--force"]).exit_code == 0

    def test_config_option(self, tmp_path, match_file, db_path):
        config_path = tmp_path / "custom.yaml"
        config_path.write_text("pipeline:\n  current_season: e9a2\n")

        result = runner.invoke(
            app, ["--config", str(config_path), "add", str(match_file), "--db", str(db_path)]
        )
        assert result.exit_code == 0, result.output
