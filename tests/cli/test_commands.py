"""Tests for the stagemap CLI commands."""

import json

import pytest
from typer.testing import CliRunner

from stagemap.cli.main import app
from stagemap.loader import FileReader
from tests.fixtures.maps import linear_map, settings_dict, stage


@pytest.fixture
def runner() -> CliRunner:
    return CliRunner()


@pytest.fixture
def island_map() -> dict:
    return {
        "name": "islands",
        "elements": [stage("a", ["b"], canBeStartStage=True), stage("b"), stage("c")],
        "settings": settings_dict(),
    }


def write_script(tmp_path, steps, name="script.yaml"):
    path = tmp_path / name
    FileReader.write_file(path, {"steps": steps})
    return path


class TestInspectCommand:
    """Test suite for the inspect command."""

    def test_inspect_table(self, runner, write_map):
        result = runner.invoke(app, ["inspect", str(write_map(linear_map()))])

        assert result.exit_code == 0
        assert "linear" in result.stdout
        assert "3 stages, 2 paths, 1 island(s), max score 3" in result.stdout

    def test_inspect_json(self, runner, write_map, island_map):
        result = runner.invoke(app, ["inspect", str(write_map(island_map)), "--json"])

        assert result.exit_code == 0
        data = json.loads(result.stdout)
        assert data["name"] == "islands"
        assert data["islands"] == [["a", "b"], ["c"]]
        assert data["maxScore"] == 2
        assert data["stages"][0]["canBeStartStage"] is True

    def test_inspect_missing_file(self, runner, tmp_path):
        result = runner.invoke(app, ["inspect", str(tmp_path / "missing.yaml")])
        assert result.exit_code == 1
        assert "File not found" in result.stdout

    def test_inspect_invalid_map_in_json_mode(self, runner, write_map):
        path = write_map({"elements": [stage("a"), stage("a")]})
        result = runner.invoke(app, ["inspect", str(path), "--json"])

        assert result.exit_code == 1
        assert "Duplicate element id" in json.loads(result.stdout)["error"]

    def test_verbose_flag(self, runner, write_map):
        result = runner.invoke(app, ["--verbose", "inspect", str(write_map(linear_map()))])
        assert result.exit_code == 0
        assert "Loading map from" in result.stdout


class TestReachabilityCommand:
    def test_reachability_json(self, runner, write_map, island_map):
        result = runner.invoke(
            app, ["reachability", str(write_map(island_map)), "--from", "a", "--json"]
        )

        assert result.exit_code == 0
        assert json.loads(result.stdout) == {
            "from": ["a"],
            "reachable": ["a", "b"],
            "unreachable": ["c"],
        }

    def test_reachability_from_several_stages(self, runner, write_map, island_map):
        result = runner.invoke(
            app, ["reachability", str(write_map(island_map)), "-f", "b", "-f", "c", "--json"]
        )
        assert json.loads(result.stdout)["unreachable"] == []

    def test_reachability_text(self, runner, write_map, island_map):
        result = runner.invoke(app, ["reachability", str(write_map(island_map)), "--from", "c"])
        assert result.exit_code == 0
        assert "Unreachable: a, b" in result.stdout

    def test_unknown_start_stage(self, runner, write_map, island_map):
        result = runner.invoke(
            app, ["reachability", str(write_map(island_map)), "--from", "zzz", "--json"]
        )
        assert result.exit_code == 1
        assert json.loads(result.stdout) == {"error": "Unknown stage id(s): zzz"}

    def test_start_stage_is_required(self, runner, write_map, island_map):
        result = runner.invoke(app, ["reachability", str(write_map(island_map))])
        assert result.exit_code != 0


class TestPlayCommand:
    def test_play_without_script_reports_the_start(self, runner, write_map):
        result = runner.invoke(app, ["play", str(write_map(linear_map())), "--no-animation"])

        assert result.exit_code == 0
        data = json.loads(result.stdout)
        assert data["score"] == 0
        assert data["maxScore"] == 3
        assert [s["state"] for s in data["snapshot"]["stages"]] == ["open", "locked", "locked"]

    def test_play_script(self, runner, write_map, tmp_path):
        script = write_script(
            tmp_path,
            [
                {"click": "a"},
                {"score": {"stage": "a", "score": 1, "maxScore": 1}},
                "continue",
            ],
        )
        result = runner.invoke(
            app,
            ["play", str(write_map(linear_map())), "--script", str(script), "--no-animation"],
        )

        assert result.exit_code == 0
        data = json.loads(result.stdout)
        assert data["score"] == 1
        states = {s["id"]: s["state"] for s in data["snapshot"]["stages"]}
        assert states == {"a": "cleared", "b": "open", "c": "locked"}
        assert data["snapshot"]["paths"][0]["state"] == "cleared"

    def test_play_events(self, runner, write_map, tmp_path):
        script = write_script(tmp_path, [{"click": "a"}], name="script.json")
        result = runner.invoke(
            app,
            ["play", str(write_map(linear_map())), "-s", str(script), "--events"],
        )

        assert result.exit_code == 0
        events = json.loads(result.stdout)["events"]
        assert {"name": "exercise_opened", "stage_id": "a"} in events

    def test_game_over_script(self, runner, write_map, tmp_path):
        script = write_script(
            tmp_path,
            [{"click": "a"}, {"score": {"stage": "a", "score": 0}}, "close", "confirm"],
        )
        result = runner.invoke(
            app, ["play", str(write_map(linear_map(lives=1))), "-s", str(script)]
        )

        assert result.exit_code == 0
        snapshot = json.loads(result.stdout)["snapshot"]
        assert snapshot["livesLeft"] == 0
        assert snapshot["gameDone"] is True
        assert {s["state"] for s in snapshot["stages"]} == {"sealed"}

    def test_snapshot_can_be_resumed(self, runner, write_map, tmp_path):
        map_path = str(write_map(linear_map()))
        script = write_script(
            tmp_path, [{"click": "a"}, {"score": {"stage": "a", "score": 1}}, "close"]
        )
        state_path = tmp_path / "state.json"

        first = runner.invoke(
            app, ["play", map_path, "-s", str(script), "--output", str(state_path)]
        )
        assert first.exit_code == 0
        assert state_path.exists()

        resumed = runner.invoke(app, ["play", map_path, "--state", str(state_path)])
        assert resumed.exit_code == 0
        assert json.loads(resumed.stdout)["snapshot"] == json.loads(first.stdout)["snapshot"]

    def test_unknown_step(self, runner, write_map, tmp_path):
        script = write_script(tmp_path, ["jump"])
        result = runner.invoke(app, ["play", str(write_map(linear_map())), "-s", str(script)])

        assert result.exit_code == 1
        assert "Unknown step 'jump'" in json.loads(result.stdout)["error"]

    def test_negative_advance_is_rejected(self, runner, write_map, tmp_path):
        script = write_script(tmp_path, [{"advance": -5}])
        result = runner.invoke(app, ["play", str(write_map(linear_map())), "-s", str(script)])
        assert result.exit_code == 1

    def test_invalid_settings_are_reported(self, runner, write_map):
        definition = linear_map()
        definition["settings"]["behaviour"]["lives"] = -2
        result = runner.invoke(app, ["play", str(write_map(definition))])

        assert result.exit_code == 1
        assert "lives must be non-negative" in json.loads(result.stdout)["error"]


class TestSchemaCommand:
    def test_schema_to_stdout(self, runner):
        result = runner.invoke(app, ["schema"])
        assert result.exit_code == 0
        assert json.loads(result.stdout)["title"] == "MapFileModel"

    def test_schema_to_file(self, runner, tmp_path):
        output = tmp_path / "map-schema"
        result = runner.invoke(app, ["schema", "--output", str(output)])

        assert result.exit_code == 0
        assert "Schema written to" in result.stdout
        written = json.loads((tmp_path / "map-schema.json").read_text())
        assert "ElementModel" in written["$defs"]
