"""
Unit tests for the command line entry point.
"""

import json

import pytest
from unittest.mock import Mock

from arkham import entrypoints
from arkham.entrypoints import build_parser, cli_main


@pytest.fixture(autouse=True)
def quiet_logging(monkeypatch, tmp_path):
    monkeypatch.setattr(entrypoints, "setup_logging", Mock())
    monkeypatch.chdir(tmp_path)


@pytest.fixture
def scenario_file(tmp_path, sample_scenario):
    path = tmp_path / "scenario.json"
    path.write_text(json.dumps(sample_scenario))
    return str(path)


class TestParser:
    """Tests for build_parser."""

    def test_subcommand_required(self):
        with pytest.raises(SystemExit):
            build_parser().parse_args([])

    def test_rule_option(self):
        parsed = build_parser().parse_args(
            ["check", "s.json", "--rule", "Has events", 'count_nodes("event") > 0']
        )

        assert parsed.rule == [["Has events", 'count_nodes("event") > 0']]
        assert parsed.rule_severity == "warning"


class TestValidateCommand:
    """arkham validate"""

    def test_valid_file(self, scenario_file, capsys):
        assert cli_main(["validate", scenario_file]) == 0
        assert "valid" in capsys.readouterr().out

    def test_json_report(self, scenario_file, capsys):
        assert cli_main(["--json", "validate", scenario_file]) == 0

        report = json.loads(capsys.readouterr().out)
        assert report["isValid"] is True
        assert "correctedData" not in report

    def test_invalid_document(self, tmp_path, capsys):
        path = tmp_path / "bad.json"
        path.write_text(json.dumps({"nodes": 3, "edges": []}))

        assert cli_main(["validate", str(path)]) == 1
        assert "error: nodes is not an array" in capsys.readouterr().out

    def test_unreadable_file(self, tmp_path):
        assert cli_main(["validate", str(tmp_path / "missing.json")]) == 2


class TestExportCommand:
    """arkham export"""

    def test_stdout(self, scenario_file, capsys):
        assert cli_main(["export", scenario_file]) == 0
        assert "SCENARIO EXPORT" in capsys.readouterr().out

    def test_markdown_to_file(self, scenario_file, tmp_path):
        output = tmp_path / "script.md"

        assert cli_main(["export", scenario_file, "--format", "markdown", "-o", str(output)]) == 0

        assert output.read_text(encoding="utf-8").startswith("# Scenario Export")

    def test_rejected_document(self, tmp_path, capsys):
        path = tmp_path / "bad.json"
        path.write_text("[]")

        assert cli_main(["export", str(path)]) == 1
        assert "INVALID" in capsys.readouterr().err


class TestSummaryCommand:
    """arkham summary"""

    def test_json_summary(self, scenario_file, capsys):
        assert cli_main(["--json", "summary", scenario_file]) == 0

        summary = json.loads(capsys.readouterr().out)
        assert summary["nodes"] == 9
        assert summary["edges"] == 5
        assert summary["nodes_by_type"]["event"] == 4
        assert summary["variables"]["gold"]["value"] == 0
        assert summary["game_state"]["inventory"] == {"Key": 0}

    def test_text_summary(self, scenario_file, capsys):
        cli_main(["summary", scenario_file])

        out = capsys.readouterr().out
        assert "Nodes: 9" in out
        assert "gold (number) = 0" in out


class TestCheckCommand:
    """arkham check"""

    def test_builtin_rules_pass_without_errors(self, scenario_file, capsys):
        assert cli_main(["check", scenario_file]) == 0
        assert "[PASS] Start node exists" in capsys.readouterr().out

    def test_failing_error_rule(self, scenario_file, capsys):
        code = cli_main([
            "check", scenario_file, "--no-builtin",
            "--rule", "Rich", 'variable("gold") > 100',
            "--rule-severity", "error",
        ])

        assert code == 1
        assert "[ERROR] Rich" in capsys.readouterr().out

    def test_json_results(self, scenario_file, capsys):
        cli_main(["--json", "check", scenario_file, "--no-builtin", "--rule", "Edges", "count_edges() == 5"])

        results = json.loads(capsys.readouterr().out)
        assert len(results) == 1
        assert results[0]["passed"] is True

    def test_bad_rule_expression(self, scenario_file):
        assert cli_main(["check", scenario_file, "--rule", "Broken", "count_nodes("]) == 2
