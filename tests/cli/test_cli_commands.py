"""CLI command tests using Click CliRunner against the example catalog."""

import json
from unittest.mock import patch

import pytest
from click.testing import CliRunner

from cli.main import cli


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def config_file(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text("logging:\n  level: ERROR\n")
    return path


@pytest.fixture
def answers_file(tmp_path):
    path = tmp_path / "answers.json"
    path.write_text(
        json.dumps(
            [
                {"question_id": "os_confirm", "value": "mac", "timestamp": "2026-05-01T10:00:00"},
                {"question_id": "auto_updates", "value": "yes", "timestamp": "2026-05-01T10:05:00"},
            ]
        )
    )
    return path


def _invoke(runner, config_file, *args):
    return runner.invoke(cli, ["--config", str(config_file), *args])


class TestVisible:
    def test_lists_visible_questions(self, runner, config_file, example_catalog_path, answers_file):
        result = _invoke(
            runner, config_file, "visible", "--catalog", str(example_catalog_path),
            "--answers", str(answers_file),
        )
        assert result.exit_code == 0, result.output
        assert "filevault" in result.output
        assert "windows_defender" not in result.output

    def test_why_lists_hidden(self, runner, config_file, example_catalog_path):
        result = _invoke(
            runner, config_file, "visible", "--catalog", str(example_catalog_path), "--why"
        )
        assert result.exit_code == 0, result.output
        assert "windows_defender" in result.output
        assert "hidden" in result.output


class TestScore:
    def test_shows_percentage(self, runner, config_file, example_catalog_path, answers_file):
        result = _invoke(
            runner, config_file, "score", "--catalog", str(example_catalog_path),
            "--answers", str(answers_file),
        )
        assert result.exit_code == 0, result.output
        assert "Score:" in result.output
        assert "Coverage" in result.output


class TestTiers:
    def test_shows_next_tier(self, runner, config_file, example_catalog_path, answers_file):
        result = _invoke(
            runner, config_file, "tiers", "--catalog", str(example_catalog_path),
            "--answers", str(answers_file),
        )
        assert result.exit_code == 0, result.output
        assert "Hardened" in result.output
        assert "password_manager" in result.output


class TestDaily:
    def test_recommends_task(self, runner, config_file, example_catalog_path, answers_file):
        result = _invoke(
            runner, config_file, "daily", "--catalog", str(example_catalog_path),
            "--answers", str(answers_file),
        )
        assert result.exit_code == 0, result.output
        assert "password manager" in result.output.lower()


class TestReplay:
    def test_writes_profile(self, runner, config_file, example_catalog_path, answers_file, tmp_path):
        out = tmp_path / "profile.json"
        result = _invoke(
            runner, config_file, "replay", "--catalog", str(example_catalog_path),
            "--answers", str(answers_file), "-o", str(out),
        )
        assert result.exit_code == 0, result.output
        data = json.loads(out.read_text())
        assert data["facts"]["os"]["value"] == "mac"
        assert data["facts"]["auto_updates"]["value"] is True


class TestFacts:
    def test_inject_detected_fact(self, runner, config_file, example_catalog_path, tmp_path):
        out = tmp_path / "profile.json"
        result = _invoke(
            runner, config_file, "facts", "--catalog", str(example_catalog_path),
            "--inject", "os_detected=windows", "--inject", "device_detection_completed=true",
            "-o", str(out),
        )
        assert result.exit_code == 0, result.output
        facts = json.loads(out.read_text())["facts"]
        assert facts["os_detected"]["value"] == "windows"
        assert facts["device_detection_completed"]["value"] is True

    def test_bad_inject(self, runner, config_file, example_catalog_path):
        result = _invoke(
            runner, config_file, "facts", "--catalog", str(example_catalog_path), "--inject", "oops"
        )
        assert result.exit_code != 0

    def test_profile_feeds_visibility(self, runner, config_file, example_catalog_path, tmp_path):
        profile = tmp_path / "profile.json"
        _invoke(
            runner, config_file, "facts", "--catalog", str(example_catalog_path),
            "--inject", "os=windows", "-o", str(profile),
        )
        result = _invoke(
            runner, config_file, "visible", "--catalog", str(example_catalog_path),
            "--profile", str(profile),
        )
        assert "windows_defender" in result.output


class TestErrors:
    def test_missing_catalog(self, runner, config_file):
        result = _invoke(runner, config_file, "score")
        assert result.exit_code == 1
        assert "No catalog" in result.output

    def test_invalid_config(self, runner, tmp_path, example_catalog_path):
        bad = tmp_path / "bad.yaml"
        bad.write_text("scoring:\n  minimum_confidence_sample: 0\n")
        result = runner.invoke(cli, ["--config", str(bad), "score", "--catalog", str(example_catalog_path)])
        assert result.exit_code == 1
        assert "Config error" in result.output


class TestRunSummary:
    def test_metrics_logged_when_command_ends(self, runner, config_file, example_catalog_path):
        with patch("observability.Metrics.log_summary") as log_summary:
            result = _invoke(
                runner, config_file, "visible", "--catalog", str(example_catalog_path)
            )
        assert result.exit_code == 0, result.output
        log_summary.assert_called_once()
