"""Tests for the deployflow command line."""

from __future__ import annotations

import json

import pytest
from click.testing import CliRunner

from deployflow.api_client import APIClient, APIError
from deployflow.cli import cli


@pytest.fixture
def runner() -> CliRunner:
    return CliRunner()


class TestSynth:
    def test_prints_definition(self, runner, config_file):
        result = runner.invoke(cli, ["synth", "--pipeline", str(config_file)])
        assert result.exit_code == 0
        doc = json.loads(result.output)
        assert doc["pipeline"]["name"] == "docs-site"
        assert len(doc["levels"]) == 7

    def test_writes_file(self, runner, config_file, tmp_path):
        out = tmp_path / "out" / "definition.json"
        result = runner.invoke(cli, ["synth", "--pipeline", str(config_file), "-o", str(out)])
        assert result.exit_code == 0
        assert json.loads(out.read_text(encoding="utf-8"))["pipeline"]["name"] == "docs-site"

    def test_cycle_is_reported(self, runner, cyclic_file):
        result = runner.invoke(cli, ["synth", "--pipeline", str(cyclic_file)])
        assert result.exit_code == 1
        assert "CycleError" in result.output
        assert "artifact=x" in result.output

    def test_invalid_config(self, runner, write_config):
        path = write_config(account="abc")
        result = runner.invoke(cli, ["synth", "--pipeline", str(path)])
        assert result.exit_code == 1
        assert "Invalid pipeline config" in result.output

    def test_missing_file(self, runner, tmp_path):
        result = runner.invoke(cli, ["synth", "--pipeline", str(tmp_path / "nope.json")])
        assert result.exit_code == 1


class TestPlan:
    def test_levels(self, runner, config_file):
        result = runner.invoke(cli, ["plan", "--pipeline", str(config_file)])
        assert result.exit_code == 0
        assert "Build @ runOrder 10: Build/Assets, Build/CDK" in result.output
        assert "Deploy @ runOrder 50: Deploy/Domain" in result.output


class TestSimulate:
    def test_all_succeed(self, runner, config_file):
        result = runner.invoke(cli, ["simulate", "--pipeline", str(config_file)])
        assert result.exit_code == 0
        assert "Release/CDN: SUCCESS" in result.output

    def test_failure_skips_later_levels(self, runner, config_file):
        result = runner.invoke(cli, ["simulate", "--pipeline", str(config_file), "--fail", "Build/Assets"])
        assert result.exit_code == 1
        assert "Build/Assets: FAILED" in result.output
        assert "Build/CDK: SUCCESS" in result.output
        assert "Deploy/Render: SKIPPED" in result.output
        assert "ACTION: Deploy/Render" not in result.output

    def test_unknown_action(self, runner, config_file):
        result = runner.invoke(cli, ["simulate", "--pipeline", str(config_file), "--fail", "Build/Nope"])
        assert result.exit_code == 1


class TestSubmit:
    def test_submits_definition(self, runner, config_file, monkeypatch):
        sent = {}

        def fake_submit(self, definition):
            sent["base_url"] = self.base_url
            sent["definition"] = definition
            return {"pipeline": definition["pipeline"]["name"], "version": 1}

        monkeypatch.setattr(APIClient, "submit", fake_submit)
        result = runner.invoke(cli, ["submit", "--api", "http://engine:9000/", "--pipeline", str(config_file)])

        assert result.exit_code == 0
        assert sent["base_url"] == "http://engine:9000"
        assert sent["definition"]["pipeline"]["name"] == "docs-site"
        assert "version: 1" in result.output

    def test_api_error(self, runner, config_file, monkeypatch):
        def failing_submit(self, definition):
            raise APIError("Network error: refused")

        monkeypatch.setattr(APIClient, "submit", failing_submit)
        result = runner.invoke(cli, ["submit", "--pipeline", str(config_file)])
        assert result.exit_code == 1
        assert "API request failed" in result.output
        assert "Error: Network error: refused" in result.output


class TestErrorOutput:
    @pytest.fixture
    def broken_file(self, tmp_path):
        path = tmp_path / "broken_pipeline.py"
        path.write_text("def pipeline():\n    raise RuntimeError('boom')\n", encoding="utf-8")
        return str(path)

    def test_load_failure_without_traceback(self, runner, broken_file):
        result = runner.invoke(cli, ["plan", "--pipeline", broken_file])
        assert result.exit_code == 1
        assert "Failed to load pipeline" in result.output
        assert "Error: boom" in result.output
        assert "Traceback" not in result.output

    def test_load_failure_traceback_in_debug(self, runner, broken_file):
        result = runner.invoke(cli, ["--debug", "plan", "--pipeline", broken_file])
        assert result.exit_code == 1
        assert "Traceback" in result.output
        assert "RuntimeError: boom" in result.output

    def test_workers_must_be_positive(self, runner, config_file):
        result = runner.invoke(cli, ["simulate", "--pipeline", str(config_file), "--workers", "0"])
        assert result.exit_code == 2
        assert "Traceback" not in result.output

    def test_one_worker(self, runner, config_file):
        result = runner.invoke(cli, ["simulate", "--pipeline", str(config_file), "--workers", "1"])
        assert result.exit_code == 0
