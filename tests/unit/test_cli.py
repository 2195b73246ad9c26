"""Unit tests for the click command group."""

from __future__ import annotations

import json
from pathlib import Path
from unittest.mock import AsyncMock, patch

import pytest
import structlog
from click.testing import CliRunner

from aiopsanalyzer.cli import cli
from aiopsanalyzer.errors import TransportError


@pytest.fixture(autouse=True)
def _reset_structlog():
    yield
    structlog.reset_defaults()


class TestParseCommand:
    def test_valid_noop(self, tmp_path: Path) -> None:
        path = tmp_path / "response.json"
        path.write_text('{"action": "noop", "reason": "quiet"}', encoding="utf-8")
        result = CliRunner().invoke(cli, ["parse", str(path)])
        assert result.exit_code == 0
        assert json.loads(result.output) == {"action": "noop", "reason": "quiet"}

    def test_invalid_response_exits_non_zero(self, tmp_path: Path) -> None:
        path = tmp_path / "response.json"
        path.write_text('{"action": "heal", "risk_level": "extreme"}', encoding="utf-8")
        result = CliRunner().invoke(cli, ["parse", str(path)])
        assert result.exit_code == 1
        assert "DECISION_VALIDATION_FAILED" in result.output

    def test_reads_stdin(self) -> None:
        result = CliRunner().invoke(cli, ["parse", "-"], input='```json\n{"action": "noop", "reason": "ok"}\n```')
        assert result.exit_code == 0
        assert json.loads(result.output)["reason"] == "ok"

    def test_debug_logging_stays_off_stdout(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("AIOPS_LOG_LEVEL", "debug")
        path = tmp_path / "response.json"
        path.write_text('{"action": "noop", "reason": "quiet"}', encoding="utf-8")
        result = CliRunner().invoke(cli, ["parse", str(path)])
        assert result.exit_code == 0
        assert json.loads(result.stdout) == {"action": "noop", "reason": "quiet"}


class TestRunCommand:
    def test_malformed_selector_exits_2(self) -> None:
        result = CliRunner().invoke(cli, ["run", "--namespace", "ns", "--selector", "bad key=v"])
        assert result.exit_code == 2

    def test_pipeline_error_exits_1(self) -> None:
        with patch("aiopsanalyzer.app.run_once", new_callable=AsyncMock) as run_once:
            run_once.side_effect = TransportError("llm down", 3)
            result = CliRunner().invoke(cli, ["run", "--namespace", "ns", "--selector", "app=web"])
        assert result.exit_code == 1
        assert "LLM_TRANSPORT_FAILED" in result.output
        target = run_once.call_args.args[0]
        assert target.namespace == "ns"
        assert target.labels == {"app": "web"}


def test_version_option() -> None:
    result = CliRunner().invoke(cli, ["--version"])
    assert result.exit_code == 0
    assert "aiopsanalyzer" in result.output
