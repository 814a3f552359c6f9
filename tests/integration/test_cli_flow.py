import json
import logging

import pytest
from typer.testing import CliRunner

from domainiq import __version__
from domainiq.domain.errors import QuotaExceededError
from domainiq.domain.interfaces.inference import InferenceProvider
from domainiq.infrastructure.config.settings import set_config_for_testing
from domainiq.main import app

# These fixtures are defined in tests/conftest.py:
# runner: CliRunner
# make_result: AnalysisResult factory
# isolated_config: keeps real API keys out (autouse)

# Wide enough that rich never wraps a table cell
WIDE = {"COLUMNS": "200"}


@pytest.fixture(autouse=True)
def restore_root_logger():
    """The CLI reconfigures the root logger; put it back after each test."""
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)


class ScriptedProvider(InferenceProvider):
    name = "scripted"

    def __init__(self, make_result, error=None):
        self.make_result = make_result
        self.error = error
        self.keys = []

    async def analyze(self, key):
        self.keys.append(key)
        if self.error is not None:
            raise self.error
        return self.make_result(key, model="scripted-model", score=91)


def test_analyze_json_without_provider(runner: CliRunner):
    """No API key configured: heuristics answer and the output is plain JSON."""
    set_config_for_testing({"ai.provider": "none"})
    result = runner.invoke(app, ["--json", "analyze", "Crypto.IO", "defi.com"])

    assert result.exit_code == 0, f"CLI command failed: {result.output}"
    data = json.loads(result.stdout)
    assert [item["domain"] for item in data] == ["crypto.io", "defi.com"]
    assert all(item["fallbackUsed"] for item in data)
    assert data[0]["model"] == "advanced-heuristic"


def test_analyze_table_output(runner: CliRunner):
    set_config_for_testing({"ai.provider": "none"})
    result = runner.invoke(app, ["analyze", "crypto.io"], env=WIDE)

    assert result.exit_code == 0, f"CLI command failed: {result.output}"
    assert "crypto.io" in result.stdout
    assert "STRONG_BUY" in result.stdout


def test_analyze_uses_configured_provider(runner: CliRunner, mocker, make_result):
    provider = ScriptedProvider(make_result)
    create_provider = mocker.patch("domainiq.main.create_provider", return_value=provider)

    result = runner.invoke(app, ["--provider", "groq", "--json", "analyze", "crypto.io"])

    assert result.exit_code == 0, f"CLI command failed: {result.output}"
    create_provider.assert_called_once_with("groq")
    assert provider.keys == ["crypto.io"]
    data = json.loads(result.stdout)
    assert data[0]["model"] == "scripted-model"
    assert data[0]["fallbackUsed"] is False


def test_quota_exhaustion_degrades_to_heuristics(runner: CliRunner, mocker, make_result):
    provider = ScriptedProvider(make_result, error=QuotaExceededError("quota", provider="scripted"))
    mocker.patch("domainiq.main.create_provider", return_value=provider)

    result = runner.invoke(app, ["analyze", "crypto.io", "defi.com"], env=WIDE)

    assert result.exit_code == 0, f"CLI command failed: {result.output}"
    assert provider.keys == ["crypto.io"]
    assert "daily quota is exhausted" in result.output
    assert "advanced-heuristic" in result.output


def test_search_ranks_variations(runner: CliRunner):
    set_config_for_testing({"ai.provider": "none"})
    result = runner.invoke(app, ["--json", "search", "brand"])

    assert result.exit_code == 0, f"CLI command failed: {result.output}"
    data = json.loads(result.stdout)
    assert sorted(item["domain"] for item in data) == sorted(
        f"brand{tld}" for tld in (".com", ".io", ".xyz", ".ai", ".crypto", ".defi")
    )
    overall = [item["overall"] for item in data]
    assert overall == sorted(overall, reverse=True)


def test_stats_command(runner: CliRunner):
    set_config_for_testing({"ai.provider": "none", "queue.per_window_limit": 4})
    result = runner.invoke(app, ["--json", "stats"])

    assert result.exit_code == 0, f"CLI command failed: {result.output}"
    data = json.loads(result.stdout)
    assert data["provider"] is None
    assert data["per_window_limit"] == 4
    assert data["requests_used"] == 0
    assert data["exhausted"] is False


def test_invalid_domain_exits_with_error(runner: CliRunner):
    set_config_for_testing({"ai.provider": "none"})
    result = runner.invoke(app, ["analyze", "not a domain"])

    assert result.exit_code == 1
    assert "Invalid domain" in result.output


def test_unknown_provider_is_a_usage_error(runner: CliRunner):
    result = runner.invoke(app, ["--provider", "skynet", "stats"])
    assert result.exit_code == 2


def test_invalid_queue_config_fails_startup(runner: CliRunner):
    set_config_for_testing({"ai.provider": "none", "queue.window_ms": 0})
    result = runner.invoke(app, ["stats"])
    assert result.exit_code == 1
    assert "Initialization Failed" in result.output


def test_non_numeric_queue_config_fails_startup(runner: CliRunner):
    set_config_for_testing({"ai.provider": "none"})
    result = runner.invoke(app, ["stats"], env={"DOMAINIQ_QUEUE_PER_WINDOW_LIMIT": "lots"})
    assert result.exit_code == 1
    assert "Initialization Failed" in result.output
    assert not isinstance(result.exception, TypeError)


def test_version(runner: CliRunner):
    result = runner.invoke(app, ["--version"])
    assert result.exit_code == 0
    assert __version__ in result.stdout
