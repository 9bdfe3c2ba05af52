"""
Unit tests for the command line interface.
"""

import pytest
from click.testing import CliRunner

from invoice_market.cli.main import cli
from invoice_market.utils.logger import setup_logging


@pytest.fixture
def runner(monkeypatch):
    for key in ("INVOICE_MARKET_LOG_TO_FILE", "INVOICE_MARKET_SWEEP_INTERVAL", "INVOICE_MARKET_BID_SPREAD"):
        monkeypatch.delenv(key, raising=False)
    yield CliRunner()
    # Commands bind the console handler to the runner stream; rebind it
    setup_logging()


class TestCli:
    """Tests for CLI commands."""

    def test_config(self, runner):
        result = runner.invoke(cli, ["config"])

        assert result.exit_code == 0
        assert "Bid spread: 20" in result.output
        assert "Sweep interval: 2.0s" in result.output

    def test_config_from_env_file(self, runner, tmp_path):
        env_file = tmp_path / ".env"
        env_file.write_text("INVOICE_MARKET_BID_SPREAD=30\n")

        result = runner.invoke(cli, ["--env-file", str(env_file), "config"])

        assert result.exit_code == 0
        assert "Bid spread: 30" in result.output

    def test_bad_config_reported(self, runner, tmp_path):
        env_file = tmp_path / ".env"
        env_file.write_text("INVOICE_MARKET_SWEEP_INTERVAL=never\n")

        result = runner.invoke(cli, ["--env-file", str(env_file), "config"])

        assert result.exit_code != 0
        assert "sweep_interval" in result.output

    def test_demo(self, runner):
        result = runner.invoke(cli, ["demo"])

        assert result.exit_code == 0, result.output
        assert "bid 85: bid_too_high" in result.output
        assert "bid 80: accepted" in result.output
        assert "status=FINALIZED, winner=bob" in result.output
        assert "after sweep: ENDED_AWAITING_MANUAL" in result.output
        assert "late bid: invoice_closed" in result.output

    def test_serve(self, runner):
        result = runner.invoke(cli, ["serve", "--duration", "0.3", "--interval", "0.05"])

        assert result.exit_code == 0, result.output
        assert "Invoice #1: FINALIZED" in result.output

    def test_version(self, runner):
        result = runner.invoke(cli, ["--version"])
        assert "0.1.0" in result.output
