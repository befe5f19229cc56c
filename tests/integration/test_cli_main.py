#!/usr/bin/env python3
"""
Integration tests for CLI Main Entry Point

Tests end-to-end CLI command execution with real command invocation.
"""

import pytest
from click.testing import CliRunner

from budgetflow.cli.main import main


@pytest.mark.integration
class TestCLIMainIntegration:
    """Test main CLI entry point with real command execution."""

    def setup_method(self):
        """Set up test environment."""
        self.runner = CliRunner()

    def test_help_command_lists_all_subcommands(self):
        result = self.runner.invoke(main, ["--help"])

        assert result.exit_code == 0
        assert "Budgetflow" in result.output
        for command in ["survey", "cashflow", "version", "config"]:
            assert command in result.output

    def test_version_command_shows_version_info(self):
        result = self.runner.invoke(main, ["version"])

        assert result.exit_code == 0
        assert "Budgetflow v0.1.0" in result.output
        assert "Author:" in result.output

    def test_config_command_shows_configuration(self, tmp_path):
        result = self.runner.invoke(main, ["config"])

        assert result.exit_code == 0
        assert "Current Configuration:" in result.output
        assert "Environment: test" in result.output
        assert str(tmp_path / "budgetflow_data") in result.output
        assert "Flows Directory: (bundled)" in result.output
        assert "Coffee Growth Rate: 3.6%" in result.output

    def test_config_env_override(self, tmp_path):
        result = self.runner.invoke(main, ["--config-env", "test", "config"])

        assert result.exit_code == 0, result.output
        assert "Environment: test" in result.output
        assert f"Answers Directory: {tmp_path / 'budgetflow_data' / 'answers'}" in result.output
        assert "Investment Items: Retirement (401k/IRA/Solo 401k), Brokerage/Taxable" in result.output

    def test_verbose_flag_shows_environment(self):
        result = self.runner.invoke(main, ["--verbose", "version"])

        assert result.exit_code == 0
        assert "Environment: test" in result.output
        assert "Data directory:" in result.output

    def test_debug_flag(self, monkeypatch):
        monkeypatch.setenv("LOG_LEVEL", "INFO")

        result = self.runner.invoke(main, ["--debug", "version"])

        assert result.exit_code == 0
        assert "Debug logging enabled" in result.output

    def test_subcommand_help(self):
        for group in ["survey", "cashflow"]:
            result = self.runner.invoke(main, [group, "--help"])
            assert result.exit_code == 0

    def test_invalid_command_fails(self):
        result = self.runner.invoke(main, ["forecast"])

        assert result.exit_code != 0
        assert "No such command" in result.output
