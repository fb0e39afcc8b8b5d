"""Tests for cli.cli module (typer-based)."""

from __future__ import annotations

import json
from unittest.mock import patch

import pytest
from typer.testing import CliRunner

from cypherlink.cli.cli import app
from cypherlink.common.exceptions import ReconciliationError
from cypherlink.modules.schema.reconciler import MigrationMode, ReconciliationResult

runner = CliRunner()


@pytest.fixture(autouse=True)
def isolated_env(monkeypatch, tmp_path):
    """Keep .env files and run logs out of the working tree."""
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("MIGRATION_RUN_LOG", "false")


class TestCLIHelp:
    """Tests for CLI help commands."""

    def test_main_help(self):
        """Should show main help."""
        result = runner.invoke(app, ["--help"])
        assert result.exit_code == 0
        assert "cypherlink CLI" in result.stdout

    def test_compile_help(self):
        """Should show compile command help."""
        result = runner.invoke(app, ["compile", "--help"])
        assert result.exit_code == 0
        assert "--filter" in result.stdout


class TestCompileCommand:
    """Tests for the compile command."""

    def test_find(self, models_yaml):
        """Should print the compiled query and its parameters."""
        flt = json.dumps({"where": {"title": "x"}, "limit": 5})
        result = runner.invoke(
            app, ["compile", "find", "Post", "--models", str(models_yaml), "--filter", flt]
        )
        assert result.exit_code == 0
        assert "MATCH (n:Post) WHERE n.title = $title" in result.stdout
        assert "LIMIT $limit" in result.stdout
        assert "Parameters" in result.stdout

    def test_count_uses_label(self, models_yaml):
        """Should use the model's label override."""
        result = runner.invoke(
            app, ["compile", "count", "User", "-m", str(models_yaml), "-f", '{"age": null}']
        )
        assert result.exit_code == 0
        assert "MATCH (n:Person) WHERE n.age IS NULL RETURN COUNT(n) AS count" in result.stdout

    def test_update_all(self, models_yaml):
        """Should merge the given data."""
        result = runner.invoke(
            app,
            ["compile", "update-all", "Post", "-m", str(models_yaml), "-d", '{"content": "y"}'],
        )
        assert result.exit_code == 0
        assert "SET n += $properties" in result.stdout

    def test_unknown_kind(self, models_yaml):
        """Should reject an unknown query kind."""
        result = runner.invoke(app, ["compile", "merge", "Post", "-m", str(models_yaml)])
        assert result.exit_code == 1
        assert "kind must be one of" in result.output

    def test_unknown_model(self, models_yaml):
        """Should fail for a model that is not declared."""
        result = runner.invoke(app, ["compile", "find", "Comment", "-m", str(models_yaml)])
        assert result.exit_code == 1
        assert "Unknown model" in result.output

    def test_invalid_json(self, models_yaml):
        """Should fail on malformed JSON."""
        result = runner.invoke(app, ["compile", "find", "Post", "-m", str(models_yaml), "-f", "{"])
        assert result.exit_code == 1
        assert "not valid JSON" in result.output

    def test_compile_error(self, models_yaml):
        """Should report malformed filters."""
        flt = json.dumps({"where": {"age": {"between": [1]}}})
        result = runner.invoke(app, ["compile", "find", "Post", "-m", str(models_yaml), "-f", flt])
        assert result.exit_code == 1
        assert "exactly two" in result.output

    def test_missing_models_file(self, tmp_path):
        """Should fail when the models file does not exist."""
        result = runner.invoke(
            app, ["compile", "find", "Post", "-m", str(tmp_path / "missing.yaml")]
        )
        assert result.exit_code == 1
        assert "models file not found" in result.output


class TestPlanCommand:
    """Tests for the plan command."""

    def test_plan_selected_model(self, models_yaml):
        """Should print CREATE statements for the model."""
        result = runner.invoke(app, ["plan", "User", "-m", str(models_yaml)])
        assert result.exit_code == 0
        assert "CREATE CONSTRAINT Person_email_unique IF NOT EXISTS" in result.stdout
        assert "CREATE INDEX Person_age_index IF NOT EXISTS" in result.stdout
        assert "IS NOT NULL" not in result.stdout

    def test_plan_enterprise(self, models_yaml):
        """Should include existence constraints with --enterprise."""
        result = runner.invoke(app, ["plan", "Post", "-m", str(models_yaml), "--enterprise"])
        assert result.exit_code == 0
        assert "REQUIRE n.id IS NOT NULL" in result.stdout


class TestMigrateCommand:
    """Tests for the migrate command."""

    def test_full_migrate(self, models_yaml):
        """Should run a full migration by default."""
        with patch("cypherlink.cli.cli.run_migration") as mock_run:
            mock_run.return_value = ReconciliationResult(
                mode=MigrationMode.FULL_MIGRATE,
                labels=["Post"],
                dropped_indexes=["DROP INDEX old IF EXISTS"],
                created=["CREATE INDEX x"],
            )
            result = runner.invoke(app, ["migrate", "Post", "-m", str(models_yaml)])

        assert result.exit_code == 0
        registry, names, mode = mock_run.call_args.args
        assert names == ["Post"]
        assert mode is MigrationMode.FULL_MIGRATE
        assert "drop index" in result.stdout

    def test_update_only(self, models_yaml):
        """Should run an update-only migration with --update-only."""
        with patch("cypherlink.cli.cli.run_migration") as mock_run:
            mock_run.return_value = ReconciliationResult(
                mode=MigrationMode.UPDATE_ONLY, labels=["Post", "Person"]
            )
            result = runner.invoke(app, ["migrate", "-m", str(models_yaml), "--update-only"])

        assert result.exit_code == 0
        assert mock_run.call_args.args[2] is MigrationMode.UPDATE_ONLY

    def test_reconciliation_failure(self, models_yaml):
        """Should exit with an error naming the failed step."""
        with patch("cypherlink.cli.cli.run_migration") as mock_run:
            mock_run.side_effect = ReconciliationError("index-drop", "locked")
            result = runner.invoke(app, ["migrate", "-m", str(models_yaml)])

        assert result.exit_code == 1
        assert "index-drop" in result.output


class TestPingCommand:
    """Tests for the ping command."""

    def test_reachable(self):
        """Should report a reachable server."""
        with patch("cypherlink.cli.cli.Neo4jConnection") as mock_conn_cls:
            mock_conn_cls.return_value.__enter__.return_value.ping.return_value = True
            result = runner.invoke(app, ["ping"])
        assert result.exit_code == 0
        assert "is reachable" in result.stdout

    def test_connection_refused(self):
        """Should exit 1 when the driver cannot connect."""
        with patch("cypherlink.cli.cli.Neo4jConnection") as mock_conn_cls:
            mock_conn_cls.return_value.__enter__.side_effect = ConnectionError("refused")
            result = runner.invoke(app, ["ping"])
        assert result.exit_code == 1
        assert "refused" in result.output
