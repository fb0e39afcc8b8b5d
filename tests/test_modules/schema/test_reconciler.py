"""Tests for modules.schema.reconciler module."""

from __future__ import annotations

from unittest.mock import MagicMock, call

import pytest

from cypherlink.common.exceptions import ReconciliationError
from cypherlink.common.logging import MigrationRunLogger, read_migration_log
from cypherlink.modules.schema.models import SchemaKind
from cypherlink.modules.schema.reconciler import (
    MigrationMode,
    ReconciliationResult,
    SchemaReconciler,
)


@pytest.fixture
def populated_executor(mock_executor, live_schema):
    """Executor whose live schema has User and Account objects."""
    mock_executor.introspect_constraints.return_value = [
        live_schema("user_email", "User", "email", SchemaKind.UNIQUE_CONSTRAINT),
        live_schema("account_email", "Account", "email", SchemaKind.UNIQUE_CONSTRAINT),
    ]
    mock_executor.introspect_indexes.return_value = [
        live_schema("user_age", "User", "age"),
        live_schema("account_age", "Account", "age"),
    ]
    return mock_executor


def executed(executor):
    return [c.args[0] for c in executor.execute.call_args_list]


class TestFullMigrate:
    """Tests for FULL_MIGRATE runs."""

    def test_drops_then_creates(self, populated_executor, user_model):
        """Should drop constraints, then indexes, then create the desired state."""
        result = SchemaReconciler(populated_executor).reconcile([user_model])

        statements = executed(populated_executor)
        assert statements[0] == "DROP CONSTRAINT user_email IF EXISTS"
        assert statements[1] == "DROP INDEX user_age IF EXISTS"
        assert statements[2:] == result.created
        assert result.success is True
        assert result.labels == ["User"]

    def test_never_touches_unrelated_labels(self, populated_executor, user_model):
        """Should leave another label's constraints and indexes in place."""
        SchemaReconciler(populated_executor).reconcile([user_model])
        assert not any("account" in s for s in executed(populated_executor))

    def test_fetches_indexes_after_constraint_drops(self, populated_executor, user_model):
        """Should fetch indexes only after constraints have been dropped."""
        manager = MagicMock()
        manager.attach_mock(populated_executor.introspect_constraints, "constraints")
        manager.attach_mock(populated_executor.execute, "execute")
        manager.attach_mock(populated_executor.introspect_indexes, "indexes")

        SchemaReconciler(populated_executor).reconcile([user_model])

        names = [c[0] for c in manager.mock_calls]
        assert names[:3] == ["constraints", "execute", "indexes"]
        assert manager.mock_calls[1] == call.execute("DROP CONSTRAINT user_email IF EXISTS")

    def test_refetches_every_run(self, populated_executor, user_model):
        """Should not cache the live schema between runs."""
        reconciler = SchemaReconciler(populated_executor)
        reconciler.reconcile([user_model])
        reconciler.reconcile([user_model])
        assert populated_executor.introspect_constraints.call_count == 2
        assert populated_executor.introspect_indexes.call_count == 2

    def test_enterprise_adds_existence_constraints(self, mock_executor, user_model):
        """Should create existence constraints on enterprise servers."""
        result = SchemaReconciler(mock_executor, enterprise=True).reconcile([user_model])
        assert result.created[-1].endswith("REQUIRE n.id IS NOT NULL")


class TestUpdateOnly:
    """Tests for UPDATE_ONLY runs."""

    def test_only_creates(self, populated_executor, user_model):
        """Should never fetch or drop anything."""
        result = SchemaReconciler(populated_executor).reconcile(
            [user_model], MigrationMode.UPDATE_ONLY
        )
        populated_executor.introspect_constraints.assert_not_called()
        populated_executor.introspect_indexes.assert_not_called()
        assert result.dropped_constraints == []
        assert result.dropped_indexes == []
        assert all(s.startswith("CREATE") for s in executed(populated_executor))

    def test_plan_matches_created(self, mock_executor, user_model, post_model):
        """Should execute exactly the planned statements."""
        from cypherlink.modules.schema.requirements import compute_requirement

        reconciler = SchemaReconciler(mock_executor)
        planned = reconciler.plan([compute_requirement(m) for m in (user_model, post_model)])
        result = reconciler.reconcile([user_model, post_model], MigrationMode.UPDATE_ONLY)
        assert result.created == planned


class TestFailures:
    """Tests for step failures."""

    def test_constraint_fetch_failure_aborts(self, mock_executor, user_model):
        """Should report the failing step and run nothing else."""
        mock_executor.introspect_constraints.side_effect = RuntimeError("boom")

        with pytest.raises(ReconciliationError) as exc_info:
            SchemaReconciler(mock_executor).reconcile([user_model])

        assert exc_info.value.step == "constraint-fetch"
        assert isinstance(exc_info.value.__cause__, RuntimeError)
        mock_executor.execute.assert_not_called()
        mock_executor.introspect_indexes.assert_not_called()

    def test_drop_failure_aborts_before_index_fetch(self, populated_executor, user_model):
        """Should stop at constraint-drop."""
        populated_executor.execute.side_effect = RuntimeError("locked")

        with pytest.raises(ReconciliationError) as exc_info:
            SchemaReconciler(populated_executor).reconcile([user_model])

        assert exc_info.value.step == "constraint-drop"
        populated_executor.introspect_indexes.assert_not_called()

    def test_index_fetch_failure_aborts(self, populated_executor, user_model, tmp_path):
        """Should stop at index-fetch and create nothing."""
        populated_executor.introspect_indexes.side_effect = RuntimeError("gone")
        run_logger = MigrationRunLogger(tmp_path)

        with pytest.raises(ReconciliationError) as exc_info:
            SchemaReconciler(populated_executor, run_logger=run_logger).reconcile([user_model])

        assert exc_info.value.step == "index-fetch"
        assert executed(populated_executor) == ["DROP CONSTRAINT user_email IF EXISTS"]
        assert read_migration_log(run_logger.log_file)[-1]["status"] == "error"

    def test_index_drop_failure_aborts(self, populated_executor, user_model, tmp_path):
        """Should stop at index-drop and create nothing."""
        populated_executor.execute.side_effect = [None, RuntimeError("locked")]
        run_logger = MigrationRunLogger(tmp_path)

        with pytest.raises(ReconciliationError) as exc_info:
            SchemaReconciler(populated_executor, run_logger=run_logger).reconcile([user_model])

        assert exc_info.value.step == "index-drop"
        assert exc_info.value.statements == ["DROP INDEX user_age IF EXISTS"]
        assert not any(s.startswith("CREATE") for s in executed(populated_executor))
        last = read_migration_log(run_logger.log_file)[-1]
        assert last["status"] == "error"
        assert "step" not in last

    def test_create_failure(self, mock_executor, user_model):
        """Should report the create step."""
        mock_executor.execute.side_effect = RuntimeError("syntax")

        with pytest.raises(ReconciliationError) as exc_info:
            SchemaReconciler(mock_executor).reconcile([user_model], MigrationMode.UPDATE_ONLY)

        assert exc_info.value.step == "create"
        assert "syntax" in str(exc_info.value)


class TestRunLogging:
    """Tests for run logger integration."""

    def test_logs_steps(self, populated_executor, user_model, tmp_path):
        """Should log run start, every step and run completion."""
        run_logger = MigrationRunLogger(tmp_path)
        SchemaReconciler(populated_executor, run_logger=run_logger).reconcile([user_model])

        entries = read_migration_log(run_logger.log_file)
        steps = [e["step"] for e in entries if e.get("step") and e["status"] == "completed"]
        assert steps == ["constraint-fetch", "constraint-drop", "index-fetch", "index-drop", "create"]
        assert entries[-1]["status"] == "completed"
        assert entries[-1]["stats"]["created"] == 3

    def test_create_step_records_items_created(self, populated_executor, user_model, tmp_path):
        """Should count created statements on the create step only."""
        run_logger = MigrationRunLogger(tmp_path)
        SchemaReconciler(populated_executor, run_logger=run_logger).reconcile([user_model])

        completed = {
            e["step"]: e
            for e in read_migration_log(run_logger.log_file)
            if e.get("step") and e["status"] == "completed"
        }
        assert completed["create"]["items_created"] == 3
        assert completed["constraint-drop"]["items_created"] == 0

    def test_logs_skipped_steps(self, mock_executor, user_model, tmp_path):
        """Should mark drop steps with nothing to execute as skipped."""
        run_logger = MigrationRunLogger(tmp_path)
        SchemaReconciler(mock_executor, run_logger=run_logger).reconcile([user_model])

        skipped = [e["step"] for e in read_migration_log(run_logger.log_file) if e["status"] == "skipped"]
        assert skipped == ["constraint-drop", "index-drop"]

    def test_logs_errors(self, mock_executor, user_model, tmp_path):
        """Should log the step error and the run error."""
        mock_executor.introspect_indexes.side_effect = RuntimeError("gone")
        run_logger = MigrationRunLogger(tmp_path)

        with pytest.raises(ReconciliationError):
            SchemaReconciler(mock_executor, run_logger=run_logger).reconcile([user_model])

        errors = [e for e in read_migration_log(run_logger.log_file) if e["status"] == "error"]
        assert [e.get("step") for e in errors] == ["index-fetch", None]


class TestReconciliationResult:
    """Tests for ReconciliationResult."""

    def test_statements_in_execution_order(self):
        """Should list drops before creates."""
        result = ReconciliationResult(
            mode=MigrationMode.FULL_MIGRATE,
            labels=["User"],
            dropped_constraints=["c"],
            dropped_indexes=["i"],
            created=["x"],
        )
        assert result.statements == ["c", "i", "x"]
        assert result.to_dict()["mode"] == "full_migrate"
