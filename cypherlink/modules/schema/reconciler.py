"""Schema reconciler - brings the server's constraints/indexes in line with models.

A full migration is an ordered pipeline:

    constraint-fetch -> constraint-drop -> index-fetch -> index-drop -> create

Uniqueness constraints must be dropped before indexes are fetched, because
the index that backs a constraint cannot be dropped on its own and only
disappears with the constraint. An update-only run executes just the
``create`` step. Any failure aborts the remaining steps; nothing is rolled
back, so recovery is to re-run the whole migration.

Usage:
    reconciler = SchemaReconciler(connection, enterprise=False)
    result = reconciler.reconcile([user_model], MigrationMode.FULL_MIGRATE)
    print(result.created)
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, TypeVar

from cypherlink.common.exceptions import ReconciliationError
from cypherlink.common.types import RunLoggerProtocol, SchemaExecutor

from .models import LiveSchemaEntry, ModelDefinition, ModelSchemaRequirement
from .requirements import compute_requirement
from .statements import plan_constraint_drops, plan_creates, plan_index_drops

logger = logging.getLogger(__name__)

T = TypeVar("T")

__all__ = ["MigrationMode", "ReconciliationResult", "SchemaReconciler"]


class MigrationMode(str, Enum):
    """How far a reconciliation run may go."""

    UPDATE_ONLY = "update_only"  # only add constraints/indexes
    FULL_MIGRATE = "full_migrate"  # drop everything on the labels, then add


@dataclass
class ReconciliationResult:
    """Outcome of a reconciliation run."""

    mode: MigrationMode
    labels: list[str]
    dropped_constraints: list[str] = field(default_factory=list)
    dropped_indexes: list[str] = field(default_factory=list)
    created: list[str] = field(default_factory=list)
    success: bool = True

    @property
    def statements(self) -> list[str]:
        """Every statement executed, in execution order."""
        return self.dropped_constraints + self.dropped_indexes + self.created

    def to_dict(self) -> dict[str, Any]:
        return {
            "mode": self.mode.value,
            "labels": self.labels,
            "dropped_constraints": len(self.dropped_constraints),
            "dropped_indexes": len(self.dropped_indexes),
            "created": len(self.created),
            "success": self.success,
        }


class SchemaReconciler:
    """Runs the migration pipeline against a schema executor.

    Args:
        executor: Runs statements and reports live constraints/indexes
        enterprise: Also create property existence constraints
        run_logger: Optional JSONL run logger
    """

    def __init__(
        self,
        executor: SchemaExecutor,
        enterprise: bool = False,
        run_logger: RunLoggerProtocol | None = None,
    ):
        self.executor = executor
        self.enterprise = enterprise
        self.run_logger = run_logger

    # ==================== Pipeline ====================

    def reconcile(
        self,
        models: Sequence[ModelDefinition],
        mode: MigrationMode = MigrationMode.FULL_MIGRATE,
    ) -> ReconciliationResult:
        """Reconcile the live schema with the given models.

        Args:
            models: Models whose labels are migrated
            mode: UPDATE_ONLY or FULL_MIGRATE

        Returns:
            ReconciliationResult listing the statements executed

        Raises:
            ReconciliationError: If any step fails (remaining steps are skipped)
        """
        requirements = [compute_requirement(model) for model in models]
        labels = list(dict.fromkeys(req.label for req in requirements))
        result = ReconciliationResult(mode=mode, labels=labels)

        logger.info(f"Reconciling schema for labels {labels} ({mode.value})")
        if self.run_logger:
            self.run_logger.run_start(f"Schema {mode.value} for {', '.join(labels)}")

        try:
            if mode is MigrationMode.FULL_MIGRATE:
                constraints = self._run_step("constraint-fetch", self.fetch_constraints)
                result.dropped_constraints = self._run_step(
                    "constraint-drop",
                    self.execute_statements,
                    plan_constraint_drops(constraints, labels),
                )
                indexes = self._run_step("index-fetch", self.fetch_indexes)
                result.dropped_indexes = self._run_step(
                    "index-drop",
                    self.execute_statements,
                    plan_index_drops(indexes, labels),
                )
            result.created = self._run_step(
                "create", self.execute_statements, self.plan(requirements)
            )
        except ReconciliationError as e:
            result.success = False
            if self.run_logger:
                self.run_logger.run_error(str(e))
            raise

        if self.run_logger:
            self.run_logger.run_complete(stats=result.to_dict())
        logger.info(
            f"Schema reconciled: {len(result.dropped_constraints)} constraints dropped, "
            f"{len(result.dropped_indexes)} indexes dropped, "
            f"{len(result.created)} statements created"
        )
        return result

    def plan(self, requirements: Sequence[ModelSchemaRequirement]) -> list[str]:
        """CREATE statements for the desired state, without executing them."""
        return plan_creates(requirements, enterprise=self.enterprise)

    # ==================== Steps ====================

    def fetch_constraints(self) -> list[LiveSchemaEntry]:
        return list(self.executor.introspect_constraints())

    def fetch_indexes(self) -> list[LiveSchemaEntry]:
        return list(self.executor.introspect_indexes())

    def execute_statements(self, statements: list[str]) -> list[str]:
        """Execute statements one at a time, in order."""
        for statement in statements:
            logger.debug(f"Executing schema statement: {statement}")
            self.executor.execute(statement)
        return statements

    def _run_step(self, step: str, func: Callable[..., T], *args: Any) -> T:
        statements = args[0] if args and isinstance(args[0], list) else None
        if statements is not None and not statements:
            if self.run_logger:
                self.run_logger.step_skipped(step, "Nothing to execute")
            return func(*args)

        context = self.run_logger.step_start(step) if self.run_logger else None
        try:
            value = func(*args)
        except Exception as e:
            logger.error(f"Schema step '{step}' failed: {e}")
            if context is not None:
                context.error(str(e))
            raise ReconciliationError(step, str(e), statements) from e

        if context is not None:
            context.items_processed = len(value) if isinstance(value, list) else 0
            if step == "create":
                context.items_created = context.items_processed
            context.complete()
        return value
