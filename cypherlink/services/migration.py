"""
Migration service - runs schema reconciliation with settings and run logging.

Wires a Neo4j connection, the model registry and an optional JSONL run
logger into a SchemaReconciler. Used by the CLI ``migrate`` and ``plan``
commands.

Usage:
    from cypherlink.services.migration import run_migration

    result = run_migration(registry, ["User"], MigrationMode.FULL_MIGRATE)
    print(result.to_dict())
"""

from __future__ import annotations

import logging
from collections.abc import Sequence

from cypherlink.adapters.neo4j import Neo4jConnection
from cypherlink.common.logging import MigrationRunLogger
from cypherlink.common.types import SchemaExecutor
from cypherlink.modules.schema.models import ModelDefinition, ModelRegistry
from cypherlink.modules.schema.reconciler import (
    MigrationMode,
    ReconciliationResult,
    SchemaReconciler,
)
from cypherlink.modules.schema.requirements import compute_requirement
from cypherlink.modules.schema.statements import plan_creates

from .config_models import CypherlinkSettings

logger = logging.getLogger(__name__)

__all__ = ["select_models", "plan_statements", "run_migration"]


def select_models(
    registry: ModelRegistry, names: Sequence[str] | None = None
) -> list[ModelDefinition]:
    """Resolve model names (all registered models when empty).

    Raises:
        KeyError: If a name is not registered
    """
    return [registry.get(name) for name in (names or registry.names())]


def plan_statements(
    registry: ModelRegistry,
    names: Sequence[str] | None = None,
    enterprise: bool = False,
) -> list[str]:
    """CREATE statements for the selected models, without a server."""
    models = select_models(registry, names)
    return plan_creates([compute_requirement(m) for m in models], enterprise=enterprise)


def run_migration(
    registry: ModelRegistry,
    names: Sequence[str] | None = None,
    mode: MigrationMode = MigrationMode.FULL_MIGRATE,
    settings: CypherlinkSettings | None = None,
    executor: SchemaExecutor | None = None,
) -> ReconciliationResult:
    """Reconcile the live schema for the selected models.

    Args:
        registry: Model definitions
        names: Models to migrate; every registered model when None
        mode: UPDATE_ONLY or FULL_MIGRATE
        settings: Settings; read from the environment if None
        executor: Executor to use; a Neo4jConnection is opened if None

    Returns:
        ReconciliationResult of the run

    Raises:
        ReconciliationError: If a step fails
    """
    settings = settings or CypherlinkSettings()
    models = select_models(registry, names)

    run_logger = None
    if settings.migration.run_log:
        run_logger = MigrationRunLogger(settings.migration.log_dir)
        logger.info(f"Writing migration run log to {run_logger.log_file}")

    enterprise = settings.neo4j.enterprise
    if executor is not None:
        return SchemaReconciler(executor, enterprise, run_logger).reconcile(models, mode)

    with Neo4jConnection(settings.neo4j) as conn:
        return SchemaReconciler(conn, enterprise, run_logger).reconcile(models, mode)
