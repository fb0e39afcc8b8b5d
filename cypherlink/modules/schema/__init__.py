"""Schema reconciliation for automigrate / autoupdate.

Computes the constraints and indexes each model requires, diffs them against
the live schema and emits ordered DROP / CREATE statements.
"""

from __future__ import annotations

from .models import (
    LiveSchemaEntry,
    ModelDefinition,
    ModelRegistry,
    ModelSchemaRequirement,
    PropertyDefinition,
    SchemaKind,
    load_models,
)
from .reconciler import MigrationMode, ReconciliationResult, SchemaReconciler
from .requirements import compute_requirement
from .statements import (
    plan_constraint_drops,
    plan_creates,
    plan_index_drops,
    schema_object_name,
)

__all__ = [
    # Metadata
    "ModelDefinition",
    "ModelRegistry",
    "PropertyDefinition",
    "load_models",
    # Schema state
    "LiveSchemaEntry",
    "ModelSchemaRequirement",
    "SchemaKind",
    "compute_requirement",
    # Planning
    "plan_constraint_drops",
    "plan_creates",
    "plan_index_drops",
    "schema_object_name",
    # Pipeline
    "MigrationMode",
    "ReconciliationResult",
    "SchemaReconciler",
]
