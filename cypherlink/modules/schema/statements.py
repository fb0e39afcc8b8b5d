"""Schema statement planners.

Pure functions from schema state to DDL text. Nothing here touches the
server, so the drop-before-create ordering can be tested in isolation.
"""

from __future__ import annotations

import re
from collections.abc import Iterable

from .models import LiveSchemaEntry, ModelSchemaRequirement, SchemaKind

__all__ = [
    "schema_object_name",
    "plan_constraint_drops",
    "plan_index_drops",
    "plan_creates",
]

_NAME_CHARS = re.compile(r"[^A-Za-z0-9_]")


def schema_object_name(label: str, prop: str, suffix: str) -> str:
    """Name for a created constraint/index, e.g. ``User_email_unique``."""
    return _NAME_CHARS.sub("_", f"{label}_{prop}_{suffix}")


def plan_constraint_drops(
    live: Iterable[LiveSchemaEntry], labels: Iterable[str]
) -> list[str]:
    """DROP statements for uniqueness constraints on the target labels only.

    Constraints on other labels are left alone even when they cover a
    property of the same name.
    """
    targets = set(labels)
    return [
        f"DROP CONSTRAINT {entry.name} IF EXISTS"
        for entry in live
        if entry.kind is SchemaKind.UNIQUE_CONSTRAINT and entry.label in targets
    ]


def plan_index_drops(
    live: Iterable[LiveSchemaEntry], labels: Iterable[str]
) -> list[str]:
    """DROP statements for indexes on the target labels.

    Indexes that back a constraint cannot be dropped directly and are
    skipped; they go away with their constraint.
    """
    targets = set(labels)
    return [
        f"DROP INDEX {entry.name} IF EXISTS"
        for entry in live
        if entry.kind is SchemaKind.INDEX
        and entry.label in targets
        and not entry.owned_by_constraint
    ]


def plan_creates(
    requirements: Iterable[ModelSchemaRequirement], enterprise: bool = False
) -> list[str]:
    """CREATE statements for the full desired state.

    For each model: unique constraints first, then plain indexes, then
    (enterprise servers only) property existence constraints.
    """
    statements: list[str] = []
    for req in requirements:
        label = req.label
        for prop in req.unique_properties:
            name = schema_object_name(label, prop, "unique")
            statements.append(
                f"CREATE CONSTRAINT {name} IF NOT EXISTS "
                f"FOR (n:{label}) REQUIRE n.{prop} IS UNIQUE"
            )
        for prop in req.index_properties:
            name = schema_object_name(label, prop, "index")
            statements.append(
                f"CREATE INDEX {name} IF NOT EXISTS FOR (n:{label}) ON (n.{prop})"
            )
        if enterprise:
            for prop in req.existence_properties:
                name = schema_object_name(label, prop, "exists")
                statements.append(
                    f"CREATE CONSTRAINT {name} IF NOT EXISTS "
                    f"FOR (n:{label}) REQUIRE n.{prop} IS NOT NULL"
                )
    return statements
