"""Graph Connector - CRUD surface for ORM models backed by Neo4j.

Each operation compiles its query with QueryBuilder and hands the text and
parameters to the executor. Execution errors are passed through unchanged;
compile errors are raised before anything is sent to the server.

Usage:
    from cypherlink.adapters.graph import GraphConnector
    from cypherlink.adapters.neo4j import Neo4jConnection
    from cypherlink.modules.schema import load_models

    registry = load_models("models.yaml")
    with Neo4jConnection() as conn:
        graph = GraphConnector(registry, conn)
        post_id = graph.create("Post", {"title": "Hello"})
        posts = graph.all("Post", {"where": {"title": {"like": "Hel"}}})
"""

from __future__ import annotations

import logging
import uuid
from collections.abc import Iterable, Mapping
from datetime import datetime
from typing import Any

from cypherlink.common.types import QueryExecutor, SchemaExecutor
from cypherlink.modules.query.builder import CompiledQuery, QueryBuilder, QueryFilter
from cypherlink.modules.query.options import DEFAULT_OPTIONS, CompilerOptions
from cypherlink.modules.schema.models import ModelDefinition, ModelRegistry
from cypherlink.modules.schema.reconciler import (
    MigrationMode,
    ReconciliationResult,
    SchemaReconciler,
)

logger = logging.getLogger(__name__)

__all__ = ["GraphConnector"]

# Property types the ORM may hand to this connector
SUPPORTED_TYPES = ["db", "nosql", "neo4j"]


class GraphConnector:
    """Connector between ORM models and a Neo4j executor.

    Args:
        registry: Model definitions (trusted metadata for labels and ids)
        executor: Runs compiled queries; also used for schema migration when
            it implements SchemaExecutor
        options: Immutable compiler options
        enterprise: Create existence constraints during migration
    """

    def __init__(
        self,
        registry: ModelRegistry,
        executor: QueryExecutor,
        options: CompilerOptions = DEFAULT_OPTIONS,
        enterprise: bool = False,
    ):
        self.registry = registry
        self.executor = executor
        self.options = options
        self.enterprise = enterprise
        self.builder = QueryBuilder(options)

    # ==================== Metadata ====================

    def model(self, name: str) -> ModelDefinition:
        return self.registry.get(name)

    def label(self, model: str) -> str:
        """Node label for a model."""
        return self.model(model).label

    def id_name(self, model: str) -> str:
        """Name of a model's id property."""
        return self.model(model).id_name

    def get_types(self) -> list[str]:
        return list(SUPPORTED_TYPES)

    def from_database(self, model: str, data: Mapping[str, Any] | None) -> dict[str, Any] | None:
        """Convert stored properties back to model values.

        ISO date strings are turned into datetime objects for properties typed
        ``date`` and for the ``created`` / ``lastUpdated`` fields. Strings that
        do not parse are left as they are.
        """
        if data is None:
            return None
        result = dict(data)
        for prop in self.model(model).date_properties:
            value = result.get(prop)
            if isinstance(value, str) and value:
                try:
                    result[prop] = datetime.fromisoformat(value.replace("Z", "+00:00"))
                except ValueError:
                    logger.debug(f"Leaving unparseable date {prop}={value!r} on {model}")
        return result

    # ==================== Execution ====================

    def _run(self, compiled: CompiledQuery) -> list[dict[str, Any]]:
        return self.executor.execute(compiled.text, compiled.params)

    def _node(self, model: str, row: Mapping[str, Any]) -> dict[str, Any] | None:
        node = row.get(self.options.alias)
        return self.from_database(model, dict(node) if node is not None else None)

    def _rows(self, model: str, rows: Iterable[Mapping[str, Any]], projected: bool) -> list[dict[str, Any]]:
        if projected:
            return [self.from_database(model, row) or {} for row in rows]
        return [node for node in (self._node(model, row) for row in rows) if node is not None]

    def _with_id(self, model: str, data: Mapping[str, Any]) -> dict[str, Any]:
        data = dict(data)
        id_name = self.id_name(model)
        if not data.get(id_name):
            data[id_name] = str(uuid.uuid4())
        return data

    def execute(self, query: str, params: dict[str, Any] | None = None) -> list[dict[str, Any]]:
        """Run a raw Cypher statement."""
        return self.executor.execute(query, params or {})

    def ping(self) -> bool:
        try:
            self.executor.execute("RETURN 1 AS ok", {})
        except Exception as e:
            logger.warning(f"Ping failed: {e}")
            return False
        return True

    # ==================== Writes ====================

    def create(self, model: str, data: Mapping[str, Any]) -> Any:
        """Create a node and return its id (generated when missing)."""
        data = self._with_id(model, data)
        self._run(self.builder.compile_create(self.model(model), data))
        return data[self.id_name(model)]

    def save(self, model: str, data: Mapping[str, Any]) -> dict[str, Any] | None:
        """Upsert by id, replacing every stored property with ``data``."""
        data = self._with_id(model, data)
        rows = self._run(self.builder.compile_save(self.model(model), data))
        return self._node(model, rows[0]) if rows else None

    def update_or_create(self, model: str, data: Mapping[str, Any]) -> dict[str, Any] | None:
        """Upsert by id, keeping stored properties absent from ``data``."""
        data = self._with_id(model, data)
        rows = self._run(self.builder.compile_update_or_create(self.model(model), data))
        return self._node(model, rows[0]) if rows else None

    def update_attributes(
        self, model: str, id_value: Any, data: Mapping[str, Any]
    ) -> dict[str, Any] | None:
        """Merge ``data`` into the node with the given id."""
        rows = self._run(
            self.builder.compile_update_attributes(self.model(model), id_value, data)
        )
        return self._node(model, rows[0]) if rows else None

    def update_all(
        self, model: str, where: Mapping[str, Any] | None, data: Mapping[str, Any]
    ) -> dict[str, int]:
        """Merge ``data`` into every matching node; returns ``{"count": n}``."""
        rows = self._run(self.builder.compile_update_all(self.model(model), where, data))
        return {"count": rows[0]["count"] if rows else 0}

    update = update_all

    def destroy(self, model: str, id_value: Any) -> None:
        """Delete a node and all its relationships."""
        self._run(self.builder.compile_destroy(self.model(model), id_value))

    def destroy_all(self, model: str, where: Mapping[str, Any] | None = None) -> dict[str, int]:
        """Delete every matching node; returns ``{"count": n}``."""
        rows = self._run(self.builder.compile_destroy_all(self.model(model), where))
        return {"count": rows[0]["count"] if rows else 0}

    # ==================== Reads ====================

    def exists(self, model: str, id_value: Any) -> bool:
        rows = self._run(self.builder.compile_exists(self.model(model), id_value))
        return bool(rows and rows[0].get("exists"))

    def find_by_id(self, model: str, id_value: Any) -> dict[str, Any] | None:
        rows = self._run(self.builder.compile_find_by_id(self.model(model), id_value))
        return self._node(model, rows[0]) if rows else None

    def all(
        self, model: str, filter: Mapping[str, Any] | None = None
    ) -> list[dict[str, Any]]:
        """Find every node matching a filter (where/fields/order/skip/limit)."""
        parsed = QueryFilter.parse(filter, self.options)
        if parsed.include:
            logger.debug(f"Ignoring include on {model}: relations are loaded by the ORM")
        rows = self._run(self.builder.compile_find(self.model(model), parsed))
        return self._rows(model, rows, projected=bool(parsed.fields))

    find = all

    def find_one(
        self, model: str, filter: Mapping[str, Any] | None = None
    ) -> dict[str, Any] | None:
        parsed = QueryFilter.parse(filter, self.options)
        rows = self._run(self.builder.compile_find_one(self.model(model), parsed))
        found = self._rows(model, rows, projected=bool(parsed.fields))
        return found[0] if found else None

    def find_or_create(
        self, model: str, filter: Mapping[str, Any] | None, data: Mapping[str, Any]
    ) -> tuple[dict[str, Any], bool]:
        """Return ``(instance, created)``."""
        found = self.find_one(model, filter)
        if found is not None:
            return found, False
        data = self._with_id(model, data)
        self.create(model, data)
        return data, True

    def count(self, model: str, where: Mapping[str, Any] | None = None) -> int:
        rows = self._run(self.builder.compile_count(self.model(model), where))
        return rows[0]["count"] if rows else 0

    # ==================== Schema ====================

    def _models(self, models: str | Iterable[str] | None) -> list[ModelDefinition]:
        if models is None:
            names = self.registry.names()
        elif isinstance(models, str):
            names = [models]
        else:
            names = list(models)
        return [self.model(name) for name in names]

    def _reconciler(self, run_logger: Any = None) -> SchemaReconciler:
        if not isinstance(self.executor, SchemaExecutor):
            raise TypeError(
                f"{type(self.executor).__name__} cannot introspect the schema"
            )
        return SchemaReconciler(self.executor, enterprise=self.enterprise, run_logger=run_logger)

    def autoupdate(
        self, models: str | Iterable[str] | None = None, run_logger: Any = None
    ) -> ReconciliationResult:
        """Add missing constraints and indexes; never drops anything."""
        return self._reconciler(run_logger).reconcile(
            self._models(models), MigrationMode.UPDATE_ONLY
        )

    def automigrate(
        self, models: str | Iterable[str] | None = None, run_logger: Any = None
    ) -> ReconciliationResult:
        """Drop the models' constraints and indexes, then recreate them."""
        return self._reconciler(run_logger).reconcile(
            self._models(models), MigrationMode.FULL_MIGRATE
        )
