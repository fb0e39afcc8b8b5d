"""Query builder - composes full Cypher statements per CRUD operation.

Label and property names are taken from trusted model metadata and written
into the query text. Every value, including ids, property maps, SKIP and
LIMIT, is passed as a freshly named bound parameter.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from cypherlink.common.exceptions import CompileError
from cypherlink.modules.schema.models import ModelDefinition

from .options import DEFAULT_OPTIONS, CompilerOptions
from .ordering import (
    SortKey,
    compile_projection,
    compile_sort,
    parse_projection,
    parse_sort,
)
from .params import ParameterNamer
from .predicate import (
    ComparisonNode,
    LogicalNode,
    Predicate,
    UnsupportedNode,
    parse_where,
)
from .where import CompiledFragment, WhereCompiler

logger = logging.getLogger(__name__)

__all__ = ["CompiledQuery", "QueryFilter", "QueryBuilder"]


@dataclass(frozen=True)
class CompiledQuery:
    """Query text plus the parameters it binds."""

    text: str
    params: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class QueryFilter:
    """A parsed loopback-style filter object."""

    where: Predicate | None = None
    fields: tuple[str, ...] = ()
    order: tuple[SortKey, ...] = ()
    skip: int | None = None
    limit: int | None = None
    include: Any = None

    @classmethod
    def parse(
        cls, filter: Mapping[str, Any] | None, options: CompilerOptions = DEFAULT_OPTIONS
    ) -> QueryFilter:
        """Parse a filter mapping (``where``, ``fields``, ``order``, ``skip``, ``limit``).

        Raises:
            CompileError: If any part of the filter is malformed
        """
        if filter is None:
            return cls()
        if not isinstance(filter, Mapping):
            raise CompileError(f"Filter must be a mapping, got {type(filter).__name__}")
        return cls(
            where=parse_where(filter.get("where"), options.strict_operators),
            fields=parse_projection(filter.get("fields")),
            order=parse_sort(filter.get("order"), options),
            skip=_non_negative("skip", filter.get("skip")),
            limit=_non_negative("limit", filter.get("limit")),
            include=filter.get("include"),
        )


def _non_negative(name: str, value: Any) -> int | None:
    if value is None:
        return None
    if isinstance(value, bool):
        raise CompileError(f"'{name}' must be an integer, got {value!r}")
    if not isinstance(value, int):
        try:
            value = int(value)
        except (TypeError, ValueError):
            raise CompileError(f"'{name}' must be an integer, got {value!r}") from None
    if value < 0:
        raise CompileError(f"'{name}' must not be negative, got {value}")
    return value


class _Compilation:
    """State for compiling one query: a fresh namer and the collected params."""

    def __init__(self, options: CompilerOptions):
        self.options = options
        self.namer = ParameterNamer()
        self.params: dict[str, Any] = {}

    def bind(self, field_name: str, value: Any) -> str:
        name = self.namer.name(field_name)
        self.params[name] = value
        return f"${name}"

    def where(self, predicate: Predicate | None) -> str:
        fragment: CompiledFragment = WhereCompiler(self.namer, self.options).compile(
            predicate
        )
        if not fragment:
            return ""
        self.params.update(fragment.params)
        return f" WHERE {fragment.text}"

    def result(self, text: str) -> CompiledQuery:
        logger.debug(f"Compiled query: {text}")
        return CompiledQuery(text, dict(self.params))


class QueryBuilder:
    """Builds CompiledQuery objects for each CRUD operation.

    Args:
        options: Compiler options; immutable and passed to every compile
    """

    def __init__(self, options: CompilerOptions = DEFAULT_OPTIONS):
        self.options = options

    @property
    def alias(self) -> str:
        return self.options.alias

    def _match(self, model: ModelDefinition) -> str:
        return f"MATCH ({self.alias}:{model.label})"

    def _match_by_id(self, model: ModelDefinition, c: _Compilation, id_value: Any) -> str:
        id_name = model.id_name
        placeholder = c.bind(id_name, id_value)
        return f"MATCH ({self.alias}:{model.label} {{{id_name}: {placeholder}}})"

    def _where(self, where: Any) -> Predicate | None:
        # Already parsed into a predicate tree
        if isinstance(where, (LogicalNode, ComparisonNode, UnsupportedNode)):
            return where
        return parse_where(where, self.options.strict_operators)

    # ==================== Reads ====================

    def compile_find(
        self, model: ModelDefinition, filter: Mapping[str, Any] | QueryFilter | None = None
    ) -> CompiledQuery:
        """``MATCH ... [WHERE] RETURN ... [ORDER BY] [SKIP] [LIMIT]``."""
        if not isinstance(filter, QueryFilter):
            filter = QueryFilter.parse(filter, self.options)

        c = _Compilation(self.options)
        text = self._match(model) + c.where(filter.where)

        if filter.fields:
            text += f" RETURN {compile_projection(filter.fields, self.alias)}"
        else:
            text += f" RETURN {self.alias}"
        if filter.order:
            text += f" ORDER BY {compile_sort(filter.order, self.alias)}"
        if filter.skip:
            text += f" SKIP {c.bind('skip', filter.skip)}"
        if filter.limit:
            text += f" LIMIT {c.bind('limit', filter.limit)}"
        return c.result(text)

    def compile_find_one(
        self, model: ModelDefinition, filter: Mapping[str, Any] | QueryFilter | None = None
    ) -> CompiledQuery:
        """Like compile_find but always limited to a single row."""
        if not isinstance(filter, QueryFilter):
            filter = QueryFilter.parse(filter, self.options)
        return self.compile_find(
            model,
            QueryFilter(
                where=filter.where,
                fields=filter.fields,
                order=filter.order,
                skip=filter.skip,
                limit=1,
            ),
        )

    def compile_find_by_id(self, model: ModelDefinition, id_value: Any) -> CompiledQuery:
        c = _Compilation(self.options)
        return c.result(f"{self._match_by_id(model, c, id_value)} RETURN {self.alias}")

    def compile_exists(self, model: ModelDefinition, id_value: Any) -> CompiledQuery:
        c = _Compilation(self.options)
        return c.result(
            f"{self._match_by_id(model, c, id_value)} "
            f"RETURN COUNT({self.alias}) > 0 AS exists"
        )

    def compile_count(self, model: ModelDefinition, where: Any = None) -> CompiledQuery:
        """``MATCH ... [WHERE] RETURN COUNT(n) AS count``."""
        c = _Compilation(self.options)
        text = self._match(model) + c.where(self._where(where))
        return c.result(f"{text} RETURN COUNT({self.alias}) AS count")

    # ==================== Writes ====================

    def compile_create(self, model: ModelDefinition, data: Mapping[str, Any]) -> CompiledQuery:
        c = _Compilation(self.options)
        props = c.bind("properties", dict(data))
        return c.result(f"CREATE ({self.alias}:{model.label} {props}) RETURN {self.alias}")

    def compile_save(self, model: ModelDefinition, data: Mapping[str, Any]) -> CompiledQuery:
        """Upsert that replaces every property of an existing node."""
        return self._compile_merge(model, data, "=")

    def compile_update_or_create(
        self, model: ModelDefinition, data: Mapping[str, Any]
    ) -> CompiledQuery:
        """Upsert that keeps properties absent from ``data``."""
        return self._compile_merge(model, data, "+=")

    def _compile_merge(
        self, model: ModelDefinition, data: Mapping[str, Any], match_operator: str
    ) -> CompiledQuery:
        id_name = model.id_name
        if data.get(id_name) is None:
            raise CompileError(f"'{id_name}' is required to merge a {model.name}")

        c = _Compilation(self.options)
        id_placeholder = c.bind(id_name, data[id_name])
        props = c.bind("properties", dict(data))
        a = self.alias
        return c.result(
            f"MERGE ({a}:{model.label} {{{id_name}: {id_placeholder}}}) "
            f"ON CREATE SET {a} = {props} "
            f"ON MATCH SET {a} {match_operator} {props} "
            f"RETURN {a}"
        )

    def compile_update_attributes(
        self, model: ModelDefinition, id_value: Any, data: Mapping[str, Any]
    ) -> CompiledQuery:
        c = _Compilation(self.options)
        match = self._match_by_id(model, c, id_value)
        props = c.bind("properties", dict(data))
        return c.result(f"{match} SET {self.alias} += {props} RETURN {self.alias}")

    def compile_update_all(
        self, model: ModelDefinition, where: Any, data: Mapping[str, Any]
    ) -> CompiledQuery:
        """``MATCH ... [WHERE] SET n += $props RETURN COUNT(n) AS count``."""
        c = _Compilation(self.options)
        text = self._match(model) + c.where(self._where(where))
        props = c.bind("properties", dict(data))
        a = self.alias
        return c.result(f"{text} SET {a} += {props} RETURN COUNT({a}) AS count")

    def compile_destroy(self, model: ModelDefinition, id_value: Any) -> CompiledQuery:
        c = _Compilation(self.options)
        return c.result(
            f"{self._match_by_id(model, c, id_value)} DETACH DELETE {self.alias}"
        )

    def compile_destroy_all(self, model: ModelDefinition, where: Any = None) -> CompiledQuery:
        """``MATCH ... [WHERE] DETACH DELETE n RETURN COUNT(n) AS count``."""
        c = _Compilation(self.options)
        text = self._match(model) + c.where(self._where(where))
        a = self.alias
        return c.result(f"{text} DETACH DELETE {a} RETURN COUNT({a}) AS count")
