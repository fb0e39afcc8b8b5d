"""Filter-to-Cypher compiler.

Turns loopback-style filter objects (where / fields / order / skip / limit)
into parameterized Cypher text plus a bound-parameter map.
"""

from __future__ import annotations

from .builder import CompiledQuery, QueryBuilder, QueryFilter
from .options import DEFAULT_OPTIONS, CompilerOptions
from .ordering import (
    SortDirection,
    SortKey,
    compile_projection,
    compile_sort,
    parse_projection,
    parse_sort,
)
from .params import ParameterNamer
from .predicate import (
    ComparisonNode,
    ComparisonOperator,
    LogicalNode,
    LogicalOperator,
    Predicate,
    UnsupportedNode,
    parse_where,
)
from .where import CompiledFragment, WhereCompiler, compile_where

__all__ = [
    # Options
    "CompilerOptions",
    "DEFAULT_OPTIONS",
    # Parameters
    "ParameterNamer",
    # Predicates
    "ComparisonNode",
    "ComparisonOperator",
    "LogicalNode",
    "LogicalOperator",
    "Predicate",
    "UnsupportedNode",
    "parse_where",
    # Where
    "CompiledFragment",
    "WhereCompiler",
    "compile_where",
    # Sort / projection
    "SortDirection",
    "SortKey",
    "compile_projection",
    "compile_sort",
    "parse_projection",
    "parse_sort",
    # Builder
    "CompiledQuery",
    "QueryBuilder",
    "QueryFilter",
]
