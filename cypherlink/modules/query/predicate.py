"""Predicate tree for where clauses.

A loopback-style ``where`` mapping is parsed once, at the ORM boundary, into
tagged nodes. The compiler then dispatches on node type instead of sniffing
the shape of raw values.

Example:
    >>> parse_where({"or": [{"title": "x"}, {"age": {"gt": 3}}]})
    LogicalNode(op=<LogicalOperator.OR: 'or'>, children=(...))
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from enum import Enum
from typing import Any, Union

from cypherlink.common.exceptions import CompileError

__all__ = [
    "LogicalOperator",
    "ComparisonOperator",
    "LogicalNode",
    "ComparisonNode",
    "UnsupportedNode",
    "Predicate",
    "parse_where",
]


class LogicalOperator(str, Enum):
    """Operators that combine child predicates."""

    AND = "and"
    OR = "or"
    NOT = "not"
    XOR = "xor"


class ComparisonOperator(str, Enum):
    """Operators that test a single field."""

    EQ = "eq"
    NEQ = "neq"
    GT = "gt"
    GTE = "gte"
    LT = "lt"
    LTE = "lte"
    BETWEEN = "between"
    IN = "inq"
    NOT_IN = "nin"
    LIKE = "like"
    NOT_LIKE = "nlike"
    IS_NULL = "is_null"


# Operator names accepted in a where mapping
_OPERATOR_ALIASES: dict[str, ComparisonOperator] = {
    "eq": ComparisonOperator.EQ,
    "neq": ComparisonOperator.NEQ,
    "gt": ComparisonOperator.GT,
    "gte": ComparisonOperator.GTE,
    "lt": ComparisonOperator.LT,
    "lte": ComparisonOperator.LTE,
    "between": ComparisonOperator.BETWEEN,
    "inq": ComparisonOperator.IN,
    "in": ComparisonOperator.IN,
    "nin": ComparisonOperator.NOT_IN,
    "like": ComparisonOperator.LIKE,
    "nlike": ComparisonOperator.NOT_LIKE,
}


@dataclass(frozen=True)
class LogicalNode:
    """A group of child predicates joined by a logical operator."""

    op: LogicalOperator
    children: tuple[Predicate, ...]


@dataclass(frozen=True)
class ComparisonNode:
    """A test of one field against an operand."""

    field: str
    op: ComparisonOperator
    operand: Any = None


@dataclass(frozen=True)
class UnsupportedNode:
    """A field test whose operator has no Cypher translation (near, regexp, ...)."""

    field: str
    op_name: str
    operand: Any = None


Predicate = Union[LogicalNode, ComparisonNode, UnsupportedNode]


def parse_where(where: Any, strict_operators: bool = False) -> Predicate | None:
    """Parse a where mapping into a predicate tree.

    Args:
        where: Mapping of field names / logical operators to conditions
        strict_operators: Reject operator objects holding more than one operator

    Returns:
        The root predicate, or None when the mapping matches everything

    Raises:
        CompileError: If the mapping has an invalid shape
    """
    if where is None:
        return None
    if not isinstance(where, Mapping):
        raise CompileError(f"Where must be a mapping, got {type(where).__name__}")

    nodes = []
    for key, cond in where.items():
        node = _parse_entry(str(key), cond, strict_operators)
        if node is not None:
            nodes.append(node)

    if not nodes:
        return None
    if len(nodes) == 1:
        return nodes[0]
    return LogicalNode(LogicalOperator.AND, tuple(nodes))


def _parse_entry(key: str, cond: Any, strict_operators: bool) -> Predicate | None:
    try:
        logical = LogicalOperator(key.lower())
    except ValueError:
        return _parse_comparison(key, cond, strict_operators)

    if not isinstance(cond, (list, tuple)):
        raise CompileError(
            f"Logical operator '{key}' expects a list of conditions, "
            f"got {type(cond).__name__}"
        )
    children = []
    for child in cond:
        if not isinstance(child, Mapping):
            raise CompileError(
                f"Conditions under '{key}' must be mappings, got {type(child).__name__}"
            )
        node = parse_where(child, strict_operators)
        if node is not None:
            children.append(node)
    if not children:
        return None
    return LogicalNode(logical, tuple(children))


def _parse_comparison(field: str, cond: Any, strict_operators: bool) -> Predicate:
    if cond is None:
        return ComparisonNode(field, ComparisonOperator.IS_NULL)
    if not isinstance(cond, Mapping):
        return ComparisonNode(field, ComparisonOperator.EQ, cond)
    if not cond:
        raise CompileError(f"Empty operator object for field '{field}'")
    if strict_operators and len(cond) > 1:
        raise CompileError(
            f"Field '{field}' has several operators ({', '.join(map(str, cond))}); "
            f"combine them with 'and'"
        )

    # Only the first operator of an operator object is honoured
    op_name, operand = next(iter(cond.items()))
    op = _OPERATOR_ALIASES.get(str(op_name).lower())
    if op is None:
        return UnsupportedNode(field, str(op_name), operand)

    if op is ComparisonOperator.EQ and operand is None:
        return ComparisonNode(field, ComparisonOperator.IS_NULL)

    if op is ComparisonOperator.BETWEEN:
        if not isinstance(operand, (list, tuple)) or len(operand) != 2:
            raise CompileError(
                f"'between' on field '{field}' expects exactly two values, got {operand!r}"
            )
        operand = tuple(operand)
    elif op in (ComparisonOperator.IN, ComparisonOperator.NOT_IN):
        if not isinstance(operand, (list, tuple, set, frozenset)):
            raise CompileError(
                f"'{op_name}' on field '{field}' expects a list of values, got {operand!r}"
            )
        operand = tuple(operand)
    elif op in (ComparisonOperator.LIKE, ComparisonOperator.NOT_LIKE):
        if operand is None or isinstance(operand, (Mapping, list, tuple)):
            raise CompileError(
                f"'{op_name}' on field '{field}' expects a pattern string, got {operand!r}"
            )
        operand = str(operand)

    return ComparisonNode(field, op, operand)
