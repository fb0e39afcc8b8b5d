"""Where-clause compiler.

Recursively turns a predicate tree into a Cypher boolean expression plus the
parameter bindings it references. Field names come from trusted model
metadata and are written into the text; every value goes through a freshly
named parameter.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

from cypherlink.common.exceptions import CompileError

from .options import DEFAULT_OPTIONS, CompilerOptions
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

logger = logging.getLogger(__name__)

__all__ = ["CompiledFragment", "WhereCompiler", "compile_where"]

_RANGE_OPERATORS = {
    ComparisonOperator.GT: ">",
    ComparisonOperator.GTE: ">=",
    ComparisonOperator.LT: "<",
    ComparisonOperator.LTE: "<=",
}

_INFIX_KEYWORDS = {
    LogicalOperator.AND: "AND",
    LogicalOperator.OR: "OR",
    LogicalOperator.XOR: "XOR",
}


@dataclass
class CompiledFragment:
    """A piece of query text and the parameters it binds."""

    text: str = ""
    params: dict[str, Any] = field(default_factory=dict)

    def __bool__(self) -> bool:
        return bool(self.text)


class WhereCompiler:
    """Compiles predicate trees against a single node alias.

    Args:
        namer: Parameter namer for this compile; never shared across requests
        options: Compiler options
    """

    def __init__(
        self,
        namer: ParameterNamer | None = None,
        options: CompilerOptions = DEFAULT_OPTIONS,
    ):
        self.namer = namer or ParameterNamer()
        self.options = options

    def compile(self, predicate: Predicate | None) -> CompiledFragment:
        """Compile a predicate; None compiles to an empty fragment."""
        if predicate is None:
            return CompiledFragment()
        if isinstance(predicate, LogicalNode):
            return self._compile_logical(predicate)
        if isinstance(predicate, ComparisonNode):
            return self._compile_comparison(predicate)
        if isinstance(predicate, UnsupportedNode):
            return self._compile_unsupported(predicate)
        raise CompileError(f"Not a predicate node: {predicate!r}")

    def _compile_logical(self, node: LogicalNode) -> CompiledFragment:
        params: dict[str, Any] = {}
        parts: list[str] = []
        for child in node.children:
            compiled = self.compile(child)
            if not compiled:
                continue
            parts.append(f"({compiled.text})")
            params.update(compiled.params)

        if not parts:
            return CompiledFragment()

        if node.op is LogicalOperator.NOT:
            return CompiledFragment(f"NOT ({' AND '.join(parts)})", params)

        keyword = _INFIX_KEYWORDS[node.op]
        return CompiledFragment(f"({f' {keyword} '.join(parts)})", params)

    def _compile_comparison(self, node: ComparisonNode) -> CompiledFragment:
        prop = f"{self.options.alias}.{node.field}"
        op = node.op

        if op is ComparisonOperator.IS_NULL:
            return CompiledFragment(f"{prop} IS NULL")

        if op is ComparisonOperator.EQ:
            if node.operand is None:
                return CompiledFragment(f"{prop} IS NULL")
            name = self.namer.name(node.field)
            return CompiledFragment(f"{prop} = ${name}", {name: node.operand})

        if op is ComparisonOperator.NEQ:
            if node.operand is None:
                return CompiledFragment(f"{prop} IS NOT NULL")
            name = self.namer.name(node.field)
            return CompiledFragment(f"NOT {prop} = ${name}", {name: node.operand})

        if op in _RANGE_OPERATORS:
            name = self.namer.name(node.field)
            return CompiledFragment(
                f"{prop} {_RANGE_OPERATORS[op]} ${name}", {name: node.operand}
            )

        if op is ComparisonOperator.BETWEEN:
            low, high = node.operand
            low_name = self.namer.name(node.field)
            high_name = self.namer.name(node.field)
            return CompiledFragment(
                f"({prop} > ${low_name} AND {prop} < ${high_name})",
                {low_name: low, high_name: high},
            )

        if op in (ComparisonOperator.IN, ComparisonOperator.NOT_IN):
            base = self.namer.name(node.field)
            params = {f"{base}{i}": value for i, value in enumerate(node.operand)}
            placeholders = ", ".join(f"${name}" for name in params)
            text = f"{prop} IN [{placeholders}]"
            # Cypher has no infix NOT IN
            if op is ComparisonOperator.NOT_IN:
                text = f"NOT {text}"
            return CompiledFragment(text, params)

        if op in (ComparisonOperator.LIKE, ComparisonOperator.NOT_LIKE):
            name = self.namer.name(node.field)
            text = f"{prop} =~ ${name}"
            if op is ComparisonOperator.NOT_LIKE:
                text = f"NOT {text}"
            return CompiledFragment(text, {name: f".*{node.operand}.*"})

        raise CompileError(f"Unhandled comparison operator: {op}")

    def _compile_unsupported(self, node: UnsupportedNode) -> CompiledFragment:
        if self.options.strict_operators:
            raise CompileError(
                f"Operator '{node.op_name}' on field '{node.field}' is not supported"
            )
        logger.debug(
            f"Dropping unsupported operator '{node.op_name}' on field '{node.field}'"
        )
        return CompiledFragment()


def compile_where(
    where: Any,
    options: CompilerOptions = DEFAULT_OPTIONS,
    namer: ParameterNamer | None = None,
) -> CompiledFragment:
    """Parse and compile a where mapping in one step.

    Args:
        where: Loopback-style where mapping (or None)
        options: Compiler options
        namer: Namer to share with the rest of the query; a fresh one if None

    Returns:
        CompiledFragment with the boolean expression and its parameters
    """
    return WhereCompiler(namer, options).compile(
        parse_where(where, options.strict_operators)
    )
