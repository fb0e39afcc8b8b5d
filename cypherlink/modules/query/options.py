"""Immutable compiler options passed explicitly to every compile call."""

from __future__ import annotations

from dataclasses import dataclass

__all__ = ["CompilerOptions", "DEFAULT_OPTIONS"]


@dataclass(frozen=True)
class CompilerOptions:
    """Behaviour switches for the where and sort compilers.

    Attributes:
        strict_operators: Raise CompileError on operators with no Cypher
            translation instead of silently leaving them out of the query
        strict_sort_direction: Only accept ``field``, ``field ASC`` and
            ``field DESC`` sort tokens instead of the loose suffix match
        alias: Node variable used in generated queries
    """

    strict_operators: bool = False
    strict_sort_direction: bool = False
    alias: str = "n"


DEFAULT_OPTIONS = CompilerOptions()
