"""Sort and projection compilers for the ORDER BY and RETURN clauses."""

from __future__ import annotations

import re
from collections.abc import Mapping
from dataclasses import dataclass
from enum import Enum
from typing import Any

from cypherlink.common.exceptions import CompileError

from .options import DEFAULT_OPTIONS, CompilerOptions

__all__ = [
    "SortDirection",
    "SortKey",
    "parse_sort",
    "compile_sort",
    "parse_projection",
    "compile_projection",
]

# Loose suffix match: only "A" or "DE" followed by "SC" is inspected
_LOOSE_DIRECTION = re.compile(r"\s+(A|DE)SC$", re.IGNORECASE)
_STRICT_TOKEN = re.compile(r"^(\S+)(?:\s+(ASC|DESC))?$", re.IGNORECASE)


class SortDirection(str, Enum):
    ASC = "ASC"
    DESC = "DESC"


@dataclass(frozen=True)
class SortKey:
    """One ORDER BY entry."""

    field: str
    direction: SortDirection = SortDirection.ASC


def _split_tokens(order: Any) -> list[str]:
    if isinstance(order, str):
        tokens = order.split(",")
    elif isinstance(order, (list, tuple)):
        tokens = [str(token) for token in order]
    else:
        raise CompileError(
            f"Sort order must be a string or a list of strings, got {type(order).__name__}"
        )
    return [token.strip() for token in tokens if token.strip()]


def _parse_token(token: str, strict: bool) -> SortKey:
    if strict:
        match = _STRICT_TOKEN.match(token)
        if not match:
            raise CompileError(f"Invalid sort token: {token!r}")
        direction = (match.group(2) or "ASC").upper()
        return SortKey(match.group(1), SortDirection(direction))

    match = _LOOSE_DIRECTION.search(token)
    field = _LOOSE_DIRECTION.sub("", token).strip()
    if match and match.group(1).upper() == "DE":
        return SortKey(field, SortDirection.DESC)
    return SortKey(field)


def parse_sort(order: Any, options: CompilerOptions = DEFAULT_OPTIONS) -> tuple[SortKey, ...]:
    """Parse ``"a, b DESC"`` or ``["a", "b DESC"]`` into sort keys.

    Args:
        order: Comma-joined string or list of ``field [ASC|DESC]`` tokens
        options: Compiler options (strict_sort_direction selects the matcher)

    Returns:
        Sort keys in the order given; empty tuple if order is falsy
    """
    if not order:
        return ()
    return tuple(
        _parse_token(token, options.strict_sort_direction)
        for token in _split_tokens(order)
    )


def compile_sort(keys: tuple[SortKey, ...], alias: str = "n") -> str:
    """Render sort keys as an ORDER BY list, e.g. ``n.age DESC, n.name``."""
    parts = []
    for key in keys:
        part = f"{alias}.{key.field}"
        if key.direction is SortDirection.DESC:
            part += " DESC"
        parts.append(part)
    return ", ".join(parts)


def parse_projection(fields: Any) -> tuple[str, ...]:
    """Normalize a field projection to an ordered tuple of names.

    Accepts a list, a comma-joined string, or a mapping of booleans in which
    only the true keys are kept (in the mapping's iteration order).
    """
    if not fields:
        return ()
    if isinstance(fields, str):
        names = fields.split(",")
    elif isinstance(fields, Mapping):
        names = [str(key) for key, keep in fields.items() if keep]
    elif isinstance(fields, (list, tuple)):
        names = [str(name) for name in fields]
    else:
        raise CompileError(
            f"Fields must be a list, string or mapping, got {type(fields).__name__}"
        )
    return tuple(name.strip() for name in names if name.strip())


def compile_projection(fields: tuple[str, ...], alias: str = "n") -> str:
    """Render projected fields, e.g. ``n.title AS title, n.id AS id``."""
    return ", ".join(f"{alias}.{name} AS {name}" for name in fields)
