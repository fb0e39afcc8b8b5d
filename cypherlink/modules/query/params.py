"""Collision-free parameter names for compiled queries."""

from __future__ import annotations

import re
import uuid

__all__ = ["ParameterNamer"]

_INVALID_CHARS = re.compile(r"[^A-Za-z0-9_]")


class ParameterNamer:
    """Issues bound-parameter names of the form ``<field><128-bit hex>``.

    The random suffix keeps names from two independent compiles disjoint
    without any coordination. One namer is created per compile call and is
    never shared between requests.
    """

    def __init__(self) -> None:
        self._issued: list[str] = []

    def name(self, field: str) -> str:
        """Return a fresh parameter name derived from ``field``."""
        base = _INVALID_CHARS.sub("_", field or "") or "p"
        if base[0].isdigit():
            base = f"p{base}"
        name = f"{base}{uuid.uuid4().hex}"
        self._issued.append(name)
        return name

    @property
    def issued(self) -> tuple[str, ...]:
        """Every name handed out so far, in issue order."""
        return tuple(self._issued)
