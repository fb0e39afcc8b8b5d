"""Neo4j adapter - driver wrapper implementing the executor protocols."""

from __future__ import annotations

from .manager import SHOW_CONSTRAINTS, SHOW_INDEXES, Neo4jConnection

__all__ = ["Neo4jConnection", "SHOW_CONSTRAINTS", "SHOW_INDEXES"]
