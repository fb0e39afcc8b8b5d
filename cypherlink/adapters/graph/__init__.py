"""Graph connector - ORM-facing CRUD operations over compiled Cypher."""

from __future__ import annotations

from .connector import SUPPORTED_TYPES, GraphConnector

__all__ = ["GraphConnector", "SUPPORTED_TYPES"]
