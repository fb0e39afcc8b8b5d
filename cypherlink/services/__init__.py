"""Services - settings and orchestration shared by the CLI and the connector."""

from __future__ import annotations

from .config_models import (
    CompilerSettings,
    CypherlinkSettings,
    MigrationSettings,
    Neo4jSettings,
)

__all__ = [
    "CompilerSettings",
    "CypherlinkSettings",
    "MigrationSettings",
    "Neo4jSettings",
]
