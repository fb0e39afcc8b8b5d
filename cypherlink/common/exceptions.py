"""
Exception hierarchy for cypherlink.

Compile errors are raised synchronously before anything touches the server.
Execution errors come from the Neo4j adapter and are passed through
unchanged by the connector. Reconciliation errors wrap whichever step of a
schema migration failed.
"""

from __future__ import annotations

__all__ = [
    "CypherlinkError",
    "CompileError",
    "ExecutionError",
    "ReconciliationError",
    "MIGRATION_STEPS",
]

# Ordered steps of a full schema migration
MIGRATION_STEPS = (
    "constraint-fetch",
    "constraint-drop",
    "index-fetch",
    "index-drop",
    "create",
)


class CypherlinkError(Exception):
    """Base class for all cypherlink errors."""


class CompileError(CypherlinkError, ValueError):
    """A filter, predicate or sort specification has an invalid shape."""


class ExecutionError(CypherlinkError):
    """The database rejected or failed to run a statement."""

    def __init__(self, message: str, query: str | None = None):
        super().__init__(message)
        self.query = query


class ReconciliationError(CypherlinkError):
    """A schema migration step failed; remaining steps were not run.

    Attributes:
        step: Name of the failing step (one of MIGRATION_STEPS)
        statements: Statements the step was about to execute, if any
    """

    def __init__(self, step: str, message: str, statements: list[str] | None = None):
        super().__init__(f"Schema migration failed at step '{step}': {message}")
        self.step = step
        self.statements = statements or []
