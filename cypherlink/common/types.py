"""
Shared type definitions.

This module provides the Protocols that describe the external collaborators
the compiler and the schema reconciler rely on, so that the Neo4j adapter
(or a test double) can be swapped in without either side importing the
other.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

if TYPE_CHECKING:
    from cypherlink.modules.schema.models import LiveSchemaEntry

# =============================================================================
# Collaborator Protocols
# =============================================================================


@runtime_checkable
class QueryExecutor(Protocol):
    """Anything that can run a parameterized Cypher statement."""

    def execute(
        self, query: str, parameters: dict[str, Any] | None = None
    ) -> list[dict[str, Any]]:
        """Run a statement and return its rows as dictionaries."""
        ...


@runtime_checkable
class SchemaExecutor(QueryExecutor, Protocol):
    """Executor that can also report the live schema."""

    def introspect_constraints(self) -> Sequence[LiveSchemaEntry]:
        """Return every constraint currently defined on the server."""
        ...

    def introspect_indexes(self) -> Sequence[LiveSchemaEntry]:
        """Return every index currently defined on the server."""
        ...


# =============================================================================
# Run Logging Protocols
# =============================================================================


class StepContextProtocol(Protocol):
    """Protocol for step context returned by run loggers."""

    items_processed: int
    items_created: int

    def complete(self, message: str = "") -> None:
        """Mark the step as complete."""
        ...

    def error(self, error: str, message: str = "") -> None:
        """Mark the step as failed with an error message."""
        ...

    def __enter__(self) -> StepContextProtocol: ...

    def __exit__(self, exc_type, exc_val, exc_tb) -> None: ...


class RunLoggerProtocol(Protocol):
    """Protocol for migration run loggers."""

    def run_start(self, message: str = "") -> None:
        """Log the start of a migration run."""
        ...

    def run_complete(
        self, message: str = "", stats: dict[str, Any] | None = None
    ) -> None:
        """Log the completion of a migration run."""
        ...

    def run_error(self, error: str, message: str = "") -> None:
        """Log a migration run failure."""
        ...

    def step_start(self, step: str, message: str = "") -> StepContextProtocol:
        """Log the start of a step and return a context manager."""
        ...

    def step_skipped(self, step: str, message: str = "") -> None:
        """Log a step that was not needed."""
        ...


__all__ = [
    "QueryExecutor",
    "SchemaExecutor",
    "StepContextProtocol",
    "RunLoggerProtocol",
]
