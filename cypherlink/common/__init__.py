"""Shared exceptions, types and run logging."""

from __future__ import annotations

from .exceptions import (
    MIGRATION_STEPS,
    CompileError,
    CypherlinkError,
    ExecutionError,
    ReconciliationError,
)

__all__ = [
    "MIGRATION_STEPS",
    "CompileError",
    "CypherlinkError",
    "ExecutionError",
    "ReconciliationError",
]
