"""
Logging module - JSON Lines based logging for schema migration runs.

Logging Levels:
- Level 1: The migration run as a whole (automigrate / autoupdate)
- Level 2: Pipeline steps (constraint-fetch, constraint-drop, index-fetch, ...)

Log files are stored in: <log_dir>/migration_{datetime}_{run_id}.jsonl
"""

from __future__ import annotations

import json
import uuid
from dataclasses import asdict, dataclass
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Any

__all__ = [
    "LogLevel",
    "LogStatus",
    "LogEntry",
    "MigrationRunLogger",
    "StepContext",
    "read_migration_log",
]


class LogLevel(int, Enum):
    """Log levels for filtering."""

    RUN = 1  # The whole migration run
    STEP = 2  # Individual pipeline steps


class LogStatus(str, Enum):
    """Status values for log entries."""

    STARTED = "started"
    COMPLETED = "completed"
    ERROR = "error"
    SKIPPED = "skipped"


@dataclass
class LogEntry:
    """A single log entry."""

    level: int
    run_id: str
    status: str
    timestamp: str
    message: str
    step: str | None = None
    sequence: int | None = None
    duration_ms: int | None = None
    items_processed: int | None = None
    items_created: int | None = None
    stats: dict[str, Any] | None = None
    error: str | None = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary, excluding None values."""
        return {k: v for k, v in asdict(self).items() if v is not None}

    def to_json(self) -> str:
        """Convert to JSON string."""
        return json.dumps(self.to_dict(), default=str)


class MigrationRunLogger:
    """
    Logger for a single schema migration run.

    Creates and appends to a JSONL file in the configured log directory.
    """

    def __init__(self, log_dir: str | Path, run_id: str | None = None):
        """
        Initialize logger for a run.

        Args:
            log_dir: Directory that receives the run log (created if missing)
            run_id: Optional run identifier, generated when omitted
        """
        self.run_id = run_id or uuid.uuid4().hex[:12]
        self.log_dir = Path(log_dir)
        self.log_dir.mkdir(parents=True, exist_ok=True)

        self.start_time = datetime.now()
        datetime_str = self.start_time.strftime("%Y%m%d_%H%M%S")
        self.log_file = self.log_dir / f"migration_{datetime_str}_{self.run_id}.jsonl"

        self._run_start: datetime | None = None
        self._step_sequence: int = 0

    def _write_entry(self, entry: LogEntry) -> None:
        """Write a log entry to the JSONL file."""
        with open(self.log_file, "a", encoding="utf-8") as f:
            f.write(entry.to_json() + "\n")

    def _now(self) -> str:
        return datetime.now().isoformat()

    def _elapsed_ms(self, start: datetime) -> int:
        return int((datetime.now() - start).total_seconds() * 1000)

    # ==================== Level 1: Run Logging ====================

    def run_start(self, message: str = "") -> None:
        """Log the start of the migration run (Level 1)."""
        self._run_start = datetime.now()
        self._step_sequence = 0

        self._write_entry(
            LogEntry(
                level=LogLevel.RUN,
                run_id=self.run_id,
                status=LogStatus.STARTED,
                timestamp=self._now(),
                message=message or "Starting schema migration",
            )
        )

    def run_complete(
        self, message: str = "", stats: dict[str, Any] | None = None
    ) -> None:
        """
        Log the completion of the migration run (Level 1).

        Args:
            message: Optional message
            stats: Optional summary statistics
        """
        duration = self._elapsed_ms(self._run_start) if self._run_start else None
        self._write_entry(
            LogEntry(
                level=LogLevel.RUN,
                run_id=self.run_id,
                status=LogStatus.COMPLETED,
                timestamp=self._now(),
                message=message or "Completed schema migration",
                duration_ms=duration,
                stats=stats,
            )
        )
        self._run_start = None

    def run_error(self, error: str, message: str = "") -> None:
        """Log a migration run failure (Level 1)."""
        duration = self._elapsed_ms(self._run_start) if self._run_start else None
        self._write_entry(
            LogEntry(
                level=LogLevel.RUN,
                run_id=self.run_id,
                status=LogStatus.ERROR,
                timestamp=self._now(),
                message=message or "Schema migration failed",
                duration_ms=duration,
                error=error,
            )
        )
        self._run_start = None

    # ==================== Level 2: Step Logging ====================

    def step_start(self, step: str, message: str = "") -> StepContext:
        """
        Log the start of a pipeline step (Level 2).

        Args:
            step: Step name (constraint-fetch, index-drop, create, ...)
            message: Optional message

        Returns:
            StepContext for tracking step completion
        """
        self._step_sequence += 1

        self._write_entry(
            LogEntry(
                level=LogLevel.STEP,
                run_id=self.run_id,
                step=step,
                sequence=self._step_sequence,
                status=LogStatus.STARTED,
                timestamp=self._now(),
                message=message or f"Starting {step}",
            )
        )
        return StepContext(self, step, self._step_sequence)

    def step_complete(
        self,
        step: str,
        sequence: int,
        message: str = "",
        items_processed: int = 0,
        items_created: int = 0,
        duration_ms: int | None = None,
    ) -> None:
        """Log the completion of a step (Level 2)."""
        self._write_entry(
            LogEntry(
                level=LogLevel.STEP,
                run_id=self.run_id,
                step=step,
                sequence=sequence,
                status=LogStatus.COMPLETED,
                timestamp=self._now(),
                message=message or f"Completed {step}",
                duration_ms=duration_ms,
                items_processed=items_processed,
                items_created=items_created,
            )
        )

    def step_error(
        self,
        step: str,
        sequence: int,
        error: str,
        message: str = "",
        duration_ms: int | None = None,
    ) -> None:
        """Log a step error (Level 2)."""
        self._write_entry(
            LogEntry(
                level=LogLevel.STEP,
                run_id=self.run_id,
                step=step,
                sequence=sequence,
                status=LogStatus.ERROR,
                timestamp=self._now(),
                message=message or f"Error in {step}",
                duration_ms=duration_ms,
                error=error,
            )
        )

    def step_skipped(self, step: str, message: str = "") -> None:
        """Log a skipped step (Level 2)."""
        self._step_sequence += 1

        self._write_entry(
            LogEntry(
                level=LogLevel.STEP,
                run_id=self.run_id,
                step=step,
                sequence=self._step_sequence,
                status=LogStatus.SKIPPED,
                timestamp=self._now(),
                message=message or f"Skipped {step}",
            )
        )

    def read_logs(self, level: int | None = None) -> list[dict[str, Any]]:
        """Read back this run's entries, optionally filtered by level."""
        return read_migration_log(self.log_file, level=level)


class StepContext:
    """
    Context manager for tracking step duration and completion.

    Usage:
        with run_logger.step_start("index-drop") as step:
            # do work
            step.items_processed = 4
    """

    def __init__(self, logger: MigrationRunLogger, step: str, sequence: int):
        self.logger = logger
        self.step = step
        self.sequence = sequence
        self.start_time = datetime.now()
        self.items_processed = 0
        self.items_created = 0
        self._completed = False

    def __enter__(self) -> StepContext:
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        if exc_type is not None:
            self.error(str(exc_val))
        elif not self._completed:
            self.complete()

    def _elapsed_ms(self) -> int:
        return int((datetime.now() - self.start_time).total_seconds() * 1000)

    def complete(self, message: str = "") -> None:
        """Mark step as completed."""
        self._completed = True
        self.logger.step_complete(
            step=self.step,
            sequence=self.sequence,
            message=message,
            items_processed=self.items_processed,
            items_created=self.items_created,
            duration_ms=self._elapsed_ms(),
        )

    def error(self, error: str, message: str = "") -> None:
        """Mark step as errored."""
        self._completed = True
        self.logger.step_error(
            step=self.step,
            sequence=self.sequence,
            error=error,
            message=message,
            duration_ms=self._elapsed_ms(),
        )


def read_migration_log(
    log_file: str | Path, level: int | None = None
) -> list[dict[str, Any]]:
    """
    Read entries from a migration run log.

    Args:
        log_file: Path to a migration_*.jsonl file
        level: Optional level filter

    Returns:
        List of log entries, or empty list if the file does not exist
    """
    path = Path(log_file)
    if not path.exists():
        return []

    entries = []
    with open(path, encoding="utf-8") as f:
        for line in f:
            line = line.strip()
            if line:
                entry = json.loads(line)
                if level is None or entry.get("level") == level:
                    entries.append(entry)
    return entries
