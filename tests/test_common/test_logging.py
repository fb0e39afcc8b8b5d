"""Tests for common.logging module."""

from __future__ import annotations

from cypherlink.common.logging import (
    LogEntry,
    LogLevel,
    LogStatus,
    MigrationRunLogger,
    read_migration_log,
)


class TestLogEntry:
    """Tests for LogEntry."""

    def test_to_dict_drops_none(self):
        """Should exclude unset fields."""
        entry = LogEntry(level=1, run_id="r", status="started", timestamp="t", message="m")
        assert entry.to_dict() == {
            "level": 1,
            "run_id": "r",
            "status": "started",
            "timestamp": "t",
            "message": "m",
        }


class TestMigrationRunLogger:
    """Tests for MigrationRunLogger."""

    def test_creates_log_dir_and_file_name(self, tmp_path):
        """Should create the directory and name the file after the run."""
        log_dir = tmp_path / "logs"
        run_logger = MigrationRunLogger(log_dir, run_id="abc")
        assert log_dir.is_dir()
        assert run_logger.log_file.name.startswith("migration_")
        assert run_logger.log_file.name.endswith("_abc.jsonl")

    def test_run_lifecycle(self, tmp_path):
        """Should write run start and completion with stats."""
        run_logger = MigrationRunLogger(tmp_path)
        run_logger.run_start()
        run_logger.run_complete(stats={"created": 2})

        entries = run_logger.read_logs()
        assert [e["status"] for e in entries] == ["started", "completed"]
        assert entries[1]["stats"] == {"created": 2}
        assert "duration_ms" in entries[1]

    def test_step_context_completes(self, tmp_path):
        """Should complete the step on normal exit."""
        run_logger = MigrationRunLogger(tmp_path)
        with run_logger.step_start("index-drop") as step:
            step.items_processed = 4

        entries = run_logger.read_logs(level=LogLevel.STEP)
        assert entries[-1]["status"] == LogStatus.COMPLETED.value
        assert entries[-1]["items_processed"] == 4
        assert entries[-1]["sequence"] == 1

    def test_step_context_records_exception(self, tmp_path):
        """Should log an error when the block raises."""
        run_logger = MigrationRunLogger(tmp_path)
        try:
            with run_logger.step_start("create"):
                raise RuntimeError("bad")
        except RuntimeError:
            pass

        entries = run_logger.read_logs(level=LogLevel.STEP)
        assert entries[-1]["status"] == "error"
        assert entries[-1]["error"] == "bad"

    def test_step_sequence_counts_skips(self, tmp_path):
        """Should number skipped and started steps together."""
        run_logger = MigrationRunLogger(tmp_path)
        run_logger.step_skipped("constraint-drop")
        run_logger.step_start("index-fetch").complete()

        sequences = [e["sequence"] for e in run_logger.read_logs()]
        assert sequences == [1, 2, 2]

    def test_read_missing_file(self, tmp_path):
        """Should return an empty list for a missing file."""
        assert read_migration_log(tmp_path / "none.jsonl") == []
