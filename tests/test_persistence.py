"""
Tests for persistence — current.json snapshot and the NDJSON audit ledger.
"""

import json
import time
from pathlib import Path

import pytest

from wureset.core.models.service import ServiceRecord, StartupMode
from wureset.core.models.state import RemediationState
from wureset.core.persistence.audit import AuditEntry, AuditWriter
from wureset.core.persistence.state_file import default_state_path, load_state, save_state


@pytest.fixture
def state_path(tmp_state_dir: Path) -> Path:
    return default_state_path(tmp_state_dir)


@pytest.fixture
def ledger(tmp_path: Path) -> AuditWriter:
    return AuditWriter(path=tmp_path / "ledger" / "audit.ndjson")


class TestStateFile:
    def test_snapshot_survives_reload(self, state_path: Path):
        state = RemediationState(
            run_id="run-1",
            phase="suspend",
            services={
                "bits": ServiceRecord(
                    name="bits", original_startup_mode=StartupMode.AUTOMATIC_DELAYED
                ),
                "ghost": ServiceRecord(name="ghost", error="Service not found: ghost"),
            },
        )
        save_state(state, state_path)
        reloaded = load_state(state_path)

        assert state_path.name == "current.json"
        assert reloaded.phase == "suspend"
        assert reloaded.services["bits"].original_startup_mode is StartupMode.AUTOMATIC_DELAYED
        assert not reloaded.services["ghost"].resolved
        assert reloaded.services["ghost"].error == "Service not found: ghost"

    @pytest.mark.parametrize(
        "content",
        [
            None,
            "not json at all {{{",
            json.dumps({"services": {"bits": {"original_startup_mode": "Sometimes"}}}),
        ],
        ids=["missing", "corrupt", "wrong-shape"],
    )
    def test_unusable_file_gives_empty_state(self, state_path: Path, content: str | None):
        if content is not None:
            state_path.parent.mkdir(parents=True, exist_ok=True)
            state_path.write_text(content)
        state = load_state(state_path)
        assert state.run_id == ""
        assert state.services == {}

    def test_parent_directories_created(self, tmp_path: Path):
        target = tmp_path / "a" / "b" / "current.json"
        save_state(RemediationState(run_id="nested"), target)
        assert json.loads(target.read_text())["run_id"] == "nested"

    def test_schema_version_written(self, state_path: Path):
        save_state(RemediationState(), state_path)
        assert json.loads(state_path.read_text())["schema_version"] == 1

    def test_no_temp_files_left(self, state_path: Path):
        save_state(RemediationState(), state_path)
        save_state(RemediationState(), state_path)
        assert list(state_path.parent.glob(".state_*.tmp")) == []

    def test_each_save_restamps(self, state_path: Path):
        state = RemediationState()
        before = state.updated_at
        time.sleep(0.01)
        save_state(state, state_path)
        assert load_state(state_path).updated_at != before

    def test_later_phase_replaces_earlier(self, state_path: Path):
        state = RemediationState(run_id="r", phase="init")
        save_state(state, state_path)
        state.phase = "archive"
        save_state(state, state_path)
        assert load_state(state_path).phase == "archive"


class TestAuditWriter:
    def test_default_location(self, tmp_state_dir: Path):
        assert AuditWriter(state_dir=tmp_state_dir).path == tmp_state_dir / "audit.ndjson"

    def test_entry_round_trip(self, ledger: AuditWriter):
        ledger.write(
            AuditEntry(
                run_id="run-001",
                operation_type="remediate",
                status="ok",
                actions_total=3,
                actions_succeeded=3,
            )
        )
        (entry,) = ledger.read_all()
        assert (entry.run_id, entry.status, entry.actions_succeeded) == ("run-001", "ok", 3)

    def test_recent_keeps_order(self, ledger: AuditWriter):
        for i in range(10):
            ledger.write(AuditEntry(run_id=f"run-{i:03d}"))
        assert [e.run_id for e in ledger.read_recent(3)] == ["run-007", "run-008", "run-009"]
        assert ledger.read_recent(0) == []
        assert ledger.entry_count() == 10

    def test_empty_ledger(self, ledger: AuditWriter):
        assert ledger.entry_count() == 0
        assert ledger.read_recent(5) == []

    def test_bad_lines_are_skipped(self, tmp_path: Path):
        path = tmp_path / "audit.ndjson"
        path.write_text(
            '{"run_id": "good-1", "operation_type": "remediate"}\n'
            "\n"
            "this is not json\n"
            '{"run_id": "good-2", "operation_type": "restore"}\n'
        )
        assert [e.run_id for e in AuditWriter(path=path).read_all()] == ["good-1", "good-2"]

    def test_one_json_object_per_line(self, ledger: AuditWriter):
        ledger.write(AuditEntry(run_id="r1", archived_paths=["C:\\Windows\\SoftwareDistribution"]))
        ledger.write(AuditEntry(run_id="r2"))

        lines = ledger.path.read_text(encoding="utf-8").splitlines()
        assert len(lines) == 2
        assert json.loads(lines[0])["archived_paths"] == ["C:\\Windows\\SoftwareDistribution"]
