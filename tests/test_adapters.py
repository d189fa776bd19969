"""
Tests for adapter protocol, registry, mock, and filesystem adapters.
"""

import sys
from pathlib import Path

import pytest

from wureset.adapters import default_registry
from wureset.adapters.base import ExecutionContext
from wureset.adapters.mock import MockServiceAdapter
from wureset.adapters.registry import AdapterRegistry
from wureset.adapters.shell.command import run_command
from wureset.adapters.shell.filesystem import FilesystemAdapter
from wureset.adapters.system.services import ScServiceAdapter
from wureset.core.models.action import Action, Receipt
from wureset.core.models.service import StartupMode


def _fs(operation: str, **params) -> Action:
    return Action(
        id=f"fs-{operation}",
        adapter="filesystem",
        params={"operation": operation, **params},
    )


# ── Receipts ─────────────────────────────────────────────────────────


class TestReceipt:
    def test_from_exception_keeps_class(self):
        receipt = Receipt.from_exception("fs", "a1", PermissionError("denied"))
        assert receipt.failed
        assert receipt.error == "denied"
        assert receipt.error_class == "PermissionError"

    def test_skip(self):
        receipt = Receipt.skip("fs", "a1", reason="nothing there")
        assert receipt.skipped
        assert not receipt.ok
        assert receipt.output == "nothing there"


# ── Mock Adapter Tests ───────────────────────────────────────────────


class TestMockServiceAdapter:
    def _run(self, mock: MockServiceAdapter, operation: str, service: str, **params) -> Receipt:
        params = {"operation": operation, "service": service, **params}
        action = Action(id=f"{operation}-{service}", adapter="service", params=params)
        return mock.execute(ExecutionContext(action=action, params=params))

    def test_query(self):
        mock = MockServiceAdapter({"bits": StartupMode.AUTOMATIC})
        receipt = self._run(mock, "query", "bits")
        assert receipt.ok
        assert receipt.metadata["mode"] == "Automatic"

    def test_lookup_is_case_insensitive(self):
        mock = MockServiceAdapter({"cryptSvc": StartupMode.AUTOMATIC})
        assert self._run(mock, "query", "CRYPTSVC").ok

    def test_unknown_service(self):
        receipt = self._run(MockServiceAdapter(), "query", "ghost")
        assert receipt.failed
        assert receipt.error_class == "UnresolvableServiceError"

    def test_set_mode_and_state(self):
        mock = MockServiceAdapter({"bits": StartupMode.MANUAL})
        self._run(mock, "set_mode", "bits", mode="disabled")
        self._run(mock, "stop", "bits")
        assert mock.service("bits").mode is StartupMode.DISABLED
        assert self._run(mock, "state", "bits").output == "STOPPED"

    def test_start_disabled_fails(self):
        mock = MockServiceAdapter({"bits": StartupMode.DISABLED})
        assert self._run(mock, "start", "bits").failed

    def test_injected_failure_and_reset(self):
        mock = MockServiceAdapter({"bits": StartupMode.MANUAL})
        mock.set_failure("stop", "bits", "Access is denied")
        assert self._run(mock, "stop", "bits").error == "Access is denied"
        mock.reset()
        assert mock.call_count == 0
        assert self._run(mock, "stop", "bits").ok

    def test_calls_filter(self):
        mock = MockServiceAdapter({"bits": StartupMode.MANUAL})
        self._run(mock, "query", "bits")
        self._run(mock, "stop", "bits")
        assert mock.calls("stop") == [("stop", "bits")]


# ── Registry Tests ───────────────────────────────────────────────────


class TestAdapterRegistry:
    def test_register_and_list(self):
        reg = AdapterRegistry()
        reg.register(FilesystemAdapter())
        reg.register(MockServiceAdapter())
        assert sorted(reg.list_adapters()) == ["filesystem", "service"]

    def test_unregister(self):
        reg = AdapterRegistry()
        reg.register(FilesystemAdapter())
        reg.unregister("filesystem")
        assert reg.get("filesystem") is None

    def test_missing_adapter(self):
        receipt = AdapterRegistry().execute_action(_fs("exists", path="/x"))
        assert receipt.failed
        assert "No adapter registered" in receipt.error

    def test_validation_failure(self):
        reg = AdapterRegistry()
        reg.register(FilesystemAdapter())
        receipt = reg.execute_action(_fs("rename", source="/a"))
        assert receipt.failed
        assert "target" in receipt.error

    def test_dry_run_skips_mutations_but_runs_reads(self, tmp_path: Path):
        victim = tmp_path / "victim"
        victim.mkdir()
        reg = AdapterRegistry(dry_run=True)
        reg.register(FilesystemAdapter())

        removed = reg.execute_action(_fs("remove", path=str(victim)))
        lookup = _fs("exists", path=str(victim))
        lookup.read_only = True
        exists = reg.execute_action(lookup)

        assert removed.skipped
        assert removed.output.startswith("[dry-run]")
        assert exists.ok
        assert victim.is_dir()

    def test_adapter_raising_is_captured(self):
        class Exploding(MockServiceAdapter):
            def execute(self, context):
                raise RuntimeError("boom")

        reg = AdapterRegistry()
        reg.register(Exploding())
        receipt = reg.execute_action(
            Action(id="x", adapter="service", params={"operation": "query", "service": "s"})
        )
        assert receipt.failed
        assert receipt.error_class == "RuntimeError"

    def test_adapter_status(self):
        reg = AdapterRegistry()
        reg.register(MockServiceAdapter(available=False))
        assert reg.adapter_status()["service"]["available"] is False

    def test_default_registry_mock(self):
        reg = default_registry(mock_services=["wuauserv", "bits"])
        service = reg.get("service")
        assert isinstance(service, MockServiceAdapter)
        assert service.service("bits").mode is StartupMode.MANUAL
        assert isinstance(reg.get("filesystem"), FilesystemAdapter)

    def test_default_registry_real(self):
        reg = default_registry(dry_run=True)
        assert isinstance(reg.get("service"), ScServiceAdapter)
        assert reg.dry_run


# ── Filesystem Adapter Tests ─────────────────────────────────────────


class TestFilesystemAdapter:
    @pytest.fixture
    def reg(self) -> AdapterRegistry:
        reg = AdapterRegistry()
        reg.register(FilesystemAdapter())
        return reg

    def test_rename(self, reg: AdapterRegistry, tmp_path: Path):
        (tmp_path / "a").mkdir()
        receipt = reg.execute_action(
            _fs("rename", source=str(tmp_path / "a"), target=str(tmp_path / "b"))
        )
        assert receipt.ok
        assert (tmp_path / "b").is_dir()

    def test_rename_refuses_occupied_target(self, reg: AdapterRegistry, tmp_path: Path):
        (tmp_path / "a").mkdir()
        (tmp_path / "b").write_text("precious")
        receipt = reg.execute_action(
            _fs("rename", source=str(tmp_path / "a"), target=str(tmp_path / "b"))
        )
        assert receipt.failed
        assert receipt.error_class == "TransientIOError"
        assert (tmp_path / "b").read_text() == "precious"

    def test_rename_missing_source_skips(self, reg: AdapterRegistry, tmp_path: Path):
        receipt = reg.execute_action(
            _fs("rename", source=str(tmp_path / "a"), target=str(tmp_path / "b"))
        )
        assert receipt.skipped

    def test_remove_directory_tree(self, reg: AdapterRegistry, tmp_path: Path):
        (tmp_path / "d" / "sub").mkdir(parents=True)
        (tmp_path / "d" / "sub" / "f").write_text("x")
        receipt = reg.execute_action(_fs("remove", path=str(tmp_path / "d")))
        assert receipt.ok
        assert receipt.metadata["kind"] == "directory"
        assert not (tmp_path / "d").exists()

    def test_remove_absent_skips(self, reg: AdapterRegistry, tmp_path: Path):
        assert reg.execute_action(_fs("remove", path=str(tmp_path / "nope"))).skipped

    def test_delete_file_refuses_directory(self, reg: AdapterRegistry, tmp_path: Path):
        (tmp_path / "d").mkdir()
        receipt = reg.execute_action(_fs("delete_file", path=str(tmp_path / "d")))
        assert receipt.failed
        assert (tmp_path / "d").is_dir()

    def test_find(self, reg: AdapterRegistry, tmp_path: Path):
        (tmp_path / "x").mkdir()
        (tmp_path / "x" / "b.dat").write_text("")
        (tmp_path / "a.dat").write_text("")
        (tmp_path / "a.dat.old").write_text("")
        receipt = reg.execute_action(_fs("find", path=str(tmp_path), suffix=".dat"))
        assert receipt.metadata["matches"] == sorted(
            [str(tmp_path / "a.dat"), str(tmp_path / "x" / "b.dat")]
        )

    def test_find_missing_root(self, reg: AdapterRegistry, tmp_path: Path):
        receipt = reg.execute_action(_fs("find", path=str(tmp_path / "nope"), suffix=".dat"))
        assert receipt.failed

    def test_unknown_operation(self, reg: AdapterRegistry):
        receipt = reg.execute_action(_fs("chmod", path="/x"))
        assert receipt.failed
        assert "Unknown operation" in receipt.error


# ── Command Runner Tests ─────────────────────────────────────────────


class TestRunCommand:
    def test_success(self):
        receipt = run_command([sys.executable, "-c", "print('hello')"], "service", "c1")
        assert receipt.ok
        assert receipt.output == "hello"
        assert receipt.metadata["return_code"] == 0

    def test_nonzero_exit(self):
        receipt = run_command(
            [sys.executable, "-c", "import sys; print('bad'); sys.exit(3)"], "service", "c2"
        )
        assert receipt.failed
        assert receipt.metadata["return_code"] == 3
        assert receipt.error == "bad"

    def test_missing_executable(self):
        receipt = run_command(["definitely-not-a-real-binary-xyz"], "service", "c3")
        assert receipt.failed
        assert "Cannot execute" in receipt.error

    def test_timeout(self):
        receipt = run_command(
            [sys.executable, "-c", "import time; time.sleep(5)"], "service", "c4", timeout=1
        )
        assert receipt.failed
        assert "timed out" in receipt.error
