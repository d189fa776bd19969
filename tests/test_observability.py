"""
Tests for observability — run context, action log, run log file.
"""

import logging
import re
from datetime import UTC, datetime
from pathlib import Path

import pytest

from wureset.core.context import RunContext, generate_run_id
from wureset.core.observability.logging_config import (
    attach_run_log,
    detach_run_log,
    setup_logging,
)


class TestRunId:
    def test_format(self):
        run_id = generate_run_id(datetime(2025, 3, 4, 5, 6, 7, tzinfo=UTC))
        assert re.fullmatch(r"run-20250304-050607-[0-9a-f]{6}", run_id)

    def test_unique_within_a_second(self):
        now = datetime.now(UTC)
        assert len({generate_run_id(now) for _ in range(50)}) == 50


class TestRunContext:
    def test_log_path_named_after_run(self, tmp_path: Path):
        ctx = RunContext.create(log_dir=tmp_path)
        assert ctx.log_path == tmp_path / f"{ctx.run_id}.log"

    def test_no_log_dir(self):
        assert RunContext.create().log_path is None

    def test_entries_in_emission_order(self):
        ctx = RunContext.create()
        ctx.info("first")
        ctx.warning("second")
        ctx.error("third")
        assert [(e.level, e.message) for e in ctx.entries] == [
            ("INFO", "first"),
            ("WARNING", "second"),
            ("ERROR", "third"),
        ]
        assert ctx.errors() == ["third"]

    def test_unknown_level_falls_back_to_info(self):
        ctx = RunContext.create()
        ctx.log("hello", "LOUD")
        assert ctx.entries[0].level == "INFO"

    def test_dry_run_prefix(self):
        ctx = RunContext.create(dry_run=True)
        ctx.info("rename D -> D_01")
        assert ctx.entries[0].message == "[dry-run] rename D -> D_01"

    def test_forwards_to_logging(self, caplog: pytest.LogCaptureFixture):
        ctx = RunContext.create()
        with caplog.at_level(logging.INFO, logger="wureset.run"):
            ctx.warning("stuck service")
        assert ("wureset.run", logging.WARNING, "stuck service") in caplog.record_tuples


class TestRunLog:
    def test_attach_writes_info_even_when_console_is_quiet(self, tmp_path: Path):
        setup_logging(level="ERROR")
        path = tmp_path / "logs" / "run.log"
        handler = attach_run_log(path)
        try:
            ctx = RunContext.create()
            ctx.info("archived SoftwareDistribution")
            ctx.error("cannot stop bits")
        finally:
            detach_run_log(handler)

        text = path.read_text(encoding="utf-8")
        assert "archived SoftwareDistribution" in text
        assert "cannot stop bits" in text

    def test_detach_stops_writing(self, tmp_path: Path):
        path = tmp_path / "run.log"
        handler = attach_run_log(path)
        detach_run_log(handler)
        RunContext.create().info("after detach")
        assert "after detach" not in path.read_text(encoding="utf-8")

    def test_append_only(self, tmp_path: Path):
        path = tmp_path / "run.log"
        path.write_text("existing line\n", encoding="utf-8")
        handler = attach_run_log(path)
        RunContext.create().info("new line")
        detach_run_log(handler)
        text = path.read_text(encoding="utf-8")
        assert text.startswith("existing line\n")
        assert "new line" in text


class TestSetupLogging:
    def test_level_from_name(self):
        setup_logging(level="DEBUG")
        assert logging.getLogger().level == logging.DEBUG

    def test_bad_level_defaults_to_info(self):
        setup_logging(level="chatty")
        assert logging.getLogger().level == logging.INFO

    def test_optional_log_file(self, tmp_path: Path):
        log_file = tmp_path / "wureset.log"
        setup_logging(level="WARNING", log_file=str(log_file), log_file_level="DEBUG")
        logging.getLogger("wureset.test").debug("fine detail")
        for h in logging.getLogger().handlers:
            h.flush()
        assert "fine detail" in log_file.read_text(encoding="utf-8")
        assert logging.getLogger().level == logging.DEBUG
