"""Smoke tests for the trade journal project structure and imports."""

from __future__ import annotations

import asyncio
import json

import pytest


class TestImports:
    """Verify all modules can be imported without errors."""

    def test_config(self) -> None:
        from journal.config import settings
        assert settings.DB_PATH is not None
        assert settings.SYNC_DEBOUNCE_SECONDS > 0
        assert not settings.cloud_configured

    def test_database(self) -> None:
        from journal.database import get_db
        tables = [t[0] for t in get_db().execute("SHOW TABLES").fetchall()]
        assert "kv_store" in tables

    def test_app(self) -> None:
        from journal.main import app
        paths = {route.path for route in app.routes}
        assert "/api/health" in paths
        assert "/api/stats/summary" in paths
        assert "/api/sync/status" in paths


# ──────────────────────────────────────────────────────────────
# Cloud config persistence
# ──────────────────────────────────────────────────────────────

class TestCloudConfig:

    def test_update_merges_and_hot_patches(self, tmp_path, monkeypatch) -> None:
        from journal.config import settings
        path = tmp_path / "cloud_config.json"
        monkeypatch.setattr(settings, "CLOUD_CONFIG_PATH", path)
        for attr in ("SUPABASE_URL", "SUPABASE_KEY", "SYNC_ID"):
            monkeypatch.setattr(settings, attr, "")

        settings.update_cloud_config({"url": " https://x.supabase.co ", "key": "k"})
        assert not settings.cloud_configured

        merged = settings.update_cloud_config({"sync_id": "abc"})
        assert merged == {"url": "https://x.supabase.co", "key": "k", "sync_id": "abc"}
        assert settings.cloud_configured
        assert json.loads(path.read_text())["sync_id"] == "abc"

    def test_corrupted_file_is_ignored(self, tmp_path, monkeypatch) -> None:
        from journal.config import settings
        path = tmp_path / "cloud_config.json"
        path.write_text("{broken")
        monkeypatch.setattr(settings, "CLOUD_CONFIG_PATH", path)
        monkeypatch.setattr(settings, "SYNC_ID", "before")
        settings.load_cloud_config()
        assert settings.SYNC_ID == "before"


# ──────────────────────────────────────────────────────────────
# Debounced job
# ──────────────────────────────────────────────────────────────

class TestDebouncedJob:

    @pytest.mark.asyncio
    async def test_burst_runs_once(self) -> None:
        from journal.utils.debounce import DebouncedJob
        calls: list[int] = []

        async def job() -> None:
            calls.append(1)

        debounced = DebouncedJob(job, 0.05, job_id="test")
        for _ in range(4):
            debounced.trigger()
        assert debounced.pending
        await asyncio.sleep(0.4)
        assert calls == [1]
        assert not debounced.pending
        debounced.shutdown()

    @pytest.mark.asyncio
    async def test_cancel(self) -> None:
        from journal.utils.debounce import DebouncedJob
        calls: list[int] = []

        async def job() -> None:
            calls.append(1)

        debounced = DebouncedJob(job, 0.05, job_id="test")
        assert debounced.cancel() is False
        debounced.trigger()
        assert debounced.cancel() is True
        await asyncio.sleep(0.2)
        assert calls == []
        debounced.shutdown()


# ──────────────────────────────────────────────────────────────
# Run log rotation
# ──────────────────────────────────────────────────────────────

class TestRunLogs:

    def test_prune_keeps_newest(self, tmp_path) -> None:
        import os

        from journal.utils.logger import _prune_run_logs

        for i in range(12):
            path = tmp_path / f"trade_journal_run{i:02d}.log"
            path.write_text("x")
            os.utime(path, (1_000_000 + i, 1_000_000 + i))
        (tmp_path / "trade_journal.log").write_text("current")

        removed = _prune_run_logs(tmp_path, keep=10)

        assert sorted(p.name for p in removed) == [
            "trade_journal_run00.log", "trade_journal_run01.log",
        ]
        assert len(list(tmp_path.glob("trade_journal_*.log"))) == 10
        assert (tmp_path / "trade_journal.log").exists()

    def test_logger_name(self) -> None:
        from journal.utils.logger import LOGGER_NAME, logger
        assert logger.name == LOGGER_NAME
        assert logger.handlers
