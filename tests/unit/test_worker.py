from unittest.mock import AsyncMock, MagicMock

import pytest

from storefront.jobs import worker


@pytest.mark.asyncio
async def test_run_worker_runs_job(monkeypatch):
    called = {"ok": False}

    async def dummy_job():
        called["ok"] = True

    monkeypatch.setitem(worker.JOB_REGISTRY, "dummy", dummy_job)

    await worker.run_worker("dummy")

    assert called["ok"] is True


@pytest.mark.asyncio
async def test_run_worker_unknown_job():
    with pytest.raises(ValueError):
        await worker.run_worker("missing")


def test_job_name_defaults_to_upload_ingestion(monkeypatch):
    monkeypatch.setattr(worker.sys, "argv", ["worker"])
    monkeypatch.delenv("WORKER_JOB", raising=False)

    assert worker._resolve_job_name() == "upload_ingestion"


def test_job_name_from_environment(monkeypatch):
    monkeypatch.setattr(worker.sys, "argv", ["worker"])
    monkeypatch.setenv("WORKER_JOB", " Expiry_Sweep ")

    assert worker._resolve_job_name() == "expiry_sweep"


@pytest.mark.asyncio
async def test_migrate_job_opens_applies_and_closes_pool(monkeypatch):
    pool = MagicMock()
    pool.initialize = AsyncMock()
    pool.apply_migrations = AsyncMock(return_value=["001_friends_feed.sql"])
    pool.close = AsyncMock()
    monkeypatch.setattr(worker, "db_pool", pool)

    await worker.run_worker("migrate")

    pool.initialize.assert_awaited_once()
    pool.apply_migrations.assert_awaited_once()
    pool.close.assert_awaited_once()
