import asyncio
from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock, MagicMock

import pytest
from sqlalchemy.dialects import sqlite

from mqstore.config.settings import TTLSettings
from mqstore.database import expiry
from mqstore.database.expiry import ExpiryTask, expiry_statement, run_expiry
from mqstore.database.schema import RetainedRow
from mqstore.errors import BackingStoreError
from mqstore.shared.packets import Packet

NOW = datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)


def test_expiry_statement_filters_on_created_at():
    stmt = expiry_statement(RetainedRow, NOW)
    sql = str(stmt.compile(dialect=sqlite.dialect()))
    assert sql.startswith("DELETE FROM mqstore_retained")
    assert "created_at <" in sql


@pytest.mark.asyncio
async def test_runs_one_delete_per_enabled_table():
    db = MagicMock()
    db.write = AsyncMock(return_value=3)
    ttl = TTLSettings(packets=60, subscriptions=600)
    result = await run_expiry(db, ttl, now=NOW)
    assert db.write.call_count == 5
    assert result == {"subscriptions": 3, "incoming": 3, "outgoing": 3, "retained": 3, "will": 3}


@pytest.mark.asyncio
async def test_nothing_configured_issues_no_statements():
    db = MagicMock()
    db.write = AsyncMock(return_value=0)
    assert await run_expiry(db, TTLSettings(), now=NOW) == {}
    db.write.assert_not_called()


@pytest.mark.asyncio
async def test_table_failure_is_counted_as_zero():
    db = MagicMock()
    db.write = AsyncMock(side_effect=[BackingStoreError("locked"), 2])
    ttl = TTLSettings(packets={"incoming": 10, "will": 10})
    result = await run_expiry(db, ttl, now=NOW)
    assert result == {"incoming": 0, "will": 2}


@pytest.mark.asyncio
async def test_expires_old_rows(persistence):
    await persistence.store_retained(Packet(topic="old/topic", payload=b"x"))
    ttl = TTLSettings(packets={"retained": 3600})

    assert await run_expiry(persistence.dbm, ttl) == {"retained": 0}
    later = datetime.now(timezone.utc) + timedelta(hours=2)
    assert await run_expiry(persistence.dbm, ttl, now=later) == {"retained": 1}
    assert [m async for m in persistence.retained_matching(["#"])] == []


def test_task_does_not_start_without_ttl():
    task = ExpiryTask(MagicMock(), TTLSettings())
    assert task.start() is False
    assert not task.running


@pytest.mark.asyncio
async def test_task_runs_on_interval_and_stops(monkeypatch):
    calls = AsyncMock(return_value={})
    monkeypatch.setattr(expiry, "run_expiry", calls)
    task = ExpiryTask(MagicMock(), TTLSettings(packets=60, check_interval_seconds=0.01))

    assert task.start() is True
    assert task.running
    await asyncio.sleep(0.05)
    await task.stop()

    assert not task.running
    assert calls.await_count >= 1


@pytest.mark.asyncio
async def test_stop_without_start():
    await ExpiryTask(MagicMock(), TTLSettings()).stop()
