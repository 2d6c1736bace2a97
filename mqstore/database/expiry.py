"""TTL expiry for the persistence tables.

One ``DELETE ... WHERE created_at < :cutoff`` per table with a TTL, issued on
a fixed cadence by ``ExpiryTask`` while the persistence is READY.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timedelta, timezone
from typing import Dict, Optional

from sqlalchemy import delete
from sqlalchemy.sql.dml import Delete

from mqstore.config.settings import TTLSettings
from mqstore.database.dbm import DBM
from mqstore.database.schema import IncomingRow, OutgoingRow, RetainedRow, SubscriptionRow, WillRow

logger = logging.getLogger(__name__)

EXPIRABLE_TABLES = {
    "subscriptions": SubscriptionRow,
    "incoming": IncomingRow,
    "outgoing": OutgoingRow,
    "retained": RetainedRow,
    "will": WillRow,
}


def expiry_statement(model, cutoff: datetime) -> Delete:
    """Delete rows of ``model`` created before ``cutoff``."""
    return delete(model).where(model.created_at < cutoff)


def _ensure_utc(value: Optional[datetime]) -> datetime:
    result = value or datetime.now(timezone.utc)
    if result.tzinfo is None:
        return result.replace(tzinfo=timezone.utc)
    return result.astimezone(timezone.utc)


async def run_expiry(dbm: DBM, ttl: TTLSettings, now: Optional[datetime] = None) -> Dict[str, int]:
    """Run one expiry pass and return deleted row counts by table.

    Each table is deleted in its own transaction; a failure on one table is
    logged and counted as zero.
    """
    current = _ensure_utc(now)
    deleted: Dict[str, int] = {}
    for name, seconds in ttl.enabled().items():
        stmt = expiry_statement(EXPIRABLE_TABLES[name], current - timedelta(seconds=seconds))
        try:
            deleted[name] = int(await dbm.write(stmt))
        except Exception as exc:
            logger.warning({"mqstore_expiry": {"table": name, "error": str(exc)}})
            deleted[name] = 0

    if any(count > 0 for count in deleted.values()):
        logger.info({"mqstore_expiry": {"deleted": deleted}})
    return deleted


class ExpiryTask:
    """Background asyncio task that calls ``run_expiry`` every interval."""

    def __init__(self, dbm: DBM, ttl: TTLSettings):
        self.dbm = dbm
        self.ttl = ttl
        self._task: asyncio.Task | None = None

    @property
    def enabled(self) -> bool:
        return bool(self.ttl.enabled())

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> bool:
        """Schedule the loop. Returns False when no TTL is configured."""
        if self.running:
            return True
        if not self.enabled:
            return False
        self._task = asyncio.create_task(self._loop(), name="mqstore-expiry")
        logger.info(
            {
                "mqstore_expiry": {
                    "event": "started",
                    "interval_seconds": self.ttl.check_interval_seconds,
                    "tables": sorted(self.ttl.enabled()),
                }
            }
        )
        return True

    async def stop(self) -> None:
        task, self._task = self._task, None
        if task is None:
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
        logger.info({"mqstore_expiry": {"event": "stopped"}})

    async def _loop(self) -> None:
        interval = self.ttl.check_interval_seconds
        while True:
            await asyncio.sleep(interval)
            await run_expiry(self.dbm, self.ttl)


__all__ = ["EXPIRABLE_TABLES", "expiry_statement", "run_expiry", "ExpiryTask"]
