from __future__ import annotations

from contextlib import aclosing
from typing import AsyncIterator, Iterable, Optional

from sqlalchemy import delete, select

from mqstore.database.dbm import DBM
from mqstore.database.schema import WillRow
from mqstore.database.schema.base import utcnow
from mqstore.database.upsert import upsert
from mqstore.shared.packets import Packet, WillMessage

_WILL_COLUMNS = (
    WillRow.client_id,
    WillRow.topic,
    WillRow.payload,
    WillRow.qos,
    WillRow.retain_flag,
    WillRow.broker_id,
)


def _to_will(row) -> WillMessage:
    return WillMessage(
        client_id=row["client_id"],
        topic=row["topic"],
        payload=row["payload"],
        qos=row["qos"],
        retain=bool(row["retain_flag"]),
        broker_id=row["broker_id"],
    )


async def put_will(dbm: DBM, client_id: str, packet: Packet, broker_id: Optional[str]) -> WillMessage:
    """Replace the client's will, including the broker that owns it."""
    row = {
        "client_id": client_id,
        "topic": packet.topic,
        "payload": packet.payload,
        "qos": int(packet.qos),
        "retain_flag": packet.retain,
        "broker_id": broker_id,
        "created_at": utcnow(),
    }
    stmt = upsert(
        dbm.dialect,
        WillRow,
        row,
        conflict_columns=["client_id"],
        update_columns=["topic", "payload", "qos", "retain_flag", "broker_id", "created_at"],
    )
    await dbm.write(stmt)
    return WillMessage(
        client_id=client_id,
        topic=packet.topic,
        payload=packet.payload,
        qos=packet.qos,
        retain=packet.retain,
        broker_id=broker_id,
    )


async def get_will(dbm: DBM, client_id: str) -> Optional[WillMessage]:
    stmt = select(*_WILL_COLUMNS).where(WillRow.client_id == client_id).limit(1)
    rows = await dbm.read(stmt)
    if not rows:
        return None
    return _to_will(rows[0])


async def delete_will(dbm: DBM, client_id: str) -> int:
    stmt = delete(WillRow).where(WillRow.client_id == client_id)
    return await dbm.write(stmt)


def stream_wills_by_brokers(dbm: DBM, broker_ids: Iterable[str]) -> AsyncIterator[WillMessage]:
    """Stream wills owned by any of ``broker_ids``; no query for an empty set."""
    return _stream_wills(dbm, list(dict.fromkeys(broker_ids)))


async def _stream_wills(dbm: DBM, broker_ids: list[str]) -> AsyncIterator[WillMessage]:
    if not broker_ids:
        return
    stmt = select(*_WILL_COLUMNS).where(WillRow.broker_id.in_(broker_ids)).order_by(WillRow.id)
    async with aclosing(dbm.stream(stmt)) as rows:
        async for row in rows:
            yield _to_will(row)


__all__ = ["put_will", "get_will", "delete_will", "stream_wills_by_brokers"]
