from __future__ import annotations

from contextlib import aclosing
from typing import AsyncIterator, Iterable

from sqlalchemy import delete, insert, select, update

from mqstore.database.dbm import DBM
from mqstore.database.schema import OutgoingRow
from mqstore.database.schema.base import utcnow
from mqstore.shared.packets import ClientSubscription, Packet


async def enqueue_outgoing(dbm: DBM, subscriptions: Iterable[ClientSubscription], packet: Packet) -> int:
    """Append ``packet`` to the offline queue of every subscribed client."""
    client_ids = list(dict.fromkeys(subscription.client_id for subscription in subscriptions))
    if not client_ids:
        return 0
    now = utcnow()
    rows = [
        {
            "client_id": client_id,
            "message_id": packet.message_id,
            "topic": packet.topic,
            "payload": packet.payload,
            "qos": int(packet.qos),
            "retain_flag": packet.retain,
            "dup_flag": packet.dup,
            "created_at": now,
        }
        for client_id in client_ids
    ]
    # executemany in one transaction, in list order
    await dbm.write(insert(OutgoingRow), rows)
    return len(rows)


async def update_outgoing(dbm: DBM, client_id: str, packet: Packet) -> int:
    """Assign ``packet.message_id``/``packet.dup`` to the queued copy of ``packet``.

    Rows are matched on (client_id, topic, payload). The surrogate id is left
    untouched, so queue order does not change.
    """
    if packet.message_id is None:
        raise ValueError("update_outgoing requires a packet with a message_id")
    stmt = (
        update(OutgoingRow)
        .where(
            OutgoingRow.client_id == client_id,
            OutgoingRow.topic == packet.topic,
            OutgoingRow.payload == packet.payload,
        )
        .values(message_id=packet.message_id, dup_flag=packet.dup)
    )
    return await dbm.write(stmt)


async def clear_outgoing_by_message_id(dbm: DBM, client_id: str, message_id: int) -> int:
    stmt = delete(OutgoingRow).where(
        OutgoingRow.client_id == client_id,
        OutgoingRow.message_id == message_id,
    )
    return await dbm.write(stmt)


async def outgoing_stream(dbm: DBM, client_id: str) -> AsyncIterator[Packet]:
    stmt = (
        select(
            OutgoingRow.message_id,
            OutgoingRow.topic,
            OutgoingRow.payload,
            OutgoingRow.qos,
            OutgoingRow.retain_flag,
            OutgoingRow.dup_flag,
        )
        .where(OutgoingRow.client_id == client_id)
        .order_by(OutgoingRow.id)
    )
    async with aclosing(dbm.stream(stmt)) as rows:
        async for row in rows:
            yield Packet(
                topic=row["topic"],
                payload=row["payload"],
                qos=row["qos"],
                retain=bool(row["retain_flag"]),
                dup=bool(row["dup_flag"]),
                message_id=row["message_id"],
            )


__all__ = [
    "enqueue_outgoing",
    "update_outgoing",
    "clear_outgoing_by_message_id",
    "outgoing_stream",
]
