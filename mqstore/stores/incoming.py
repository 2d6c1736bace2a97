from __future__ import annotations

from sqlalchemy import delete, select

from mqstore.database.dbm import DBM
from mqstore.database.schema import IncomingRow
from mqstore.database.schema.base import utcnow
from mqstore.database.upsert import upsert
from mqstore.errors import PacketNotFoundError
from mqstore.shared.packets import Packet


async def store_incoming(dbm: DBM, client_id: str, packet: Packet) -> None:
    """Record an in-flight QoS 2 packet; storing the same packet again is harmless."""
    if packet.message_id is None:
        raise ValueError("store_incoming requires a packet with a message_id")
    row = {
        "client_id": client_id,
        "message_id": packet.message_id,
        "topic": packet.topic,
        "payload": packet.payload,
        "qos": int(packet.qos),
        "created_at": utcnow(),
    }
    stmt = upsert(
        dbm.dialect,
        IncomingRow,
        row,
        conflict_columns=["client_id", "message_id"],
        update_columns=["topic", "payload", "qos"],
    )
    await dbm.write(stmt)


async def get_incoming(dbm: DBM, client_id: str, message_id: int) -> Packet:
    stmt = (
        select(IncomingRow.message_id, IncomingRow.topic, IncomingRow.payload, IncomingRow.qos)
        .where(IncomingRow.client_id == client_id, IncomingRow.message_id == message_id)
        .limit(1)
    )
    rows = await dbm.read(stmt)
    if not rows:
        raise PacketNotFoundError(client_id, message_id)
    row = rows[0]
    return Packet(
        topic=row["topic"],
        payload=row["payload"],
        qos=row["qos"],
        message_id=row["message_id"],
    )


async def delete_incoming(dbm: DBM, client_id: str, message_id: int) -> int:
    stmt = delete(IncomingRow).where(
        IncomingRow.client_id == client_id,
        IncomingRow.message_id == message_id,
    )
    return await dbm.write(stmt)


__all__ = ["store_incoming", "get_incoming", "delete_incoming"]
