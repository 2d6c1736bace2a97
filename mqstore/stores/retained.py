from __future__ import annotations

from contextlib import aclosing
from typing import AsyncIterator, Iterable

from sqlalchemy import select

from mqstore.database.dbm import DBM
from mqstore.database.schema import RetainedRow
from mqstore.database.schema.base import utcnow
from mqstore.database.upsert import upsert
from mqstore.shared.packets import Packet, RetainedMessage
from mqstore.topics import TopicMatcher


async def store_retained(dbm: DBM, packet: Packet | RetainedMessage) -> None:
    """Insert or replace the retained message for ``packet.topic``.

    An empty payload is stored like any other; treating it as "clear" is up
    to the caller.
    """
    row = {
        "topic": packet.topic,
        "payload": packet.payload,
        "qos": int(packet.qos),
        "created_at": utcnow(),
    }
    stmt = upsert(
        dbm.dialect,
        RetainedRow,
        row,
        conflict_columns=["topic"],
        update_columns=["payload", "qos", "created_at"],
    )
    await dbm.write(stmt)


def retained_matching(dbm: DBM, filters: Iterable[str]) -> AsyncIterator[RetainedMessage]:
    """Stream retained messages matching any of ``filters``.

    Filters are validated here, before any I/O; rows are fetched lazily.
    """
    matcher = TopicMatcher(filters)
    return _stream_retained(dbm, matcher)


async def _stream_retained(dbm: DBM, matcher: TopicMatcher) -> AsyncIterator[RetainedMessage]:
    if not matcher:
        return
    stmt = (
        select(RetainedRow.topic, RetainedRow.payload, RetainedRow.qos)
        .where(matcher.clause(RetainedRow.topic))
        .order_by(RetainedRow.topic)
    )
    async with aclosing(dbm.stream(stmt)) as rows:
        async for row in rows:
            yield RetainedMessage(topic=row["topic"], payload=row["payload"], qos=row["qos"])


__all__ = ["store_retained", "retained_matching"]
