from __future__ import annotations

from contextlib import aclosing
from typing import AsyncIterator, Iterable, List

from sqlalchemy import delete, distinct, func, select

from mqstore.database.dbm import DBM
from mqstore.database.schema import SubscriptionRow
from mqstore.database.schema.base import utcnow
from mqstore.database.upsert import upsert
from mqstore.shared.packets import ClientSubscription, OfflineCounts, Subscription
from mqstore.topics import compile_filter, has_wildcards, validate_filter


async def add_subscriptions(dbm: DBM, client_id: str, subscriptions: Iterable[Subscription]) -> None:
    """Upsert every subscription of ``client_id`` in one statement."""
    # The same topic twice in one statement is a conflict error on PostgreSQL
    latest: dict[str, int] = {}
    for subscription in subscriptions:
        validate_filter(subscription.topic)
        latest[subscription.topic] = int(subscription.qos)
    if not latest:
        return

    now = utcnow()
    rows = [
        {"client_id": client_id, "topic": topic, "qos": qos, "created_at": now}
        for topic, qos in latest.items()
    ]
    stmt = upsert(
        dbm.dialect,
        SubscriptionRow,
        rows,
        conflict_columns=["client_id", "topic"],
        update_columns=["qos", "created_at"],
    )
    await dbm.write(stmt)


async def remove_subscriptions(dbm: DBM, client_id: str, topics: Iterable[str]) -> int:
    topics = list(dict.fromkeys(topics))
    if not topics:
        return 0
    stmt = delete(SubscriptionRow).where(
        SubscriptionRow.client_id == client_id,
        SubscriptionRow.topic.in_(topics),
    )
    return await dbm.write(stmt)


async def subscriptions_by_client(dbm: DBM, client_id: str) -> List[Subscription]:
    stmt = (
        select(SubscriptionRow.topic, SubscriptionRow.qos)
        .where(SubscriptionRow.client_id == client_id)
        .order_by(SubscriptionRow.id)
    )
    rows = await dbm.read(stmt)
    return [Subscription(topic=row["topic"], qos=row["qos"]) for row in rows]


async def subscriptions_by_topic(dbm: DBM, topic_filter: str) -> List[ClientSubscription]:
    """Return subscriptions whose stored topic matches ``topic_filter``.

    Without wildcards this is an exact lookup on the topic index; otherwise
    the compiled pattern is evaluated by the database.
    """
    if has_wildcards(topic_filter):
        condition = SubscriptionRow.topic.regexp_match(compile_filter(topic_filter))
    else:
        validate_filter(topic_filter)
        condition = SubscriptionRow.topic == topic_filter
    stmt = (
        select(SubscriptionRow.client_id, SubscriptionRow.topic, SubscriptionRow.qos)
        .where(condition)
        .order_by(SubscriptionRow.id)
    )
    rows = await dbm.read(stmt)
    return [
        ClientSubscription(client_id=row["client_id"], topic=row["topic"], qos=row["qos"])
        for row in rows
    ]


async def clean_subscriptions(dbm: DBM, client_id: str) -> int:
    stmt = delete(SubscriptionRow).where(SubscriptionRow.client_id == client_id)
    return await dbm.write(stmt)


async def count_offline(dbm: DBM) -> OfflineCounts:
    stmt = select(
        func.count(SubscriptionRow.id).label("subscriptions"),
        func.count(distinct(SubscriptionRow.client_id)).label("clients"),
    )
    rows = await dbm.read(stmt)
    row = rows[0]
    return OfflineCounts(subscriptions=int(row["subscriptions"] or 0), clients=int(row["clients"] or 0))


def list_clients_for_topic(dbm: DBM, topic: str) -> AsyncIterator[str]:
    validate_filter(topic)
    return _stream_clients_for_topic(dbm, topic)


async def _stream_clients_for_topic(dbm: DBM, topic: str) -> AsyncIterator[str]:
    stmt = (
        select(SubscriptionRow.client_id)
        .distinct()
        .where(SubscriptionRow.topic == topic)
        .order_by(SubscriptionRow.client_id)
    )
    async with aclosing(dbm.stream(stmt)) as rows:
        async for row in rows:
            yield row["client_id"]


__all__ = [
    "add_subscriptions",
    "remove_subscriptions",
    "subscriptions_by_client",
    "subscriptions_by_topic",
    "clean_subscriptions",
    "count_offline",
    "list_clients_for_topic",
]
