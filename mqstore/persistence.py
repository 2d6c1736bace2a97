"""
Public persistence contract used by the broker.

``Persistence`` owns the connection manager, the lifecycle gate and the
expiry task. Each method checks the gate, then delegates to one store
function which runs a single statement on a pooled connection.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, AsyncIterator, Iterable, List, Optional

from mqstore.config.db_url import sanitize_url_for_log
from mqstore.config.settings import Settings, load_settings
from mqstore.database.dbm import DBM
from mqstore.database.expiry import ExpiryTask
from mqstore.database.provision import provision_schema
from mqstore.errors import BackingStoreError, ClosedError, ProvisioningError
from mqstore.lifecycle import LifecycleGate, LifecycleState
from mqstore.shared.logging import configure_logging
from mqstore.shared.packets import (
    ClientSubscription,
    OfflineCounts,
    Packet,
    RetainedMessage,
    Subscription,
    WillMessage,
)
from mqstore.stores import incoming, outgoing, retained, subscriptions, wills

logger = logging.getLogger(__name__)


class Persistence:
    def __init__(self, settings: Optional[Settings] = None, **overrides: Any):
        self.settings = settings if settings is not None else load_settings(**overrides)
        if self.settings.logging.configure:
            configure_logging(self.settings.logging.level, log_sql=self.settings.logging.log_sql)
        self.gate = LifecycleGate()
        self.dbm = DBM(self.settings)
        self._expiry = ExpiryTask(self.dbm, self.settings.ttl)
        self._setup_lock = asyncio.Lock()

    @classmethod
    async def create(cls, settings: Optional[Settings] = None, **overrides: Any) -> "Persistence":
        """Construct and set up in one step."""
        persistence = cls(settings, **overrides)
        await persistence.setup()
        return persistence

    @property
    def state(self) -> LifecycleState:
        return self.gate.state

    async def setup(self) -> LifecycleState:
        """Open the pool, provision the schema and move to READY.

        On failure the pool is disposed, the state stays INITIALIZING and
        ``ProvisioningError`` is raised; ``setup`` may then be retried.
        """
        async with self._setup_lock:
            return await self._setup()

    async def _setup(self) -> LifecycleState:
        if self.gate.closed:
            raise ClosedError("setup", self.gate.state.value)
        if self.gate.ready:
            return self.gate.state

        logger.info({"mqstore": {"event": "setup", "url": sanitize_url_for_log(self.dbm.url)}})
        try:
            await self.dbm.start()
            await provision_schema(self.dbm)
        except BackingStoreError as exc:
            await self.dbm.dispose()
            if isinstance(exc, ProvisioningError):
                raise
            raise ProvisioningError(str(exc), orig=exc.orig) from exc

        if self.gate.closed:
            # close() ran while provisioning
            await self.dbm.dispose()
            raise ClosedError("setup", self.gate.state.value)
        self.gate.mark_ready()
        self._expiry.start()
        return self.gate.state

    async def close(self) -> None:
        """Stop expiry and release the pool. Closing twice is a no-op."""
        if not self.gate.close():
            return
        await self._expiry.stop()
        await self.dbm.dispose()

    async def __aenter__(self) -> "Persistence":
        await self.setup()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    # ------------------------------------------------------------------
    # Retained messages
    # ------------------------------------------------------------------

    async def store_retained(self, packet: Packet | RetainedMessage) -> None:
        self.gate.check("store_retained")
        await retained.store_retained(self.dbm, packet)

    def retained_matching(self, filters: Iterable[str]) -> AsyncIterator[RetainedMessage]:
        """Stream retained messages matching any of ``filters`` in one query."""
        self.gate.check("retained_matching")
        return retained.retained_matching(self.dbm, filters)

    def retained_stream(self, topic_filter: str) -> AsyncIterator[RetainedMessage]:
        self.gate.check("retained_stream")
        return retained.retained_matching(self.dbm, [topic_filter])

    # ------------------------------------------------------------------
    # Subscriptions
    # ------------------------------------------------------------------

    async def add_subscriptions(self, client_id: str, subs: Iterable[Subscription]) -> None:
        self.gate.check("add_subscriptions")
        await subscriptions.add_subscriptions(self.dbm, client_id, subs)

    async def remove_subscriptions(self, client_id: str, topics: Iterable[str]) -> int:
        self.gate.check("remove_subscriptions")
        return await subscriptions.remove_subscriptions(self.dbm, client_id, topics)

    async def subscriptions_by_client(self, client_id: str) -> List[Subscription]:
        self.gate.check("subscriptions_by_client")
        return await subscriptions.subscriptions_by_client(self.dbm, client_id)

    async def subscriptions_by_topic(self, topic_filter: str) -> List[ClientSubscription]:
        self.gate.check("subscriptions_by_topic")
        return await subscriptions.subscriptions_by_topic(self.dbm, topic_filter)

    async def clean_subscriptions(self, client_id: str) -> int:
        self.gate.check("clean_subscriptions")
        return await subscriptions.clean_subscriptions(self.dbm, client_id)

    async def count_offline(self) -> OfflineCounts:
        self.gate.check("count_offline")
        return await subscriptions.count_offline(self.dbm)

    def list_clients_for_topic(self, topic: str) -> AsyncIterator[str]:
        self.gate.check("list_clients_for_topic")
        return subscriptions.list_clients_for_topic(self.dbm, topic)

    # ------------------------------------------------------------------
    # Offline queue
    # ------------------------------------------------------------------

    async def enqueue_outgoing(self, subs: Iterable[ClientSubscription], packet: Packet) -> int:
        self.gate.check("enqueue_outgoing")
        return await outgoing.enqueue_outgoing(self.dbm, subs, packet)

    async def enqueue_outgoing_for(self, subscription: ClientSubscription, packet: Packet) -> int:
        self.gate.check("enqueue_outgoing_for")
        return await outgoing.enqueue_outgoing(self.dbm, [subscription], packet)

    async def update_outgoing(self, client_id: str, packet: Packet) -> int:
        self.gate.check("update_outgoing")
        return await outgoing.update_outgoing(self.dbm, client_id, packet)

    async def clear_outgoing_by_message_id(self, client_id: str, message_id: int) -> int:
        self.gate.check("clear_outgoing_by_message_id")
        return await outgoing.clear_outgoing_by_message_id(self.dbm, client_id, message_id)

    def outgoing_stream(self, client_id: str) -> AsyncIterator[Packet]:
        self.gate.check("outgoing_stream")
        return outgoing.outgoing_stream(self.dbm, client_id)

    # ------------------------------------------------------------------
    # Incoming QoS 2 dedup
    # ------------------------------------------------------------------

    async def store_incoming(self, client_id: str, packet: Packet) -> None:
        self.gate.check("store_incoming")
        await incoming.store_incoming(self.dbm, client_id, packet)

    async def get_incoming(self, client_id: str, message_id: int) -> Packet:
        self.gate.check("get_incoming")
        return await incoming.get_incoming(self.dbm, client_id, message_id)

    async def delete_incoming(self, client_id: str, message_id: int) -> int:
        self.gate.check("delete_incoming")
        return await incoming.delete_incoming(self.dbm, client_id, message_id)

    # ------------------------------------------------------------------
    # Wills
    # ------------------------------------------------------------------

    async def put_will(self, client_id: str, packet: Packet, broker_id: Optional[str] = None) -> WillMessage:
        self.gate.check("put_will")
        return await wills.put_will(self.dbm, client_id, packet, broker_id)

    async def get_will(self, client_id: str) -> Optional[WillMessage]:
        self.gate.check("get_will")
        return await wills.get_will(self.dbm, client_id)

    async def delete_will(self, client_id: str) -> int:
        self.gate.check("delete_will")
        return await wills.delete_will(self.dbm, client_id)

    def stream_wills_by_brokers(self, broker_ids: Iterable[str]) -> AsyncIterator[WillMessage]:
        self.gate.check("stream_wills_by_brokers")
        return wills.stream_wills_by_brokers(self.dbm, broker_ids)


__all__ = ["Persistence"]
