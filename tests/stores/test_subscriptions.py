import pytest

from mqstore.errors import InvalidTopicFilterError
from mqstore.shared.packets import ClientSubscription, OfflineCounts, Subscription


async def collect(iterator):
    return [item async for item in iterator]


@pytest.mark.asyncio
async def test_add_and_list_by_client(persistence):
    await persistence.add_subscriptions("c1", [Subscription("a/b", 0), Subscription("a/+", 1)])
    assert await persistence.subscriptions_by_client("c1") == [Subscription("a/b", 0), Subscription("a/+", 1)]
    assert await persistence.subscriptions_by_client("nobody") == []


@pytest.mark.asyncio
async def test_resubscribe_replaces_qos(persistence):
    await persistence.add_subscriptions("c1", [Subscription("a/b", 0)])
    await persistence.add_subscriptions("c1", [Subscription("a/b", 2)])
    assert await persistence.subscriptions_by_client("c1") == [Subscription("a/b", 2)]


@pytest.mark.asyncio
async def test_duplicate_topics_in_one_batch_keep_last(persistence):
    await persistence.add_subscriptions("c1", [Subscription("x", 0), Subscription("x", 1)])
    assert await persistence.subscriptions_by_client("c1") == [Subscription("x", 1)]


@pytest.mark.asyncio
async def test_empty_batch_is_a_no_op(persistence):
    await persistence.add_subscriptions("c1", [])
    assert await persistence.count_offline() == OfflineCounts(0, 0)


@pytest.mark.asyncio
async def test_invalid_filter_rejected_before_write(persistence):
    with pytest.raises(InvalidTopicFilterError):
        await persistence.add_subscriptions("c1", [Subscription("ok", 0), Subscription("bad/#/x", 0)])
    assert await persistence.subscriptions_by_client("c1") == []


@pytest.mark.asyncio
async def test_remove_subscriptions(persistence):
    await persistence.add_subscriptions("c1", [Subscription("a", 0), Subscription("b", 0), Subscription("c", 0)])
    assert await persistence.remove_subscriptions("c1", ["a", "c", "missing"]) == 2
    assert await persistence.subscriptions_by_client("c1") == [Subscription("b", 0)]
    assert await persistence.remove_subscriptions("c1", []) == 0


@pytest.mark.asyncio
async def test_exact_topic_lookup_is_equality(persistence):
    await persistence.add_subscriptions("c1", [Subscription("sensors/room1/temp", 1)])
    await persistence.add_subscriptions("c2", [Subscription("sensors/+/temp", 0)])
    await persistence.add_subscriptions("c3", [Subscription("sensors/room1/temp/x", 0)])

    result = await persistence.subscriptions_by_topic("sensors/room1/temp")
    assert result == [ClientSubscription("c1", "sensors/room1/temp", 1)]


@pytest.mark.asyncio
async def test_wildcard_topic_lookup(persistence):
    await persistence.add_subscriptions("c1", [Subscription("home/kitchen/light", 0)])
    await persistence.add_subscriptions("c2", [Subscription("home/hall/light", 1)])
    await persistence.add_subscriptions("c3", [Subscription("home/hall/door", 0)])
    await persistence.add_subscriptions("c4", [Subscription("home/a/b/light", 0)])

    result = await persistence.subscriptions_by_topic("home/+/light")
    assert {s.client_id for s in result} == {"c1", "c2"}

    result = await persistence.subscriptions_by_topic("home/#")
    assert {s.client_id for s in result} == {"c1", "c2", "c3", "c4"}


@pytest.mark.asyncio
async def test_clean_subscriptions(persistence):
    await persistence.add_subscriptions("c1", [Subscription("a", 0), Subscription("b", 0)])
    await persistence.add_subscriptions("c2", [Subscription("a", 0)])
    assert await persistence.clean_subscriptions("c1") == 2
    assert await persistence.subscriptions_by_client("c1") == []
    assert await persistence.subscriptions_by_client("c2") == [Subscription("a", 0)]


@pytest.mark.asyncio
async def test_count_offline(persistence):
    await persistence.add_subscriptions("c1", [Subscription("a", 0), Subscription("b", 1)])
    await persistence.add_subscriptions("c2", [Subscription("a", 0), Subscription("c", 2)])
    counts = await persistence.count_offline()
    assert counts == OfflineCounts(subscriptions=4, clients=2)


@pytest.mark.asyncio
async def test_list_clients_for_topic(persistence):
    await persistence.add_subscriptions("c2", [Subscription("a/b", 0)])
    await persistence.add_subscriptions("c1", [Subscription("a/b", 1), Subscription("a/c", 0)])
    await persistence.add_subscriptions("c3", [Subscription("a/+", 0)])
    assert await collect(persistence.list_clients_for_topic("a/b")) == ["c1", "c2"]
    assert await collect(persistence.list_clients_for_topic("zzz")) == []


@pytest.mark.asyncio
async def test_list_clients_for_topic_validates_eagerly(persistence):
    with pytest.raises(InvalidTopicFilterError):
        persistence.list_clients_for_topic("")
