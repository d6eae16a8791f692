from __future__ import annotations

from datetime import datetime

from conftest import TAIPEI, make_order, rice
from smartsnack.errors import SubscriptionError
from smartsnack.models import OrderStatus
from smartsnack.projection import OrderProjection
from smartsnack.records import to_record
from smartsnack.store import Subscription


class ScriptedStore:
    """Store double whose feed is driven by the test."""

    def __init__(self) -> None:
        self.on_snapshot = None
        self.on_error = None
        self.subscribe_calls = 0

    def subscribe(self, on_snapshot, on_error=None):
        self.subscribe_calls += 1
        self.on_snapshot = on_snapshot
        self.on_error = on_error
        return Subscription(lambda _: None)


def test_start_delivers_live_snapshot_immediately(store):
    order_id = store.create("5", [rice()])
    projection = OrderProjection(store)

    projection.start()

    assert projection.is_live
    assert [order.id for order in projection.orders] == [order_id]
    assert projection.snapshot.received_at is not None
    projection.stop()


def test_snapshot_is_replaced_on_every_write(store, projection):
    before = projection.snapshot
    order_id = store.create("5", [rice()])

    after = projection.snapshot
    assert after is not before
    assert before.orders == ()
    assert after.get(order_id).status is OrderStatus.PENDING


def test_stop_is_idempotent_and_start_resubscribes(store, projection):
    projection.stop()
    projection.stop()
    store.create("5", [rice()])

    assert not projection.running
    assert projection.orders == ()

    projection.start()
    assert projection.running
    assert len(projection.orders) == 1


def test_start_twice_keeps_one_subscription():
    feed = ScriptedStore()
    projection = OrderProjection(feed)

    first = projection.start()
    second = projection.start()

    assert first is second
    assert feed.subscribe_calls == 1


def test_feed_error_keeps_last_snapshot():
    feed = ScriptedStore()
    projection = OrderProjection(feed)
    projection.start()
    feed.on_snapshot([to_record(make_order("a"))])
    good = projection.snapshot

    feed.on_error(SubscriptionError("connection lost"))

    assert projection.snapshot is good
    assert [order.id for order in projection.orders] == ["a"]


def test_bootstrap_from_cache_is_stale_until_feed_arrives(cache):
    cache.save_orders([to_record(make_order("cached"))])
    feed = ScriptedStore()
    projection = OrderProjection(feed, cache)

    assert projection.bootstrap() is True
    assert not projection.is_live
    assert [order.id for order in projection.orders] == ["cached"]

    projection.start()
    feed.on_snapshot([])
    assert projection.is_live
    assert projection.orders == ()


def test_bootstrap_without_cached_data_does_nothing(cache):
    projection = OrderProjection(ScriptedStore(), cache)

    assert projection.bootstrap() is False
    assert projection.orders == ()


def test_live_snapshots_are_mirrored_to_the_cache(store, cache, projection):
    order_id = store.create("5", [rice()])

    cached = cache.load_orders()
    assert [record["id"] for record in cached] == [order_id]


def test_unusable_created_at_is_replaced_with_receipt_time(clock):
    feed = ScriptedStore()
    projection = OrderProjection(feed, clock=clock)
    projection.start()
    record = to_record(make_order("a"))
    record["createdAt"] = "garbage"

    feed.on_snapshot([record])

    assert projection.orders[0].created_at == datetime(2024, 3, 15, 12, 0, tzinfo=TAIPEI)


def test_failing_listener_does_not_stop_others(store, projection):
    seen = []

    def broken(_snapshot):
        raise RuntimeError("boom")

    projection.add_listener(broken)
    projection.add_listener(seen.append)
    store.create("5", [rice()])

    assert len(seen) == 1


def test_removed_listener_is_not_called(store, projection):
    seen = []
    remove = projection.add_listener(seen.append)

    remove()
    remove()
    store.create("5", [rice()])

    assert seen == []


def test_cache_keeps_raw_records_not_parse_defaults(cache, clock):
    feed = ScriptedStore()
    projection = OrderProjection(feed, cache, clock=clock)
    projection.start()
    record = to_record(make_order("a"))
    record["createdAt"] = "garbage"

    feed.on_snapshot([record])

    (cached,) = cache.load_orders()
    assert cached["createdAt"] == "garbage"
