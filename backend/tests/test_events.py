from datetime import date

import pytest

from conftest import make_medicine, receive
from crud.stock_allocator import allocate_sale
from schemas.sale_orders import CartItem, SaleOrderCreate
from utils.events import ChangeFeed, change_feed, INVENTORY_BATCHES, SALE_ORDERS
from utils.exceptions import InsufficientStock


@pytest.fixture
def recorded():
    events = []
    unsubscribers = [
        change_feed.subscribe(channel, events.append)
        for channel in (SALE_ORDERS, INVENTORY_BATCHES)
    ]
    yield events
    for unsubscribe in unsubscribers:
        unsubscribe()


def test_subscribers_receive_published_events():
    feed = ChangeFeed()
    seen = []
    feed.subscribe("medicines", seen.append)

    feed.publish("medicines", "created", "clinic-a", 5, extra="x")

    assert seen == [{"channel": "medicines", "action": "created", "tenant_id": "clinic-a", "record_id": 5, "extra": "x"}]


def test_unsubscribe_stops_delivery():
    feed = ChangeFeed()
    seen = []
    unsubscribe = feed.subscribe("medicines", seen.append)
    unsubscribe()

    feed.publish("medicines", "created", "clinic-a", 5)

    assert seen == []


def test_a_failing_subscriber_does_not_stop_the_others(caplog):
    feed = ChangeFeed()
    seen = []

    def broken(event):
        raise RuntimeError("dashboard offline")

    feed.subscribe("sale_orders", broken)
    feed.subscribe("sale_orders", seen.append)

    feed.publish("sale_orders", "created", "clinic-a", 1)

    assert len(seen) == 1
    assert "dashboard offline" in caplog.text


def test_checkout_publishes_after_commit(db, context, recorded):
    medicine = make_medicine(db, context)
    early = receive(db, context, medicine.id, 2, date(2030, 1, 1))
    late = receive(db, context, medicine.id, 5, date(2030, 2, 1))
    recorded.clear()

    order = allocate_sale(db, SaleOrderCreate(items=[CartItem(medicine_id=medicine.id, quantity=3, unit_price=100)]), context)

    assert [(e["channel"], e["action"], e["record_id"]) for e in recorded] == [
        (SALE_ORDERS, "created", order.id),
        (INVENTORY_BATCHES, "allocated", early.id),
        (INVENTORY_BATCHES, "allocated", late.id),
    ]


def test_failed_checkout_publishes_nothing(db, context, recorded):
    medicine = make_medicine(db, context)
    receive(db, context, medicine.id, 2, date(2030, 1, 1))
    recorded.clear()

    with pytest.raises(InsufficientStock):
        allocate_sale(db, SaleOrderCreate(items=[CartItem(medicine_id=medicine.id, quantity=3, unit_price=100)]), context)

    assert recorded == []
