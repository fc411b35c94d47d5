"""
Shared fixtures: sample order documents and in-memory fakes of the store and clock.
"""

import copy
import threading
from collections import Counter

import pytest

from order_service.deadline import check_deadline
from order_service.errors import ConflictError, NotFoundError
from order_service.models import Order

ORDER_PAYLOAD = {
    "order_uid": "b563feb7b2b84b6test",
    "track_number": "WBILMTESTTRACK",
    "entry": "WBIL",
    "delivery": {
        "name": "Test Testov",
        "phone": "+9720000000",
        "zip": "2639809",
        "city": "Kiryat Mozkin",
        "address": "Ploshad Mira 15",
        "region": "Kraiot",
        "email": "test@gmail.com",
    },
    "payment": {
        "transaction": "b563feb7b2b84b6test",
        "request_id": "",
        "currency": "USD",
        "provider": "wbpay",
        "amount": 1817,
        "payment_dt": 1637907727,
        "bank": "alpha",
        "delivery_cost": 1500,
        "goods_total": 317,
        "custom_fee": 0,
    },
    "items": [
        {
            "chrt_id": 9934930,
            "track_number": "WBILMTESTTRACK",
            "price": 453,
            "rid": "ab4219087a764ae0btest",
            "name": "Mascaras",
            "sale": 30,
            "size": "0",
            "total_price": 317,
            "nm_id": 2389212,
            "brand": "Vivienne Sabo",
            "status": 202,
        }
    ],
    "locale": "en",
    "internal_signature": "",
    "customer_id": "test",
    "delivery_service": "meest",
    "shardkey": "9",
    "sm_id": 99,
    "date_created": "2021-11-26T06:22:19Z",
    "oof_shard": "1",
}


class InMemoryOrderStore:
    """OrderStore fake that counts calls per operation."""

    def __init__(self):
        self.orders = {}
        self.calls = Counter()
        self._lock = threading.Lock()

    def create(self, order, deadline=None):
        self.calls["create"] += 1
        check_deadline(deadline, "create")
        with self._lock:
            if order.order_uid in self.orders:
                raise ConflictError(f"Order {order.order_uid} already exists")
            self.orders[order.order_uid] = order
        return 1

    def get(self, order_id, deadline=None):
        self.calls["get"] += 1
        check_deadline(deadline, "get")
        try:
            return self.orders[order_id]
        except KeyError:
            raise NotFoundError(f"Order {order_id} not found")

    def list(self, deadline=None):
        self.calls["list"] += 1
        check_deadline(deadline, "list")
        return list(self.orders.values())


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, now=1000.0):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


@pytest.fixture
def order_payload():
    return copy.deepcopy(ORDER_PAYLOAD)


@pytest.fixture
def make_order():
    """Factory building a valid Order with the given order_uid."""
    def _make(order_uid=ORDER_PAYLOAD["order_uid"], **overrides):
        payload = copy.deepcopy(ORDER_PAYLOAD)
        payload["order_uid"] = order_uid
        payload.update(overrides)
        return Order.model_validate(payload)
    return _make


@pytest.fixture
def store():
    return InMemoryOrderStore()


@pytest.fixture
def clock():
    return FakeClock()
