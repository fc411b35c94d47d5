"""
Unit tests for the cache-aside OrderReader.
"""

from unittest.mock import MagicMock

import pytest

from order_service.cache import TTLCache
from order_service.errors import NotFoundError, UnavailableError
from order_service.reader import OrderReader


class TestOrderReader:
    """Test cases for OrderReader."""

    @pytest.fixture
    def cache(self, clock):
        return TTLCache(clock=clock)

    @pytest.fixture
    def reader(self, store, cache):
        return OrderReader(store, cache, ttl=3600)

    def test_first_read_fetches_from_store(self, reader, store, cache, make_order):
        order = make_order()
        store.orders[order.order_uid] = order

        assert reader.get(order.order_uid) == order
        assert store.calls["get"] == 1
        assert cache.get(order.order_uid) == (order, True)

    def test_second_read_within_ttl_served_from_cache(self, reader, store, make_order):
        order = make_order()
        store.orders[order.order_uid] = order

        reader.get(order.order_uid)
        assert reader.get(order.order_uid) == order
        assert store.calls["get"] == 1

    def test_read_after_ttl_hits_store_again(self, reader, store, clock, make_order):
        order = make_order()
        store.orders[order.order_uid] = order

        reader.get(order.order_uid)
        clock.advance(3600)
        reader.get(order.order_uid)

        assert store.calls["get"] == 2

    def test_not_found_is_surfaced_and_not_cached(self, reader, store, cache):
        with pytest.raises(NotFoundError):
            reader.get("unknown")

        assert cache.has("unknown") is False
        with pytest.raises(NotFoundError):
            reader.get("unknown")
        assert store.calls["get"] == 2

    def test_store_error_is_surfaced(self, cache):
        failing_store = MagicMock()
        failing_store.get.side_effect = UnavailableError("Order store is unavailable")
        reader = OrderReader(failing_store, cache, ttl=60)

        with pytest.raises(UnavailableError):
            reader.get("any")

    def test_cache_write_failure_does_not_fail_read(self, store, make_order):
        order = make_order()
        store.orders[order.order_uid] = order
        broken_cache = MagicMock()
        broken_cache.has.return_value = False
        broken_cache.set.side_effect = RuntimeError("cache is full")
        reader = OrderReader(store, broken_cache, ttl=60)

        assert reader.get(order.order_uid) == order
        broken_cache.set.assert_called_once()

    def test_entry_vanishing_between_has_and_get_falls_back_to_store(self, store, make_order):
        order = make_order()
        store.orders[order.order_uid] = order
        racy_cache = MagicMock()
        racy_cache.has.return_value = True
        racy_cache.get.return_value = (None, False)
        reader = OrderReader(store, racy_cache, ttl=60)

        assert reader.get(order.order_uid) == order
        assert store.calls["get"] == 1
        racy_cache.set.assert_called_once_with(order.order_uid, order, 60, None)

    def test_ingested_order_not_visible_until_cache_expires(self, reader, store, clock, make_order):
        store.orders["x"] = make_order("x", locale="en")
        reader.get("x")

        # Schreiben ins Store invalidiert den Cache nicht
        store.orders["x"] = make_order("x", locale="ru")
        assert reader.get("x").locale == "en"

        clock.advance(3600)
        assert reader.get("x").locale == "ru"

    def test_default_ttl_is_one_hour(self, store, cache):
        assert OrderReader(store, cache).ttl == 3600
