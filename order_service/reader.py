"""
reader.py — Cache-Aside Read Path

`OrderReader` answers "get order by id": the cache is consulted first, the store is
the fallback, and a store hit repopulates the cache for a fixed TTL.

Writes (HTTP create or the ingestion consumer) never touch the cache. An order
stored after a cache miss only becomes visible to cached readers once it is read
through this class, and an entry is never invalidated before its TTL runs out.
"""

from typing import Optional

from . import config
from .cache import Cache
from .deadline import Deadline
from .logging_config import get_logger
from .models import Order
from .repository import OrderStore

log = get_logger(__name__)


class OrderReader:
    """
    Read coordinator combining the durable store with the shared TTL cache.

    Args:
        store (OrderStore): The authoritative order store.
        cache (Cache): The single shared cache instance, owned by the application.
        ttl (float): Lifetime of populated cache entries in seconds.
    """

    def __init__(self, store: OrderStore, cache: Cache, ttl: float = None):
        self.store = store
        self.cache = cache
        self.ttl = config.ORDER_CACHE_TTL_SECONDS if ttl is None else ttl

    def get(self, order_id: str, deadline: Optional[Deadline] = None) -> Order:
        """
        Returns the order for `order_id`.

        Raises:
            NotFoundError: If the store has no such order.
            UnavailableError: If the store cannot be reached.
            CancelledError: If the deadline expired.
        """
        log_prefix = f"[Order: {order_id}]"

        # has() und get() sind einzeln atomar, das Paar nicht: found muss geprüft werden
        if self.cache.has(order_id, deadline):
            order, found = self.cache.get(order_id, deadline)
            if found:
                log.debug(f"{log_prefix} Cache-Treffer.")
                return order

        order = self.store.get(order_id, deadline)

        try:
            self.cache.set(order_id, order, self.ttl, deadline)
        except Exception as e:
            log.warning(f"{log_prefix} Order konnte nicht gecacht werden: {e}")

        return order
