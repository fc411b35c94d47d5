"""
repository.py — Durable Store for Order Documents

The repository persists each order as one row: the `order_uid` primary key next to a
single JSON column holding the complete document. The backing engine's uniqueness
constraint on `order_uid` is the only concurrency control; this module adds no locks.

PostgreSQL stores the document as `jsonb`; other SQLAlchemy dialects (SQLite in tests)
fall back to the generic JSON type.
"""

from contextlib import contextmanager
from typing import List, Optional, Protocol

from pydantic import ValidationError
from sqlalchemy import (JSON, Column, Index, MetaData, String, Table, create_engine,
                        insert, select, text)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.engine import Engine
from sqlalchemy.exc import DBAPIError, IntegrityError, SQLAlchemyError

from . import config
from .deadline import Deadline, check_deadline
from .errors import CancelledError, ConflictError, NotFoundError, UnavailableError
from .logging_config import get_logger
from .models import ORDER_UID_MAX_LENGTH, Order

log = get_logger(__name__)

# SQLSTATE query_canceled (statement_timeout)
PG_QUERY_CANCELED = "57014"

metadata = MetaData()

orders_table = Table(
    "order",
    metadata,
    Column("order_uid", String(ORDER_UID_MAX_LENGTH), primary_key=True, nullable=False),
    Column("data", JSON().with_variant(JSONB(), "postgresql"), nullable=False),
    Index("uq_order_uid", "order_uid", unique=True),
)


def _load_order(order_id: str, data) -> Order:
    """Validates a stored document; a corrupt row is reported as a store failure."""
    try:
        return Order.model_validate(data)
    except ValidationError as e:
        log.error(f"[Order: {order_id}] Gespeichertes Dokument ist ungültig: {e}")
        raise UnavailableError(
            f"Stored order {order_id} is corrupt",
            details={"order_uid": order_id, "errors": len(e.errors())},
        ) from e


class OrderStore(Protocol):
    """Capability interface of the durable store, used by the consumer and the reader."""

    def create(self, order: Order, deadline: Optional[Deadline] = None) -> int: ...

    def get(self, order_id: str, deadline: Optional[Deadline] = None) -> Order: ...

    def list(self, deadline: Optional[Deadline] = None) -> List[Order]: ...


def create_order_engine(url: str = None, **kwargs) -> Engine:
    """
    Creates the SQLAlchemy engine for the order database.

    Pool settings come from the environment unless passed explicitly.
    """
    url = url or config.DATABASE_URL
    if url.startswith("postgresql"):
        kwargs.setdefault("pool_size", config.DB_POOL_SIZE)
        kwargs.setdefault("max_overflow", config.DB_MAX_OVERFLOW)
        kwargs.setdefault("pool_pre_ping", True)
    return create_engine(url, **kwargs)


class OrderRepository:
    """
    SQLAlchemy implementation of `OrderStore`.

    Args:
        engine (Engine): Engine bound to the order database.
        timeout (float | None): Default per-call timeout when the caller passes no deadline.
    """

    def __init__(self, engine: Engine, timeout: Optional[float] = None):
        self.engine = engine
        self.timeout = timeout

    def create_schema(self):
        """Creates the `order` table and its unique index if they do not exist yet."""
        try:
            metadata.create_all(self.engine)
        except SQLAlchemyError as e:
            log.critical(f"Schema für Orders konnte nicht angelegt werden: {e}")
            raise UnavailableError("Order store is unavailable", details={"reason": str(e)}) from e
        log.info("Order-Schema bereit.")

    @contextmanager
    def _transaction(self, deadline: Optional[Deadline], operation: str):
        """
        Opens a transaction bounded by the deadline and translates driver errors.

        On PostgreSQL the remaining time becomes a transaction-local statement_timeout,
        so a blocked query is aborted by the server instead of hanging the caller.
        """
        if deadline is None and self.timeout is not None:
            deadline = Deadline(self.timeout)
        check_deadline(deadline, operation)

        try:
            with self.engine.begin() as conn:
                remaining = deadline.remaining() if deadline is not None else None
                if remaining is not None and conn.dialect.name == "postgresql":
                    timeout_ms = max(1, int(remaining * 1000))
                    conn.execute(text(f"SET LOCAL statement_timeout = {timeout_ms}"))
                yield conn
        except IntegrityError:
            raise
        except DBAPIError as e:
            if getattr(e.orig, "pgcode", None) == PG_QUERY_CANCELED:
                raise CancelledError(f"{operation} exceeded its deadline") from e
            log.error(f"Datenbankfehler bei {operation}: {e}")
            raise UnavailableError("Order store is unavailable", details={"reason": str(e.orig)}) from e
        except SQLAlchemyError as e:
            log.error(f"Datenbankfehler bei {operation}: {e}")
            raise UnavailableError("Order store is unavailable", details={"reason": str(e)}) from e

    def create(self, order: Order, deadline: Optional[Deadline] = None) -> int:
        """
        Inserts a new order keyed by its `order_uid`.

        Returns:
            int: Number of inserted rows (always 1 on success).

        Raises:
            ConflictError: If an order with the same `order_uid` already exists.
            UnavailableError: If the database cannot be reached.
            CancelledError: If the deadline expired.
        """
        stmt = insert(orders_table).values(
            order_uid=order.order_uid,
            data=order.model_dump(mode="json"),
        )
        try:
            with self._transaction(deadline, "create") as conn:
                affected = conn.execute(stmt).rowcount
        except IntegrityError as e:
            raise ConflictError(
                f"Order {order.order_uid} already exists",
                details={"order_uid": order.order_uid},
            ) from e
        return affected

    def get(self, order_id: str, deadline: Optional[Deadline] = None) -> Order:
        """
        Returns the order stored under `order_id`.

        Raises:
            NotFoundError: If no such order exists.
        """
        stmt = select(orders_table.c.data).where(orders_table.c.order_uid == order_id)
        with self._transaction(deadline, "get") as conn:
            row = conn.execute(stmt).first()
        if row is None:
            raise NotFoundError(f"Order {order_id} not found", details={"order_uid": order_id})
        return _load_order(order_id, row.data)

    def list(self, deadline: Optional[Deadline] = None) -> List[Order]:
        """Returns every stored order. Order of the result is unspecified."""
        # Keine Pagination: die komplette Tabelle wird materialisiert
        with self._transaction(deadline, "list") as conn:
            rows = conn.execute(select(orders_table.c.order_uid, orders_table.c.data)).all()
        return [_load_order(row.order_uid, row.data) for row in rows]
