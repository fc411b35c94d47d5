"""
main.py — FastAPI Entry Point for the Order Service

This module wires the core components together and exposes them over HTTP.

Responsibilities:
    • Create the order store, the shared TTL cache, the reader and the publisher
    • Subscribe the ingestion consumer on startup and run it on a background thread
    • Serve list / get / create / publish endpoints
    • Translate service errors into JSON error responses

A failed subscription on startup aborts the application start, which terminates
the process: without ingestion the service cannot do its job.
"""

import threading
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from . import config
from .cache import TTLCache
from .consumer import OrderConsumer
from .deadline import Deadline
from .errors import OrderServiceError
from .logging_config import get_logger, setup_logging
from .models import Order
from .publisher import OrderPublisher
from .reader import OrderReader
from .repository import OrderRepository, create_order_engine

log = get_logger(__name__)

CACHE_PURGE_INTERVAL_SECONDS = 300


def create_app(repository=None, cache=None, publisher=None, consumer=None,
               manage_lifecycle: bool = True) -> FastAPI:
    """
    Builds the FastAPI application.

    Args:
        repository: Order store. Defaults to an `OrderRepository` on `DATABASE_URL`.
        cache: Shared cache instance. Defaults to a fresh `TTLCache`.
        publisher: Order publisher. Defaults to an `OrderPublisher` on `ORDER_TOPIC`.
        consumer: Ingestion consumer. Defaults to an `OrderConsumer` writing to `repository`.
        manage_lifecycle (bool): Install a lifespan that provisions the
            schema and runs the consumer. Tests with in-memory fakes disable this.

    Returns:
        FastAPI: The configured application.
    """
    if repository is None:
        repository = OrderRepository(create_order_engine(), timeout=config.STORE_TIMEOUT_SECONDS)
    cache = cache if cache is not None else TTLCache()
    publisher = publisher or OrderPublisher()
    reader = OrderReader(repository, cache)

    lifespan = None
    if manage_lifecycle:
        consumer = consumer or OrderConsumer(repository)
        stop_event = threading.Event()
        threads = []

        def sweep_cache():
            while not stop_event.wait(CACHE_PURGE_INTERVAL_SECONDS):
                removed = cache.purge_expired()
                if removed:
                    log.debug(f"{removed} abgelaufene Cache-Einträge entfernt.")

        def on_startup():
            """
            Provisions the schema and subscribes the consumer.

            Both steps raise on failure, which aborts the application start.
            """
            log.info("Order-Service startet...")
            if hasattr(repository, "create_schema"):
                repository.create_schema()
            consumer.subscribe()

            consumer_thread = threading.Thread(target=consumer.run, name="order-consumer", daemon=True)
            consumer_thread.start()
            threads.append(consumer_thread)
            if hasattr(cache, "purge_expired"):
                sweeper_thread = threading.Thread(target=sweep_cache, name="cache-sweeper", daemon=True)
                sweeper_thread.start()
                threads.append(sweeper_thread)
            log.info("Order-Consumer Thread gestartet.")

        def on_shutdown():
            log.info("Order-Service wird beendet...")
            stop_event.set()
            consumer.stop()
            for thread in threads:
                thread.join(timeout=config.MESSAGE_TIMEOUT_SECONDS)
            publisher.close()
            engine = getattr(repository, "engine", None)
            if engine is not None:
                engine.dispose()

        @asynccontextmanager
        async def lifespan(app: FastAPI):
            on_startup()
            try:
                yield
            finally:
                on_shutdown()

    app = FastAPI(title="Order Service", lifespan=lifespan)
    app.state.repository = repository
    app.state.cache = cache
    app.state.reader = reader
    app.state.publisher = publisher

    @app.exception_handler(OrderServiceError)
    async def order_service_error_handler(request: Request, exc: OrderServiceError):
        return JSONResponse(status_code=exc.status_code, content=exc.to_response().model_dump())

    def request_deadline() -> Deadline:
        return Deadline(config.STORE_TIMEOUT_SECONDS)

    @app.get("/api/v1/list")
    def list_orders():
        """Returns all stored orders as a JSON array (no pagination)."""
        return repository.list(request_deadline())

    @app.get("/api/v1/get/{order_id}")
    def get_order(order_id: str):
        """
        Returns one order through the cache-aside reader.

        Responds 404 if the order is unknown.
        """
        order = reader.get(order_id, request_deadline())
        return {"order": order}

    @app.post("/api/v1/create")
    def create_order(order: Order):
        """
        Stores an order directly, bypassing the message bus.

        Responds 409 if an order with the same `order_uid` already exists.
        The cache is not touched.
        """
        affected = repository.create(order, request_deadline())
        log.info(f"[Order: {order.order_uid}] Über API gespeichert.")
        return {"rows_affected": affected}

    @app.post("/api/v1/publish")
    def publish_order(order: Order):
        """Hands the order to the message bus; the consumer persists it asynchronously."""
        publisher.publish(order)
        return {"error": ""}

    @app.get("/health")
    def health_check():
        """Simple health check endpoint for container orchestrators."""
        return {"status": "ok"}

    return app


setup_logging()
app = create_app()


def run():
    """Serves the application with uvicorn on HTTP_HOST:HTTP_PORT."""
    uvicorn.run(app, host=config.HTTP_HOST, port=config.HTTP_PORT)


if __name__ == "__main__":
    run()
