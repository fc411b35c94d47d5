"""
consumer.py — Ingestion Consumer (RabbitMQ)

Subscribes to the order topic, decodes every message into an `Order` and writes it
through the order store. Each message runs through Decoding → Persisting on its own;
nothing is carried over between messages.

Failure policy per message:
    - Malformed payload: logged, not stored, acknowledged (no DLQ, no redelivery).
    - Duplicate order_uid: logged and dropped. A redelivered order is not an update.
    - Any other store error, including a message deadline that ran out: logged and
      dropped, no retry.
    - Interrupted by consumer shutdown: left unacknowledged and requeued, so the
      broker hands it to the next consumer.

Failing to establish the subscription raises `SubscriptionError`; the application
treats that as fatal.
"""

import threading
from typing import Optional, Union

import pika
import pika.exceptions

from . import config
from .deadline import Deadline
from .errors import CancelledError, ConflictError, DecodeError, OrderServiceError, SubscriptionError
from .logging_config import get_logger
from .models import decode_order
from .repository import OrderStore

log = get_logger(__name__)

PERSISTED = "persisted"
DECODE_FAILED = "decode_failed"
DUPLICATE = "duplicate"
STORE_FAILED = "store_failed"
CANCELLED = "cancelled"


def handle_order_message(store: OrderStore, body: Union[bytes, str],
                         deadline: Optional[Deadline] = None) -> str:
    """
    Processes a single inbound message.

    Never raises: every failure is logged and reported through the returned outcome.

    Args:
        store (OrderStore): Target store.
        body (bytes | str): Raw message payload (JSON order document).
        deadline (Deadline | None): Bound for the store call.

    Returns:
        str: One of PERSISTED, DECODE_FAILED, DUPLICATE, STORE_FAILED, CANCELLED.
    """
    try:
        order = decode_order(body)
    except DecodeError as e:
        log.error(f"[ORDER-INGEST] Ungültige Order-Nachricht verworfen: {e.message} {e.details}")
        return DECODE_FAILED

    log_prefix = f"[Order: {order.order_uid}]"
    try:
        store.create(order, deadline)
    except ConflictError:
        log.warning(f"{log_prefix} Bereits vorhanden, doppelte Nachricht verworfen.")
        return DUPLICATE
    except CancelledError as e:
        log.warning(f"{log_prefix} Verarbeitung abgebrochen: {e.message}")
        return CANCELLED
    except OrderServiceError as e:
        log.error(f"{log_prefix} Speichern fehlgeschlagen, Nachricht verworfen: {e.message}")
        return STORE_FAILED
    except Exception as e:
        log.critical(f"{log_prefix} Unbekannter Fehler beim Speichern: {e}", exc_info=True)
        return STORE_FAILED

    log.info(f"{log_prefix} Order aus Topic gespeichert.")
    return PERSISTED


class OrderConsumer:
    """
    RabbitMQ subscription feeding `handle_order_message`.

    `subscribe()` attaches to the topic and must be called first; `run()` then blocks
    in the consume loop (normally on a dedicated daemon thread) until `stop()` is called.
    If the connection drops after a successful subscription, `run()` logs it and
    re-subscribes after `reconnect_delay` seconds.

    Args:
        store (OrderStore): Store the decoded orders are written to.
        topic (str): Queue name the orders are published to.
        message_timeout (float): Deadline in seconds for persisting one message.
    """

    def __init__(self, store: OrderStore, topic: str = None, host: str = None,
                 message_timeout: float = None, reconnect_delay: float = None):
        self.store = store
        self.topic = topic or config.ORDER_TOPIC
        self.host = host or config.RABBITMQ_HOST
        self.message_timeout = config.MESSAGE_TIMEOUT_SECONDS if message_timeout is None else message_timeout
        self.reconnect_delay = config.RECONNECT_DELAY_SECONDS if reconnect_delay is None else reconnect_delay
        self.connection = None
        self.channel = None
        self._stop_event = threading.Event()

    @property
    def subscribed(self) -> bool:
        return self.channel is not None and self.connection is not None and self.connection.is_open

    def subscribe(self):
        """
        Connects to RabbitMQ, declares the topic queue and registers the callback.

        Raises:
            SubscriptionError: If the broker is unreachable or the queue cannot be consumed.
        """
        try:
            credentials = pika.PlainCredentials(config.RABBITMQ_USER, config.RABBITMQ_PASS)
            self.connection = pika.BlockingConnection(
                pika.ConnectionParameters(host=self.host, credentials=credentials, heartbeat=60)
            )
            self.channel = self.connection.channel()
            self.channel.queue_declare(queue=self.topic)
            self.channel.basic_qos(prefetch_count=1)
            self.channel.basic_consume(queue=self.topic, on_message_callback=self._on_message)
        except pika.exceptions.AMQPError as e:
            log.critical(f"[ORDER-INGEST] Kann Topic '{self.topic}' nicht abonnieren: {e!r}")
            self._close()
            raise SubscriptionError(
                f"Cannot subscribe to topic {self.topic}",
                details={"topic": self.topic, "reason": repr(e)},
            ) from e
        log.info(f"[ORDER-INGEST] Abonniert Topic '{self.topic}'.")

    def _on_message(self, ch, method, properties, body):
        deadline = Deadline(self.message_timeout, cancel_event=self._stop_event)
        outcome = handle_order_message(self.store, body, deadline)
        if outcome == CANCELLED and self._stop_event.is_set():
            ch.basic_nack(delivery_tag=method.delivery_tag, requeue=True)
        else:
            if outcome == CANCELLED:
                log.error("[ORDER-INGEST] Deadline abgelaufen, Nachricht verworfen.")
            # Auch fehlerhafte Nachrichten gelten als konsumiert
            ch.basic_ack(delivery_tag=method.delivery_tag)

    def run(self):
        """Blocks in the consume loop until `stop()` is called."""
        if self.channel is None:
            raise SubscriptionError("subscribe() must succeed before run()", details={"topic": self.topic})

        log.info("[ORDER-INGEST] Consumer ist aktiv und lauscht auf Orders.")
        while not self._stop_event.is_set():
            try:
                self.channel.start_consuming()
                break
            except pika.exceptions.AMQPError as e:
                if self._stop_event.is_set():
                    break
                log.warning(f"[ORDER-INGEST] Verbindung verloren ({e!r}). Reconnect in {self.reconnect_delay}s...")
                self._close()
                self._resubscribe()
        self._close()
        log.info("[ORDER-INGEST] Consumer gestoppt.")

    def _resubscribe(self):
        while not self._stop_event.wait(self.reconnect_delay):
            try:
                self.subscribe()
                return
            except SubscriptionError:
                log.warning(f"[ORDER-INGEST] Reconnect fehlgeschlagen, neuer Versuch in {self.reconnect_delay}s...")

    def stop(self):
        """
        Stops consuming. The message currently being processed finishes, or aborts at
        its next deadline check and is requeued.
        """
        self._stop_event.set()
        connection, channel = self.connection, self.channel
        if connection is not None and channel is not None and connection.is_open:
            try:
                connection.add_callback_threadsafe(channel.stop_consuming)
            except pika.exceptions.AMQPError as e:
                log.warning(f"[ORDER-INGEST] Stop-Signal konnte nicht zugestellt werden: {e!r}")

    def _close(self):
        connection = self.connection
        self.connection = None
        self.channel = None
        if connection is not None and connection.is_open:
            try:
                connection.close()
            except pika.exceptions.AMQPError as e:
                log.warning(f"[ORDER-INGEST] Fehler beim Schließen der Verbindung: {e!r}")
