"""
publisher.py — Order Publisher (RabbitMQ)

Hands an order document to the message bus instead of writing it directly.
The document lands on the same queue the ingestion consumer subscribes to, so a
published order is persisted asynchronously by `OrderConsumer`.
"""

import threading

import pika
import pika.exceptions

from . import config
from .errors import UnavailableError
from .logging_config import get_logger
from .models import Order

log = get_logger(__name__)

RECONNECTABLE_ERRORS = (pika.exceptions.AMQPConnectionError, pika.exceptions.AMQPChannelError)


class OrderPublisher:
    """
    Publishes orders to the order topic.

    The blocking pika connection is not thread-safe, so publishing is serialized by a
    lock. The connection is opened lazily and re-opened when it was closed.
    """

    def __init__(self, topic: str = None, host: str = None):
        self.topic = topic or config.ORDER_TOPIC
        self.host = host or config.RABBITMQ_HOST
        self.connection = None
        self.channel = None
        self._lock = threading.Lock()

    def _connect(self):
        """
        Establishes a RabbitMQ connection and declares the topic queue.

        Raises:
            pika.exceptions.AMQPError: If the connection fails.
        """
        credentials = pika.PlainCredentials(config.RABBITMQ_USER, config.RABBITMQ_PASS)
        self.connection = pika.BlockingConnection(
            pika.ConnectionParameters(host=self.host, credentials=credentials, heartbeat=60)
        )
        self.channel = self.connection.channel()
        self.channel.queue_declare(queue=self.topic)
        log.info("Order-Publisher mit RabbitMQ verbunden.")

    def _send(self, body: str):
        if not self.connection or self.connection.is_closed:
            self._connect()

        self.channel.basic_publish(
            exchange='',
            routing_key=self.topic,
            body=body,
            properties=pika.BasicProperties(
                content_type="application/json",
                delivery_mode=2,  # Macht Nachricht persistent
            ),
        )

    def _drop_connection(self):
        connection = self.connection
        self.connection = None
        self.channel = None
        if connection is not None and connection.is_open:
            try:
                connection.close()
            except pika.exceptions.AMQPError as e:
                log.warning(f"Fehler beim Schließen der Publisher-Verbindung: {e!r}")

    def publish(self, order: Order):
        """
        Publishes one order document as JSON.

        A connection the broker dropped while idle (missed heartbeats) only shows up
        on the next I/O, so a connection-level failure is retried once on a fresh
        connection.

        Raises:
            UnavailableError: If the broker cannot be reached or rejects the message.
        """
        body = order.model_dump_json()
        with self._lock:
            for attempt in range(2):
                try:
                    self._send(body)
                    break
                except pika.exceptions.AMQPError as e:
                    self._drop_connection()
                    if attempt == 0 and isinstance(e, RECONNECTABLE_ERRORS):
                        log.warning(f"[Order: {order.order_uid}] Verbindung zum Broker verloren ({e!r}). Neuer Versuch...")
                        continue
                    log.error(f"[Order: {order.order_uid}] FEHLER beim Senden an Topic '{self.topic}': {e!r}")
                    raise UnavailableError(
                        "Message bus is unavailable",
                        details={"topic": self.topic, "reason": repr(e)},
                    ) from e
        log.info(f"[Order: {order.order_uid}] An Topic '{self.topic}' gesendet.")

    def close(self):
        with self._lock:
            self._drop_connection()
