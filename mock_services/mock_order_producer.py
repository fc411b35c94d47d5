"""
mock_order_producer.py — Sample Order Producer (RabbitMQ)

Publishes order documents to the order topic so the ingestion consumer of the
order service can be exercised without the HTTP publish endpoint.

Usage:
    python -m mock_services.mock_order_producer                 # one generated order
    python -m mock_services.mock_order_producer --count 5       # five generated orders
    python -m mock_services.mock_order_producer order.json      # a document from file
    python -m mock_services.mock_order_producer --malformed     # an invalid payload

Communication Channels:
    - Output Queue: ORDER_TOPIC (default 'test_topic') → consumed by the order service
"""

import argparse
import json
import logging
import random
import string
import time

import pika

from order_service import config

logging.basicConfig(level=logging.INFO)


def get_mq_connection():
    """
    Establishes and returns a connection to the RabbitMQ message broker.

    Raises:
        pika.exceptions.AMQPConnectionError: If the broker is unavailable.
    """
    credentials = pika.PlainCredentials(config.RABBITMQ_USER, config.RABBITMQ_PASS)
    return pika.BlockingConnection(
        pika.ConnectionParameters(host=config.RABBITMQ_HOST, credentials=credentials)
    )


def sample_order(order_uid: str = None) -> dict:
    """Builds a complete order document with a random `order_uid`."""
    order_uid = order_uid or "".join(random.choices(string.ascii_lowercase + string.digits, k=19))
    track_number = "WBILMTESTTRACK"
    return {
        "order_uid": order_uid,
        "track_number": track_number,
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
            "transaction": order_uid,
            "request_id": "",
            "currency": "USD",
            "provider": "wbpay",
            "amount": 1817,
            "payment_dt": int(time.time()),
            "bank": "alpha",
            "delivery_cost": 1500,
            "goods_total": 317,
            "custom_fee": 0,
        },
        "items": [
            {
                "chrt_id": 9934930,
                "track_number": track_number,
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
        "date_created": time.strftime("%Y-%m-%dT%H:%M:%SZ", time.gmtime()),
        "oof_shard": "1",
    }


def publish(bodies):
    """Publishes raw message bodies to the order topic."""
    connection = get_mq_connection()
    try:
        channel = connection.channel()
        channel.queue_declare(queue=config.ORDER_TOPIC)
        for body in bodies:
            channel.basic_publish(exchange='', routing_key=config.ORDER_TOPIC, body=body)
            logging.info(f"[PRODUCER] Nachricht an '{config.ORDER_TOPIC}' gesendet ({len(body)} Bytes).")
    finally:
        connection.close()


def main(argv=None):
    parser = argparse.ArgumentParser(description="Publish sample orders to the order topic.")
    parser.add_argument("file", nargs="?", help="JSON file with one order document")
    parser.add_argument("--count", type=int, default=1, help="number of generated orders")
    parser.add_argument("--malformed", action="store_true", help="send an invalid payload")
    args = parser.parse_args(argv)

    if args.malformed:
        bodies = [b'{"order_uid": ']
    elif args.file:
        with open(args.file, "rb") as f:
            bodies = [f.read()]
    else:
        bodies = [json.dumps(sample_order()) for _ in range(args.count)]

    try:
        publish(bodies)
    except pika.exceptions.AMQPConnectionError as e:
        logging.error(f"[PRODUCER] MQ-Verbindung fehlgeschlagen: {e}")
        return 1
    return 0


if __name__ == '__main__':
    raise SystemExit(main())
