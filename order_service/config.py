"""
config.py — Environment Configuration

All settings are read once from environment variables with local defaults,
matching the docker-compose setup of the service.
"""

import os


def _database_url() -> str:
    url = os.environ.get("DATABASE_URL")
    if url:
        return url
    user = os.environ.get("PG_USER", "postgres")
    password = os.environ.get("PG_PASS", "postgres")
    host = os.environ.get("PG_HOST", "localhost")
    port = os.environ.get("PG_PORT", "5432")
    name = os.environ.get("PG_NAME", "orders")
    return f"postgresql+psycopg2://{user}:{password}@{host}:{port}/{name}"


DATABASE_URL = _database_url()
DB_POOL_SIZE = int(os.environ.get("DB_POOL_SIZE", "10"))
DB_MAX_OVERFLOW = int(os.environ.get("DB_MAX_OVERFLOW", "2"))

RABBITMQ_HOST = os.environ.get("RABBITMQ_HOST", "localhost")
RABBITMQ_USER = os.environ.get("RABBITMQ_USER", "guest")
RABBITMQ_PASS = os.environ.get("RABBITMQ_PASS", "guest")
ORDER_TOPIC = os.environ.get("ORDER_TOPIC", "test_topic")

# Cache-Lebensdauer für gelesene Orders (Standard: eine Stunde)
ORDER_CACHE_TTL_SECONDS = float(os.environ.get("ORDER_CACHE_TTL_SECONDS", "3600"))
STORE_TIMEOUT_SECONDS = float(os.environ.get("STORE_TIMEOUT_SECONDS", "5"))
MESSAGE_TIMEOUT_SECONDS = float(os.environ.get("MESSAGE_TIMEOUT_SECONDS", "10"))
RECONNECT_DELAY_SECONDS = float(os.environ.get("RECONNECT_DELAY_SECONDS", "10"))

HTTP_HOST = os.environ.get("HTTP_HOST", "0.0.0.0")
HTTP_PORT = int(os.environ.get("HTTP_PORT", "3000"))

LOG_FILE = os.environ.get("LOG_FILE", "order_service.log")
LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")
