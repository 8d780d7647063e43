"""
Shared clients and settings for the Hexbear backend.
Clients are created lazily on first use so importing a module never opens
a connection.
"""

import logging
import os
import threading
from google.cloud import firestore, storage
import redis
from redis.retry import Retry
from redis.backoff import ExponentialBackoff

# --- Environment variables ---
GCS_BUCKET_NAME = os.environ.get("GCS_BUCKET_NAME")
REDIS_URL = os.environ.get('REDIS_URL', 'redis://localhost:6379/0')
VISION_MODEL = os.environ.get("VISION_MODEL", "gemini-2.5-flash")
ATTEMPT_TTL_SECONDS = int(os.environ.get("ATTEMPT_TTL_SECONDS", "1800"))

# --- Lazy initialized clients ---
_db, _storage_client = None, None


def get_db():
    global _db
    _db = _db or firestore.Client()
    return _db


def get_storage_client():
    global _storage_client
    _storage_client = _storage_client or storage.Client()
    return _storage_client


# Thread-local storage for Redis connections
_redis_local = threading.local()


def get_redis_client():
    """
    Thread-safe Redis client from a pool with retry logic.
    Returns None when Redis is unreachable; callers decide whether that is fatal.
    """
    if getattr(_redis_local, 'connection', None) is None:
        try:
            retry = Retry(ExponentialBackoff(), retries=3)
            connection_pool = redis.ConnectionPool.from_url(
                REDIS_URL,
                decode_responses=True,
                retry=retry,
                max_connections=20,
                health_check_interval=30,
                socket_connect_timeout=5,
                socket_timeout=10
            )
            client = redis.Redis(connection_pool=connection_pool)
            client.ping()
            _redis_local.connection = client
            logging.info("Redis connection pool initialized successfully")
        except redis.exceptions.ConnectionError as e:
            logging.error(f"Failed to connect to Redis: {e}")
            _redis_local.connection = None
    return _redis_local.connection
