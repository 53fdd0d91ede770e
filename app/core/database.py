"""Verbindet das Chat-Widget mit Redis und stellt einen synchronen
Client für die Thread-Zuordnung bereit."""
import logging

import redis

from app.core.config import Settings, settings as default_settings

logger = logging.getLogger(__name__)


def get_redis_client(settings: Settings = default_settings) -> redis.Redis:
    # Synchrone Redis-Verbindung; decode_responses=True liefert Strings statt Bytes.
    if settings.redis_url:
        client = redis.Redis.from_url(settings.redis_url, decode_responses=True)
    else:
        client = redis.Redis(
            host=settings.redis_host,
            port=settings.redis_port,
            password=settings.redis_password,
            decode_responses=True,
        )
    client.ping()
    logger.info("Connected to Redis")
    return client
