from __future__ import annotations

import logging
from collections.abc import Generator

import redis

from partyhub.infra.redis_client import create_redis

logger = logging.getLogger(__name__)


def get_redis() -> Generator[redis.Redis, None, None]:
    client = create_redis()
    try:
        yield client
    finally:
        try:
            client.close()
        except redis.RedisError as e:
            logger.debug("redis close failed: %s", e)
