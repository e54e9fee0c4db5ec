"""
Key/value store for workflow state.

Values are JSON documents with a TTL. Redis is used when REDIS_URL is set and
reachable; otherwise entries live in a process-local dict with the same
expiry rules.
"""
import json
import logging
import time
from typing import Any, Optional

from app.config import get_settings

logger = logging.getLogger(__name__)

# Redis client (lazy initialized)
_redis_client = None
_redis_available = None

# full key -> (expires_at, serialized value)
_memory_store: dict[str, tuple[float, str]] = {}


def _get_redis():
    global _redis_client, _redis_available

    if _redis_available is False:
        return None
    if _redis_client is not None:
        return _redis_client

    settings = get_settings()
    if not settings.redis_url:
        logger.info("Redis URL not configured, workflow state is kept in memory")
        _redis_available = False
        return None

    try:
        import redis
        _redis_client = redis.from_url(settings.redis_url, decode_responses=True)
        _redis_client.ping()
        logger.info("Redis connection established")
        _redis_available = True
        return _redis_client
    except Exception as e:
        logger.warning(f"Redis connection failed, workflow state is kept in memory: {e}")
        _redis_available = False
        return None


def _memory_read(full_key: str) -> Optional[str]:
    entry = _memory_store.get(full_key)
    if entry is None:
        return None
    expires_at, data = entry
    if expires_at <= time.time():
        del _memory_store[full_key]
        return None
    return data


def _memory_write(full_key: str, data: str, ttl_seconds: int) -> None:
    _memory_store[full_key] = (time.time() + ttl_seconds, data)


class Cache:
    """JSON values under a key prefix, e.g. ``workflow_run:<run id>``."""

    def __init__(self, prefix: str):
        self.prefix = prefix

    def _key(self, key: str) -> str:
        return f"{self.prefix}{key}"

    def set(self, key: str, value: Any, ttl_seconds: int) -> None:
        full_key = self._key(key)
        data = json.dumps(value)
        redis_client = _get_redis()
        if redis_client:
            try:
                redis_client.setex(full_key, ttl_seconds, data)
                return
            except Exception as e:
                logger.error(f"Redis set failed for {full_key}: {e}")
        _memory_write(full_key, data, ttl_seconds)

    def add(self, key: str, value: Any, ttl_seconds: int) -> bool:
        """Set only if the key is absent. Returns False when it already exists."""
        full_key = self._key(key)
        data = json.dumps(value)
        redis_client = _get_redis()
        if redis_client:
            try:
                return bool(redis_client.set(full_key, data, ex=ttl_seconds, nx=True))
            except Exception as e:
                logger.error(f"Redis add failed for {full_key}: {e}")
        if _memory_read(full_key) is not None:
            return False
        _memory_write(full_key, data, ttl_seconds)
        return True

    def get(self, key: str) -> Optional[Any]:
        full_key = self._key(key)
        data = None
        redis_client = _get_redis()
        if redis_client:
            try:
                data = redis_client.get(full_key)
            except Exception as e:
                logger.error(f"Redis get failed for {full_key}: {e}")
                data = _memory_read(full_key)
        else:
            data = _memory_read(full_key)
        return json.loads(data) if data else None

    def delete(self, key: str) -> None:
        full_key = self._key(key)
        redis_client = _get_redis()
        if redis_client:
            try:
                redis_client.delete(full_key)
            except Exception as e:
                logger.error(f"Redis delete failed for {full_key}: {e}")
        _memory_store.pop(full_key, None)

    def keys(self) -> list[str]:
        """Live keys under this prefix, with the prefix stripped."""
        redis_client = _get_redis()
        if redis_client:
            try:
                return [k[len(self.prefix):] for k in redis_client.scan_iter(match=f"{self.prefix}*")]
            except Exception as e:
                logger.error(f"Redis scan failed for {self.prefix}*: {e}")
        return [
            k[len(self.prefix):]
            for k in list(_memory_store)
            if k.startswith(self.prefix) and _memory_read(k) is not None
        ]


workflow_run_cache = Cache(prefix="workflow_run:")
workflow_step_cache = Cache(prefix="workflow_step:")
# Held while a process executes a run, so a resumed run is never executed twice at once
workflow_lease_cache = Cache(prefix="workflow_lease:")
