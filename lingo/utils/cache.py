"""
Redis cache utility for learner views
"""
import redis
import json
import logging
from typing import Optional, Any, List
from lingo.config import settings
from lingo.utils.events import ProgressChanged

logger = logging.getLogger(__name__)


class CacheService:
    """Redis-based caching service for learn, lesson, quest and leaderboard views"""

    def __init__(self, client: Optional[Any] = None):
        if client is not None:
            self.redis_client = client
            return

        if not settings.CACHE_ENABLED:
            logger.info("View caching disabled by configuration")
            self.redis_client = None
            return

        try:
            self.redis_client = redis.from_url(
                settings.REDIS_URL,
                decode_responses=True,
                socket_connect_timeout=5
            )
            # Test connection
            self.redis_client.ping()
            logger.info("Redis connection established")
        except Exception as e:
            logger.warning(f"Redis connection failed: {str(e)}. Caching disabled.")
            self.redis_client = None

    def view_key(self, view: str, user_id: Optional[str] = None) -> str:
        """
        Build the cache key for a view

        Args:
            view: View name, e.g. "learn" or "lesson:12"
            user_id: Owner of a per-user view; None for global views

        Returns:
            Cache key string
        """
        if user_id is None:
            return f"view:{view}"
        return f"view:{view}:{user_id}"

    def stale_keys(self, event: ProgressChanged) -> List[str]:
        """Keys invalidated by a progress change"""
        keys = [
            self.view_key("learn", event.user_id),
            self.view_key("lesson:active", event.user_id),
            self.view_key("quests", event.user_id),
            self.view_key("leaderboard"),
        ]
        if event.lesson_id is not None:
            keys.append(self.view_key(f"lesson:{event.lesson_id}", event.user_id))
        return keys

    def get(self, key: str) -> Optional[Any]:
        """
        Get value from cache

        Args:
            key: Cache key

        Returns:
            Cached value or None
        """
        if not self.redis_client:
            return None

        try:
            value = self.redis_client.get(key)
            if value:
                logger.debug(f"Cache hit: {key}")
                return json.loads(value)
            logger.debug(f"Cache miss: {key}")
            return None
        except Exception as e:
            logger.error(f"Cache get error: {str(e)}")
            return None

    def set(
        self,
        key: str,
        value: Any,
        ttl: int = None
    ) -> bool:
        """
        Set value in cache

        Args:
            key: Cache key
            value: Value to cache (must be JSON serializable)
            ttl: Time to live in seconds (default from settings)

        Returns:
            Success status
        """
        if not self.redis_client:
            return False

        try:
            ttl = ttl or settings.VIEW_CACHE_TTL
            serialized = json.dumps(value)
            self.redis_client.setex(key, ttl, serialized)
            logger.debug(f"Cache set: {key} (TTL: {ttl}s)")
            return True
        except Exception as e:
            logger.error(f"Cache set error: {str(e)}")
            return False

    def delete(self, *keys: str) -> bool:
        """Delete keys from cache"""
        if not self.redis_client or not keys:
            return False

        try:
            self.redis_client.delete(*keys)
            logger.debug(f"Cache delete: {', '.join(keys)}")
            return True
        except Exception as e:
            logger.error(f"Cache delete error: {str(e)}")
            return False

    def on_progress_changed(self, event: ProgressChanged) -> None:
        """Event bus subscriber: mark every view showing this user's progress as stale"""
        if self.delete(*self.stale_keys(event)):
            logger.info(f"Invalidated views for user {event.user_id} ({event.reason})")


# Global instance
cache_service = CacheService()
