"""
Rate limiting middleware for API endpoints
"""
import time
from collections import defaultdict, deque
from fastapi import Request, HTTPException
from typing import Deque, Dict
import logging

from lingo.config import settings
from lingo.utils.auth import peek_user_id

logger = logging.getLogger(__name__)


class RateLimiter:
    """
    In-memory sliding-window rate limiter keyed by caller identity
    Production: Use Redis for distributed rate limiting
    """

    def __init__(self, requests_per_minute: int = 60, requests_per_hour: int = 1000):
        self.requests_per_minute = requests_per_minute
        self.requests_per_hour = requests_per_hour

        # {client_id: timestamps of requests within the last hour}
        self.history: Dict[str, Deque[float]] = defaultdict(deque)

    def _get_client_id(self, request: Request) -> str:
        """Token subject when present, client IP otherwise"""
        user_id = peek_user_id(request.headers.get("authorization"))
        if user_id:
            return f"user:{user_id}"

        client_ip = request.client.host if request.client else "unknown"
        return f"ip:{client_ip}"

    def _too_many(self, limit: int, window: int) -> HTTPException:
        return HTTPException(
            status_code=429,
            detail={
                "error": "rate_limit_exceeded",
                "message": f"Too many requests. Limit: {limit} requests per {'minute' if window == 60 else 'hour'}",
                "retry_after": window
            }
        )

    def _cleanup_old_entries(self, window_seconds: int) -> None:
        """Remove timestamps older than the window for every client"""
        cutoff_time = time.time() - window_seconds

        for client_id in list(self.history.keys()):
            timestamps = self.history[client_id]
            while timestamps and timestamps[0] <= cutoff_time:
                timestamps.popleft()

            # Remove empty entries
            if not timestamps:
                del self.history[client_id]

    async def check_rate_limit(self, request: Request) -> None:
        """
        Check if request exceeds rate limits

        Raises:
            HTTPException: 429 if rate limit exceeded
        """
        client_id = self._get_client_id(request)
        self._cleanup_old_entries(3600)

        now = time.time()
        timestamps = self.history[client_id]

        minute_requests = sum(1 for ts in timestamps if ts > now - 60)
        if minute_requests >= self.requests_per_minute:
            logger.warning(f"Rate limit exceeded (minute): {client_id}")
            raise self._too_many(self.requests_per_minute, 60)

        if len(timestamps) >= self.requests_per_hour:
            logger.warning(f"Rate limit exceeded (hour): {client_id}")
            raise self._too_many(self.requests_per_hour, 3600)

        timestamps.append(now)
        logger.debug(f"Rate limit check passed: {client_id} (minute: {minute_requests + 1}, hour: {len(timestamps)})")

    def reset(self) -> None:
        self.history.clear()


# Global instance
rate_limiter = RateLimiter(
    requests_per_minute=settings.RATE_LIMIT_PER_MINUTE,
    requests_per_hour=settings.RATE_LIMIT_PER_HOUR
)
