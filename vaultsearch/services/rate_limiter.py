"""
Per-actor query quotas.

Two moving windows (one minute, one hour) backed by the `limits` library.
Admission checks both windows and consumes from both under one lock, so
concurrent callers can never both take the last unit of quota, and a
rejected call consumes nothing.
"""
import math
import time
from threading import Lock

from limits import RateLimitItemPerHour, RateLimitItemPerMinute, storage, strategies

from ..core.config import RATE_LIMIT_PER_HOUR, RATE_LIMIT_PER_MINUTE, RATE_LIMIT_STORAGE_URI
from ..core.exceptions import QuotaExceeded
from ..domain.results import RateLimitStats
from ..core.logging_config import get_logger

logger = get_logger(__name__)


class QueryRateLimiter:
    """
    Moving-window quota per actor.

    Counters live in the configured `limits` storage (process memory by
    default), so quotas reset when the process restarts.
    """

    def __init__(
        self,
        per_minute: int = RATE_LIMIT_PER_MINUTE,
        per_hour: int = RATE_LIMIT_PER_HOUR,
        storage_uri: str = RATE_LIMIT_STORAGE_URI
    ):
        self.minute_item = RateLimitItemPerMinute(per_minute)
        self.hour_item = RateLimitItemPerHour(per_hour)
        self._storage = storage.storage_from_string(storage_uri)
        self._limiter = strategies.MovingWindowRateLimiter(self._storage)
        self._lock = Lock()

    def _stats_unlocked(self, actor_id: str) -> RateLimitStats:
        minute = self._limiter.get_window_stats(self.minute_item, actor_id)
        hour = self._limiter.get_window_stats(self.hour_item, actor_id)
        return RateLimitStats(
            remaining_minute=max(0, minute.remaining),
            remaining_hour=max(0, hour.remaining),
            minute_limit=self.minute_item.amount,
            hour_limit=self.hour_item.amount,
        )

    def admit(self, actor_id: str) -> RateLimitStats:
        """
        Consume one unit of quota for an actor.

        Args:
            actor_id: Caller identity

        Returns:
            Remaining quota after admission

        Raises:
            QuotaExceeded: If either window is exhausted (nothing is consumed)
        """
        with self._lock:
            minute_ok = self._limiter.test(self.minute_item, actor_id)
            hour_ok = self._limiter.test(self.hour_item, actor_id)

            if not (minute_ok and hour_ok):
                stats = self._stats_unlocked(actor_id)
                now = time.time()
                waits = []
                if not minute_ok:
                    waits.append(self._limiter.get_window_stats(self.minute_item, actor_id).reset_time - now)
                if not hour_ok:
                    waits.append(self._limiter.get_window_stats(self.hour_item, actor_id).reset_time - now)
                retry_after = max(1, math.ceil(max(waits)))
                logger.warning(f"Rate limit reached for actor {actor_id}, retry after {retry_after}s")
                raise QuotaExceeded(stats.remaining_minute, stats.remaining_hour, retry_after)

            self._limiter.hit(self.minute_item, actor_id)
            self._limiter.hit(self.hour_item, actor_id)
            return self._stats_unlocked(actor_id)

    def stats(self, actor_id: str) -> RateLimitStats:
        """Remaining quota without consuming any."""
        with self._lock:
            return self._stats_unlocked(actor_id)

    def reset(self) -> None:
        """Clear every counter (tests and administrative reset)."""
        with self._lock:
            self._storage.reset()
