import time
from typing import Callable

import structlog

from quotaline.models import UsageSnapshot

logger = structlog.get_logger()

# below this age the cache is trusted unconditionally so that
# rapid successive renders never hit the API
MIN_REFETCH_INTERVAL_SECONDS = 30.0
# beyond this age the cache is always refreshed
MAX_CACHE_LIFETIME_SECONDS = 120.0


class FreshnessPolicy:
    """
    FreshnessPolicy decides whether a persisted snapshot can be
    served as-is. It combines three signals, checked in order:

     - a minimum refetch interval, below which the snapshot is
     always fresh.
     - a maximum lifetime, at or beyond which it is always stale.
     - an activity signal (a unix timestamp, or None when unknown)
     consulted only in between: activity strictly after the capture
     time makes the snapshot stale.

    Malformed snapshots are stale before any of this is evaluated.
    """

    def __init__(
        self,
        activity_signal: "Callable[[], float | None]",
        clock: "Callable[[], float]" = time.time,
        min_refetch_interval: "float" = MIN_REFETCH_INTERVAL_SECONDS,
        max_cache_lifetime: "float" = MAX_CACHE_LIFETIME_SECONDS,
    ) -> "None":
        self._activity_signal = activity_signal
        self._clock = clock
        self._min_refetch_interval = min_refetch_interval
        self._max_cache_lifetime = max_cache_lifetime

    def is_fresh(self, snapshot: "UsageSnapshot") -> "bool":
        if not snapshot.is_well_formed:
            logger.debug("cache_malformed", cached_at=snapshot.cached_at)
            return False

        # a capture time in the future (clock skew) yields a negative
        # age and is treated as very fresh
        age = self._clock() - snapshot.cached_at

        if age < self._min_refetch_interval:
            return True

        if age >= self._max_cache_lifetime:
            logger.debug("cache_expired", age=age)
            return False

        activity_at = self._read_activity()
        if activity_at is not None and activity_at > snapshot.cached_at:
            logger.debug(
                "cache_outdated_by_activity",
                activity_at=activity_at,
                cached_at=snapshot.cached_at,
            )
            return False

        return True

    def _read_activity(self) -> "float | None":
        """
        queries the activity signal. Any failure counts as an
        unavailable signal and leaves the time-based verdict alone.
        """
        try:
            return self._activity_signal()
        except Exception:
            logger.debug("activity_signal_unavailable", exc_info=True)
            return None
