import structlog

from quotaline.errors import CacheDecodeError, QuotalineError, SnapshotResolveError
from quotaline.freshness import FreshnessPolicy
from quotaline.models import UsageSnapshot
from quotaline.provider.base import UsageProvider
from quotaline.store import SnapshotStore

logger = structlog.get_logger()


class SnapshotResolver:
    """
    SnapshotResolver is the single entry point for obtaining usage
    data. It serves the cached snapshot while the freshness policy
    trusts it, otherwise fetches a new one and persists it.

    Fetch failures are raised as SnapshotResolveError; deciding on a
    fallback value is left to the caller.
    """

    def __init__(
        self,
        store: "SnapshotStore",
        provider: "UsageProvider",
        policy: "FreshnessPolicy",
    ) -> "None":
        self._store = store
        self._provider = provider
        self._policy = policy

    async def resolve(self) -> "UsageSnapshot":
        cached = self._load_cached()
        if cached is not None and self._policy.is_fresh(cached):
            logger.debug("cache_hit", cached_at=cached.cached_at)
            return cached

        logger.debug("cache_miss", path=str(self._store.path))
        try:
            snapshot = await self._provider.fetch_snapshot()
        except QuotalineError as err:
            raise SnapshotResolveError(f"failed to fetch from API: {err}") from err

        # the fetched snapshot is still served when it cannot be persisted
        try:
            self._store.save(snapshot)
        except OSError as err:
            logger.warning("cache_save_failed", path=str(self._store.path), error=str(err))

        return snapshot

    def _load_cached(self) -> "UsageSnapshot | None":
        try:
            return self._store.load()
        except FileNotFoundError:
            return None
        except (OSError, CacheDecodeError) as err:
            logger.debug("cache_unreadable", path=str(self._store.path), error=str(err))
            return None

    async def close(self) -> "None":
        """
        closes the provider's network resources.
        """
        await self._provider.close()
