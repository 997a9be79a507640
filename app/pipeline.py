"""The pipeline object shared by the HTTP handlers and the scheduler."""
from typing import Callable, Optional

from loguru import logger as log

from cache import CacheStore
from constants import EPISODE_DELAY_SECONDS, ENRICH_CONCURRENCY
from errors import CacheUnavailable
from feed import FeedDocument
from flows.refresh import RefreshResult, refresh_episodes, regenerate_feeds
from models.episode import Episode
from tasks.discover import discover_endpoint


class FeedPipeline:
    """
    Constructed once at startup and handed to the Flask app. Its only state is the cache store.

    The refresh, regenerate and discover callables default to the Prefect flows and the
    discovery task; tests substitute their own.
    """

    def __init__(self, store: Optional[CacheStore] = None,
                 delay: float = EPISODE_DELAY_SECONDS,
                 concurrency: int = ENRICH_CONCURRENCY,
                 refresh: Callable[..., RefreshResult] = refresh_episodes,
                 regenerate: Callable[..., FeedDocument] = regenerate_feeds,
                 discover: Callable[[], str] = discover_endpoint.fn):
        self.store = store or CacheStore()
        self.delay = delay
        self.concurrency = concurrency
        self._refresh = refresh
        self._regenerate = regenerate
        self._discover = discover

    def discover_endpoint(self) -> str:
        return self._discover()

    def refresh_episodes(self) -> RefreshResult:
        return self._refresh(store=self.store, delay=self.delay, concurrency=self.concurrency)

    def force_refresh(self) -> RefreshResult:
        """Drop the snapshot first, so a failed refresh cannot fall back to stale data."""
        self.store.delete_snapshot()
        return self.refresh_episodes()

    def regenerate_feed(self) -> FeedDocument:
        return self._regenerate(store=self.store)

    def cached_episodes(self) -> list[Episode]:
        """Episodes from the last good refresh. Empty when there is no usable snapshot."""
        try:
            return self.store.load_episodes() or []
        except CacheUnavailable as e:
            log.warning(f"Ignoring unusable snapshot: {e}")
            return []

    def cached_rss(self) -> Optional[str]:
        return self.store.read_rss()

    def clear_cache(self) -> list[str]:
        return [path.name for path in self.store.clear()]
