"""Prefect flows that refresh the episode ranking and republish the feeds."""
import fcntl
import threading
import time
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Optional

import humanize
import requests
from prefect import flow
from utils.logging import get_logger
from utils.pacing import paced

from cache import CacheStore
from constants import EPISODE_DELAY_SECONDS, ENRICH_CONCURRENCY, HTTP_USER_AGENT
from errors import PipelineError, CacheUnavailable
from feed import FeedDocument
from models.episode import Episode
from tasks.audio import resolve_audio_url
from tasks.discover import discover_endpoint
from tasks.feed import publish_feeds
from tasks.ranking import fetch_ranking

# One refresh at a time. A manual trigger that overlaps the daily run waits for it.
_refresh_lock = threading.Lock()
LOCK_FILE = ".refresh.lock"


@dataclass
class RefreshResult:
    episodes: list[Episode] = field(default_factory=list)
    from_cache: bool = False
    api_endpoint: Optional[str] = None
    error: Optional[str] = None  # What forced the cache fallback

    @property
    def audio_count(self) -> int:
        return sum(1 for ep in self.episodes if ep.has_audio)


def enrich_episodes(episodes: list[Episode], delay: float = EPISODE_DELAY_SECONDS,
                    concurrency: int = ENRICH_CONCURRENCY,
                    session: Optional[requests.Session] = None) -> list[Episode]:
    """
    Attach a scraped audio URL to every episode, preserving ranking order.

    With concurrency 1 (the default) pages are fetched one at a time with `delay`
    seconds between them. Higher values submit resolutions to Prefect's task runner,
    still spaced `delay` apart, and collect the results in order. `session` is only used
    on the sequential path; submitted resolutions run in worker threads and each opens
    its own connection.
    """
    log = get_logger()
    total = len(episodes)

    if concurrency <= 1:
        enriched = []
        for i, episode in enumerate(paced(episodes, delay), start=1):
            log.info(f"Processing {i}/{total}: {episode.title}")
            audio_url = resolve_audio_url(episode.link, session=session) if episode.link else ''
            enriched.append(episode.with_audio(audio_url))
        return enriched

    futures = []
    for i, episode in enumerate(paced(episodes, delay), start=1):
        log.info(f"Submitting {i}/{total}: {episode.title}")
        futures.append(resolve_audio_url.submit(episode.link) if episode.link else None)
    return [ep.with_audio(f.result() if f is not None else '') for ep, f in zip(episodes, futures)]


def _fallback(store: CacheStore, error: PipelineError) -> RefreshResult:
    log = get_logger()
    log.warning(f"Refresh failed ({type(error).__name__}: {error}), trying cached snapshot")
    try:
        cached = store.load_episodes()
    except CacheUnavailable as e:
        log.error(f"Cached snapshot unusable: {e}")
        raise error
    if cached is None:
        log.error("No cached snapshot to fall back to")
        raise error
    log.info(f"Serving {len(cached)} episodes from cache")
    return RefreshResult(episodes=cached, from_cache=True, error=str(error))


@contextmanager
def exclusive_refresh(store: CacheStore):
    """
    Hold the refresh lock for the duration of the block.

    The thread lock covers Flask handler threads; the flock on a file in the cache
    directory covers scheduled runs, which Prefect executes in a separate process.
    """
    log = get_logger()
    if not _refresh_lock.acquire(blocking=False):
        log.info("Another refresh is in progress, waiting for it to finish")
        _refresh_lock.acquire()
    try:
        store.cache_dir.mkdir(parents=True, exist_ok=True)
        with open(store.cache_dir / LOCK_FILE, 'w') as fh:
            try:
                fcntl.flock(fh, fcntl.LOCK_EX | fcntl.LOCK_NB)
            except BlockingIOError:
                log.info("A refresh is running in another process, waiting for it to finish")
                fcntl.flock(fh, fcntl.LOCK_EX)
            try:
                yield
            finally:
                fcntl.flock(fh, fcntl.LOCK_UN)
    finally:
        _refresh_lock.release()


@flow(name="refresh-episodes", log_prints=True)
def refresh_episodes(store: Optional[CacheStore] = None,
                     delay: float = EPISODE_DELAY_SECONDS,
                     concurrency: int = ENRICH_CONCURRENCY) -> RefreshResult:
    """
    Rebuild the enriched episode list and republish the feeds.

    Workflow:
    1. Discover the fingerprinted ranking URL with a headless browser
    2. Fetch and validate the ranking
    3. Scrape each episode page for its audio URL (rate limited)
    4. Overwrite the cached snapshot
    5. Publish feed.xml and the cached RSS (failures here are logged, not raised)

    If step 1 or 2 fails, the last cached snapshot is returned instead. If there is
    none, the original error is raised.

    Args:
        store: Cache location, defaults to the configured directories
        delay: Seconds between episode page fetches
        concurrency: Number of episode pages fetched in parallel

    Returns:
        RefreshResult with the episodes and whether they came from the cache
    """
    log = get_logger()
    store = store or CacheStore()

    with exclusive_refresh(store):
        started = time.monotonic()
        try:
            api_url = discover_endpoint()
            payload, episodes = fetch_ranking(api_url)
        except PipelineError as e:
            return _fallback(store, e)

        with requests.Session() as session:
            session.headers.update({'User-Agent': HTTP_USER_AGENT})
            enriched = enrich_episodes(episodes, delay=delay, concurrency=concurrency, session=session)

        store.save_snapshot(payload, enriched)
        result = RefreshResult(episodes=enriched, api_endpoint=api_url)
        log.info(f"Audio extracted for {result.audio_count} of {len(enriched)} episodes "
                 f"in {humanize.naturaldelta(time.monotonic() - started)}")

        try:
            publish_feeds(enriched, store)
        except Exception as e:
            log.error(f"Feed generation failed, keeping previously published feed: {e}")

        return result


@flow(name="regenerate-feeds", log_prints=True)
def regenerate_feeds(store: Optional[CacheStore] = None) -> FeedDocument:
    """
    Rebuild the feeds from the cached snapshot without scraping anything.

    Raises:
        CacheUnavailable: If there is no usable snapshot. Nothing is written in that case.
    """
    log = get_logger()
    store = store or CacheStore()

    episodes = store.load_episodes()
    if episodes is None:
        raise CacheUnavailable("No cached episode data, run a refresh first")

    log.info(f"Regenerating feeds from {len(episodes)} cached episodes")
    return publish_feeds(episodes, store)
