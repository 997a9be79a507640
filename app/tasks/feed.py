"""Prefect task for rendering and publishing the feed documents."""
import humanize
import xmltodict
from prefect import task
from prefect.cache_policies import NONE
from utils.logging import get_logger

from cache import CacheStore
from feed import FeedDocument, build_feed, build_simple_feed
from models.episode import Episode


def count_items(document: str) -> int:
    """Parse a rendered feed and count its items. Raises if the document is not well-formed XML."""
    channel = xmltodict.parse(document)['rss']['channel']
    items = channel.get('item') if channel else None
    if items is None:
        return 0
    return len(items) if isinstance(items, list) else 1


@task(
    name="publish-feeds",
    cache_policy=NONE,
    log_prints=True
)
def publish_feeds(episodes: list[Episode], store: CacheStore) -> FeedDocument:
    """
    Render both feeds from the episode list and write them to disk.

    Each document is parsed back before it is written. One that fails to parse is
    not published and the previous file stays in place.

    Args:
        episodes: Enriched episodes in ranking order
        store: Where the documents are written

    Returns:
        The primary feed document

    Raises:
        xml.parsers.expat.ExpatError: If a rendered document is not well-formed
        OSError: If a document cannot be written
    """
    log = get_logger()

    feed = build_feed(episodes)
    simple = build_simple_feed(episodes)

    parsed_count = count_items(feed.xml)
    if parsed_count != feed.item_count:
        raise ValueError(f"Rendered feed has {parsed_count} items, expected {feed.item_count}")
    count_items(simple.xml)

    feed_path = store.write_feed(feed.xml)
    rss_path = store.write_rss(simple.xml)

    log.info(f"Published {feed_path} with {feed.item_count} items "
             f"({humanize.naturalsize(len(feed.xml.encode('utf-8')))})")
    log.info(f"Cached {rss_path} with {simple.item_count} items")
    return feed
