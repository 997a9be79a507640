"""On-disk snapshot of the last good refresh, plus the published feed documents."""
import json
import os
import tempfile
from pathlib import Path
from typing import Optional

from loguru import logger as log

from constants import CACHE_DIR, PUBLIC_DIR, SNAPSHOT_FILE, RSS_FILE, FEED_FILE
from errors import CacheUnavailable, MalformedResponse
from models.episode import Episode, parse_episodes


def _atomic_write(path: Path, text: str) -> None:
    """Write text to path so that readers see either the old or the new file, never a partial one."""
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f'.{path.name}.', suffix='.tmp')
    try:
        with os.fdopen(fd, 'w', encoding='utf-8') as fh:
            fh.write(text)
        os.replace(tmp_name, path)
    except BaseException:
        Path(tmp_name).unlink(missing_ok=True)
        raise


class CacheStore:
    """
    Files owned by the pipeline:

    - snapshot_path: upstream payload with data.episodes replaced by the enriched list
    - rss_path: secondary RSS document, served on /rss
    - feed_path: primary podcast feed, served as /public/feed.xml
    """

    def __init__(self, cache_dir: Path = CACHE_DIR, public_dir: Path = PUBLIC_DIR):
        self.cache_dir = Path(cache_dir)
        self.public_dir = Path(public_dir)
        self.snapshot_path = self.cache_dir / SNAPSHOT_FILE
        self.rss_path = self.cache_dir / RSS_FILE
        self.feed_path = self.public_dir / FEED_FILE

    def load_snapshot(self) -> Optional[dict]:
        """
        Read the snapshot.

        Returns:
            The snapshot payload, or None if no snapshot has been written

        Raises:
            CacheUnavailable: if the file exists but is unreadable or malformed
        """
        if not self.snapshot_path.exists():
            return None
        try:
            payload = json.loads(self.snapshot_path.read_text(encoding='utf-8'))
        except (OSError, ValueError) as e:
            raise CacheUnavailable(f"Cannot read {self.snapshot_path}: {e}") from e

        data = payload.get('data') if isinstance(payload, dict) else None
        if not isinstance(data, dict) or not isinstance(data.get('episodes'), list):
            raise CacheUnavailable(f"{self.snapshot_path} has no data.episodes list")
        return payload

    def load_episodes(self) -> Optional[list[Episode]]:
        """Episodes from the snapshot, or None if there is no snapshot."""
        payload = self.load_snapshot()
        if payload is None:
            return None
        try:
            return parse_episodes(payload['data']['episodes'])
        except MalformedResponse as e:
            raise CacheUnavailable(f"{self.snapshot_path} holds an invalid episode: {e}") from e

    def save_snapshot(self, payload: dict, episodes: list[Episode]) -> Path:
        """Overwrite the snapshot, keeping the upstream metadata around the enriched list."""
        data = dict(payload.get('data') or {})
        data['episodes'] = [episode.to_dict() for episode in episodes]
        snapshot = dict(payload)
        snapshot['data'] = data
        _atomic_write(self.snapshot_path, json.dumps(snapshot, ensure_ascii=False, indent=2))
        log.debug(f"Saved {len(episodes)} episodes to {self.snapshot_path}")
        return self.snapshot_path

    def write_feed(self, document: str) -> Path:
        _atomic_write(self.feed_path, document)
        return self.feed_path

    def write_rss(self, document: str) -> Path:
        _atomic_write(self.rss_path, document)
        return self.rss_path

    def read_rss(self) -> Optional[str]:
        if not self.rss_path.exists():
            return None
        return self.rss_path.read_text(encoding='utf-8')

    def delete_snapshot(self) -> bool:
        if self.snapshot_path.exists():
            self.snapshot_path.unlink()
            log.info(f"Deleted {self.snapshot_path}")
            return True
        return False

    def clear(self) -> list[Path]:
        """Delete the snapshot and the cached RSS. The published feed stays until the next refresh."""
        removed = []
        for path in (self.snapshot_path, self.rss_path):
            if path.exists():
                path.unlink()
                removed.append(path)
        log.info(f"Cache cleared: {[p.name for p in removed] or 'nothing to remove'}")
        return removed
