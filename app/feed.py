"""
Render enriched episodes as podcast RSS.

Two documents are produced from the same episode list:

- build_feed: the primary podcast feed (RSS 2.0 + iTunes namespace). Only episodes
  with a scraped audio URL are published.
- build_simple_feed: a plain listing of every ranked episode, with or without audio.

Documents are built with string templates, keeping CDATA sections exactly as written.
Every value outside CDATA goes through escape_xml.
"""
import re
from dataclasses import dataclass
from datetime import datetime, timezone
from email.utils import format_datetime
from typing import Any, Iterable, Optional
from urllib.parse import urlparse

import constants as C
from models.episode import Episode, Duration

ITUNES_NS = 'http://www.itunes.com/dtds/podcast-1.0.dtd'
ATOM_NS = 'http://www.w3.org/2005/Atom'

# Characters that XML 1.0 does not allow anywhere, even escaped
_illegal_xml_chars = re.compile('[\x00-\x08\x0b\x0c\x0e-\x1f\ufffe\uffff]')
_xml_escapes = {
    '&': '&amp;',
    '<': '&lt;',
    '>': '&gt;',
    "'": '&apos;',
    '"': '&quot;',
    '\n': ' ',
    '\r': ' ',
}
_xml_specials = re.compile('[&<>\'"\n\r]')

AUDIO_TYPES = {
    '.m4a': 'audio/x-m4a',
    '.mp3': 'audio/mpeg',
    '.aac': 'audio/aac',
}
DEFAULT_AUDIO_TYPE = 'audio/mpeg'


@dataclass(frozen=True)
class FeedDocument:
    xml: str
    item_count: int


def escape_xml(text: Optional[str]) -> str:
    """Escape the five XML specials and flatten CR/LF to spaces. Text without them is returned unchanged."""
    if not text:
        return ''
    text = _illegal_xml_chars.sub('', text)
    return _xml_specials.sub(lambda m: _xml_escapes[m.group(0)], text)


def cdata(text: Optional[str]) -> str:
    # A literal ]]> would close the section early, so split it across two sections
    body = _illegal_xml_chars.sub('', text or '').replace(']]>', ']]]]><![CDATA[>')
    return f'<![CDATA[{body}]]>'


def audio_mime_type(audio_url: str) -> str:
    """Guess the enclosure type from the URL path suffix, ignoring any query string."""
    path = urlparse(audio_url).path.lower()
    for suffix, mime in AUDIO_TYPES.items():
        if path.endswith(suffix):
            return mime
    return DEFAULT_AUDIO_TYPE


def duration_seconds(duration: Duration) -> int:
    """
    Normalise an upstream duration to whole seconds.

    Numbers are already seconds and are never reinterpreted. Strings are colon-separated
    components read right to left as seconds, minutes, hours, ...: "01:30:45" -> 5445,
    "90" -> 90. Fractional components are truncated ("01:02.5" -> 62). A string with a
    non-numeric component yields 0.
    """
    if duration is None or isinstance(duration, bool):
        return 0
    if isinstance(duration, (int, float)):
        try:
            return int(duration)
        except (ValueError, OverflowError):  # nan, inf
            return 0
    total = 0
    for position, part in enumerate(reversed(duration.strip().split(':'))):
        try:
            total += int(float(part)) * 60 ** position
        except (ValueError, OverflowError):
            return 0
    return total


def _parse_timestamp(value: Any) -> Optional[datetime]:
    if value is None or value == '' or isinstance(value, bool):
        return None
    try:
        if isinstance(value, (int, float)):
            # Upstream timestamps are JavaScript epoch milliseconds
            return datetime.fromtimestamp(value / 1000, tz=timezone.utc)
        parsed = datetime.fromisoformat(str(value).strip().replace('Z', '+00:00'))
    except (ValueError, OverflowError, OSError):
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def rfc822(value: Any, default: datetime) -> str:
    """Format an upstream timestamp for pubDate, falling back to `default` when absent or unparseable."""
    parsed = _parse_timestamp(value) or default
    return format_datetime(parsed.astimezone(timezone.utc), usegmt=True)


def _primary_item(episode: Episode, now: datetime) -> str:
    audio_url = escape_xml(episode.extracted_audio_url)
    title = episode.title or C.UNKNOWN_TITLE
    author = episode.podcast_name or C.UNKNOWN_AUTHOR
    summary = (f'播放量: {episode.play_count} | 评论数: {episode.comment_count} '
               f'| 订阅数: {episode.subscription}')
    link = escape_xml(episode.link or episode.extracted_audio_url)
    image = (f'\n      <itunes:image href="{escape_xml(episode.logo_url)}"/>'
             if episode.logo_url else '')

    return f"""
    <item>
      <title>{cdata(title)}</title>
      <itunes:author>{cdata(author)}</itunes:author>
      <link>{link}</link>
      <itunes:subtitle>{cdata(title)}</itunes:subtitle>
      <description>{cdata(f'<p>{summary}</p>')}</description>{image}
      <enclosure url="{audio_url}" length="0" type="{audio_mime_type(episode.extracted_audio_url)}"/>
      <guid>{audio_url}</guid>
      <pubDate>{rfc822(episode.post_time, now)}</pubDate>
      <itunes:duration>{duration_seconds(episode.duration)}</itunes:duration>
    </item>"""


def build_feed(episodes: Iterable[Episode], now: Optional[datetime] = None,
               self_url: Optional[str] = None) -> FeedDocument:
    """
    Render the primary podcast feed.

    Episodes without an extracted audio URL are skipped. Item order follows the input.
    """
    now = now or datetime.now(timezone.utc)
    self_url = self_url or f'{C.PUBLIC_BASE_URL}/public/{C.FEED_FILE}'

    items = [_primary_item(ep, now) for ep in episodes if ep.extracted_audio_url]

    channel = f"""
    <atom:link href="{escape_xml(self_url)}" rel="self" type="application/rss+xml"/>
    <title>{cdata(C.FEED_TITLE)}</title>
    <link>{escape_xml(C.SITE_BASE_URL)}</link>
    <language>{escape_xml(C.FEED_LANGUAGE)}</language>
    <itunes:author>{cdata(C.FEED_AUTHOR)}</itunes:author>
    <itunes:summary>{cdata(C.FEED_DESCRIPTION)}</itunes:summary>
    <description>{cdata(C.FEED_DESCRIPTION)}</description>
    <copyright>{cdata(f'Copyright @{C.FEED_AUTHOR}')}</copyright>
    <itunes:owner>
      <itunes:name>{cdata(C.FEED_AUTHOR)}</itunes:name>
      <itunes:email>{escape_xml(C.FEED_OWNER_EMAIL)}</itunes:email>
    </itunes:owner>
    <itunes:keywords>{escape_xml(C.FEED_KEYWORDS)}</itunes:keywords>
    <itunes:image href="{escape_xml(C.FEED_IMAGE_URL)}"/>
    <itunes:explicit>no</itunes:explicit>
    <itunes:category text="{escape_xml(C.FEED_CATEGORY)}">
      <itunes:category text="{escape_xml(C.FEED_SUBCATEGORY)}"/>
    </itunes:category>"""

    xml = f"""<?xml version="1.0" encoding="UTF-8"?>
<rss xmlns:itunes="{ITUNES_NS}" xmlns:atom="{ATOM_NS}" version="2.0">
  <channel>{channel}{''.join(items)}
  </channel>
</rss>
"""
    return FeedDocument(xml=xml, item_count=len(items))


def _simple_item(index: int, episode: Episode, now: datetime) -> str:
    audio_url = escape_xml(episode.extracted_audio_url)
    title = escape_xml(episode.title or C.UNKNOWN_TITLE)
    description = escape_xml(episode.description or episode.title or C.NO_DESCRIPTION)
    author = escape_xml(episode.podcast_name or C.UNKNOWN_AUTHOR)
    link = audio_url or escape_xml(f'{C.PUBLIC_BASE_URL}/episode/{index}')
    guid = audio_url or f'episode-{index}'

    lines = [
        f'      <title>{title}</title>',
        f'      <description>{description}</description>',
        f'      <link>{link}</link>',
        f'      <pubDate>{rfc822(episode.publish_date, now)}</pubDate>',
        f'      <guid isPermaLink="{"true" if audio_url else "false"}">{guid}</guid>',
    ]
    if audio_url:
        lines.append(f'      <enclosure url="{audio_url}" type="{audio_mime_type(episode.extracted_audio_url)}" '
                     f'length="0"/>')
    lines.append(f'      <itunes:author>{author}</itunes:author>')
    if episode.logo_url:
        lines.append(f'      <itunes:image href="{escape_xml(episode.logo_url)}"/>')
    if audio_url:
        lines.append(f'      <itunes:duration>{duration_seconds(episode.duration)}</itunes:duration>')

    body = '\n'.join(lines)
    return f'\n    <item>\n{body}\n    </item>'


def build_simple_feed(episodes: Iterable[Episode], now: Optional[datetime] = None,
                      self_url: Optional[str] = None) -> FeedDocument:
    """Render the secondary RSS: every episode, numbered from 1 for placeholder links and GUIDs."""
    now = now or datetime.now(timezone.utc)
    self_url = self_url or f'{C.PUBLIC_BASE_URL}/rss'
    stamp = format_datetime(now.astimezone(timezone.utc), usegmt=True)

    items = [_simple_item(index, ep, now) for index, ep in enumerate(episodes, start=1)]

    xml = f"""<?xml version="1.0" encoding="UTF-8"?>
<rss version="2.0" xmlns:atom="{ATOM_NS}" xmlns:itunes="{ITUNES_NS}">
  <channel>
    <title>{escape_xml(C.FEED_TITLE)}</title>
    <description>{escape_xml(C.FEED_DESCRIPTION)}</description>
    <link>{escape_xml(C.SITE_BASE_URL)}</link>
    <lastBuildDate>{stamp}</lastBuildDate>
    <pubDate>{stamp}</pubDate>
    <ttl>60</ttl>
    <atom:link href="{escape_xml(self_url)}" rel="self" type="application/rss+xml"/>
    <itunes:author>{escape_xml(C.FEED_AUTHOR)}</itunes:author>
    <itunes:summary>{escape_xml(C.FEED_SUMMARY)}</itunes:summary>
    <itunes:category text="{escape_xml(C.FEED_CATEGORY)}"/>
    <itunes:image href="{escape_xml(C.FEED_SIMPLE_IMAGE_URL)}"/>{''.join(items)}
  </channel>
</rss>
"""
    return FeedDocument(xml=xml, item_count=len(items))
