"""Episode records from the xyzrank hot-episodes ranking."""
from dataclasses import dataclass, field, replace
from typing import Any, Optional, Union

from errors import MalformedResponse

Duration = Union[int, float, str, None]


def _text(value: Any) -> str:
    if value is None:
        return ''
    return value if isinstance(value, str) else str(value)


def _count(value: Any) -> int:
    try:
        return int(value or 0)
    except (TypeError, ValueError):
        return 0


@dataclass(frozen=True)
class Episode:
    """One entry of the upstream ranking, plus the audio URL scraped from its page."""
    title: str
    podcast_name: str = ''
    description: str = ''
    link: Optional[str] = None  # Episode page, scraped for audio
    logo_url: Optional[str] = None
    publish_date: Any = None  # ISO-8601 string or epoch milliseconds
    post_time: Any = None
    duration: Duration = None  # Seconds, or "HH:MM:SS"
    play_count: int = 0
    comment_count: int = 0
    subscription: int = 0
    extracted_audio_url: str = ''
    raw: dict = field(default_factory=dict, compare=False, repr=False)  # Full upstream record

    @property
    def has_audio(self) -> bool:
        return self.extracted_audio_url != ''

    def with_audio(self, audio_url: str) -> 'Episode':
        return replace(self, extracted_audio_url=audio_url or '')

    @classmethod
    def from_dict(cls, record: Any) -> 'Episode':
        """
        Build an Episode from an upstream (or cached) JSON record.

        A missing or null title becomes '' and is rendered with a placeholder.

        Raises:
            MalformedResponse: if the record is not an object
        """
        if not isinstance(record, dict):
            raise MalformedResponse(f"Episode record is {type(record).__name__}, expected object")

        duration = record.get('duration')
        if isinstance(duration, bool) or not isinstance(duration, (int, float, str)):
            duration = None

        return cls(
            title=_text(record.get('title')),
            podcast_name=_text(record.get('podcastName')),
            description=_text(record.get('description')),
            link=record.get('link') or None,
            logo_url=record.get('logoURL') or None,
            publish_date=record.get('publishDate'),
            post_time=record.get('postTime'),
            duration=duration,
            play_count=_count(record.get('playCount')),
            comment_count=_count(record.get('commentCount')),
            subscription=_count(record.get('subscription')),
            extracted_audio_url=_text(record.get('extractedAudioUrl')),
            raw=dict(record),
        )

    def to_dict(self) -> dict:
        """Upstream record with the enrichment fields merged in, as stored in the snapshot."""
        record = dict(self.raw)
        record['title'] = self.title
        record['extractedAudioUrl'] = self.extracted_audio_url
        record['hasAudio'] = self.has_audio
        return record


def parse_episodes(records: Any) -> list[Episode]:
    """Validate a `data.episodes` list. Order is preserved."""
    if not isinstance(records, list):
        raise MalformedResponse(f"data.episodes is {type(records).__name__}, expected list")
    return [Episode.from_dict(record) for record in records]
