"""Tests for parsing upstream episode records."""
import pytest

from errors import MalformedResponse
from models.episode import Episode, parse_episodes


class TestEpisode:

    def test_from_dict_maps_upstream_names(self, ranking_payload):
        ep = Episode.from_dict(ranking_payload['data']['episodes'][0])
        assert ep.title == '第 126 期：AI 与播客 & 未来'
        assert ep.podcast_name == '科技早知道'
        assert ep.link == 'https://www.xiaoyuzhoufm.com/episode/65a1b2c3d4e5f60718293a4b'
        assert ep.logo_url == 'https://image.xyzcdn.net/logo-tech.jpg'
        assert ep.post_time == '2026-10-17T22:00:00.000Z'
        assert ep.duration == 5445
        assert (ep.play_count, ep.comment_count, ep.subscription) == (183204, 512, 402113)
        assert ep.extracted_audio_url == ''
        assert not ep.has_audio

    def test_optional_fields(self, ranking_payload):
        ep = Episode.from_dict(ranking_payload['data']['episodes'][2])
        assert ep.link is None
        assert ep.duration is None
        assert ep.publish_date is None

    def test_string_duration_kept(self, ranking_payload):
        assert Episode.from_dict(ranking_payload['data']['episodes'][1]).duration == '01:30:45'

    @pytest.mark.parametrize('duration', [True, [1, 2], {'s': 1}])
    def test_unusable_duration_dropped(self, duration):
        assert Episode.from_dict({'title': 't', 'duration': duration}).duration is None

    def test_counters_coerced(self):
        ep = Episode.from_dict({'title': 't', 'playCount': '12', 'commentCount': None, 'subscription': 'many'})
        assert (ep.play_count, ep.comment_count, ep.subscription) == (12, 0, 0)

    @pytest.mark.parametrize('record', [None, 'title', ['title'], 42])
    def test_rejects_non_objects(self, record):
        with pytest.raises(MalformedResponse):
            Episode.from_dict(record)

    @pytest.mark.parametrize('record,title', [({}, ''), ({'title': None}, ''), ({'title': 42}, '42')])
    def test_untitled_record_is_kept(self, record, title):
        ep = Episode.from_dict(record)
        assert ep.title == title
        assert ep.to_dict()['title'] == title

    def test_with_audio_returns_new_episode(self, episodes):
        original = episodes[0]
        enriched = original.with_audio('https://a.example/1.mp3')
        assert enriched.has_audio
        assert enriched.extracted_audio_url == 'https://a.example/1.mp3'
        assert original.extracted_audio_url == ''
        assert original.with_audio(None).extracted_audio_url == ''

    def test_to_dict_round_trip(self, episodes):
        enriched = episodes[1].with_audio('https://a.example/1.mp3')
        record = enriched.to_dict()
        assert record['hasAudio'] is True
        assert record['podcastName'] == "Tom's Show"
        assert Episode.from_dict(record) == enriched


class TestParseEpisodes:

    def test_preserves_order(self, ranking_payload):
        titles = [ep.title for ep in parse_episodes(ranking_payload['data']['episodes'])]
        assert titles == [r['title'] for r in ranking_payload['data']['episodes']]

    def test_requires_list(self):
        with pytest.raises(MalformedResponse):
            parse_episodes({'title': 'x'})
