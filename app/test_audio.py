"""Tests for scraping audio URLs out of episode pages."""
import pytest
import requests
from bs4 import BeautifulSoup

from tasks.audio import absolutize, extract_audio_url, find_audio_url, resolve_audio_url

PAGE_URL = 'https://show.example/ep/1'


class FakeResponse:
    def __init__(self, text='', status_code=200):
        self.text = text
        self.status_code = status_code

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} Error", response=self)


class FakeSession:
    def __init__(self, response=None, error=None):
        self.response = response
        self.error = error
        self.calls = []

    def get(self, url, headers=None, timeout=None):
        self.calls.append((url, headers, timeout))
        if self.error is not None:
            raise self.error
        return self.response


def soup(body: str) -> BeautifulSoup:
    return BeautifulSoup(f'<html><head></head><body>{body}</body></html>', 'lxml')


class TestFindAudioUrl:

    def test_og_audio_beats_audio_element(self, episode_page_html):
        assert extract_audio_url(episode_page_html, PAGE_URL) == 'https://media.xyzcdn.net/65a1b2c3/episode-126.m4a'

    @pytest.mark.parametrize('markup,expected', [
        ('<meta name="og:audio" content="https://a.example/1.mp3">', 'https://a.example/1.mp3'),
        ('<meta property="audio" content="https://a.example/2.mp3">', 'https://a.example/2.mp3'),
        ('<meta name="audio" content="https://a.example/3.mp3">', 'https://a.example/3.mp3'),
        ('<audio src="https://a.example/4.mp3"></audio>', 'https://a.example/4.mp3'),
        ('<video><source src="https://a.example/5.m4a"></video>', 'https://a.example/5.m4a'),
    ])
    def test_each_candidate(self, markup, expected):
        assert find_audio_url(soup(markup)) == expected

    def test_meta_before_media_elements(self):
        markup = ('<audio src="https://a.example/element.mp3"></audio>'
                  '<meta name="audio" content="https://a.example/meta.mp3">')
        assert find_audio_url(soup(markup)) == 'https://a.example/meta.mp3'

    def test_empty_candidate_falls_through(self):
        markup = '<meta property="og:audio" content="  "><audio src="https://a.example/4.mp3"></audio>'
        assert find_audio_url(soup(markup)) == 'https://a.example/4.mp3'

    def test_no_candidates(self):
        html = '<html><head><meta property="og:title" content="Nothing here"></head><body><p>hi</p></body></html>'
        assert extract_audio_url(html, PAGE_URL) == ''


class TestAbsolutize:

    def test_root_relative(self):
        assert absolutize('/audio/ep1.mp3', PAGE_URL) == 'https://show.example/audio/ep1.mp3'

    def test_bare_path_is_joined_to_origin(self):
        assert absolutize('audio/ep1.mp3', PAGE_URL) == 'https://show.example/audio/ep1.mp3'

    def test_protocol_relative_takes_page_scheme(self):
        assert absolutize('//cdn.example/ep1.mp3', PAGE_URL) == 'https://cdn.example/ep1.mp3'
        assert absolutize('//cdn.example/ep1.mp3', 'http://show.example/ep/1') == 'http://cdn.example/ep1.mp3'

    @pytest.mark.parametrize('url', ['https://cdn.example/ep1.mp3', 'http://cdn.example/ep1.mp3', ''])
    def test_absolute_unchanged(self, url):
        assert absolutize(url, PAGE_URL) == url

    def test_relative_audio_in_page(self):
        assert extract_audio_url('<audio src="/audio/ep1.mp3"></audio>', PAGE_URL) == \
            'https://show.example/audio/ep1.mp3'


class TestResolveAudioUrl:
    """The task never raises; every failure comes back as ''."""

    def test_resolves_from_page(self, episode_page_html):
        session = FakeSession(FakeResponse(episode_page_html))
        assert resolve_audio_url.fn(PAGE_URL, session=session) == 'https://media.xyzcdn.net/65a1b2c3/episode-126.m4a'
        url, headers, timeout = session.calls[0]
        assert url == PAGE_URL
        assert 'Mozilla' in headers['User-Agent']
        assert timeout == 15

    def test_connection_error(self):
        session = FakeSession(error=requests.ConnectionError("connection refused"))
        assert resolve_audio_url.fn(PAGE_URL, session=session) == ''

    def test_timeout(self):
        session = FakeSession(error=requests.Timeout("read timed out"))
        assert resolve_audio_url.fn(PAGE_URL, session=session, timeout=0.1) == ''

    def test_http_error_status(self):
        session = FakeSession(FakeResponse('<html></html>', status_code=404))
        assert resolve_audio_url.fn(PAGE_URL, session=session) == ''

    def test_unexpected_error(self):
        session = FakeSession(error=RuntimeError("boom"))
        assert resolve_audio_url.fn(PAGE_URL, session=session) == ''

    def test_module_level_get_without_session(self, monkeypatch, episode_page_html):
        calls = []

        def fake_get(url, headers=None, timeout=None):
            calls.append(url)
            return FakeResponse(episode_page_html)

        monkeypatch.setattr('tasks.audio.requests.get', fake_get)
        assert resolve_audio_url.fn(PAGE_URL) == 'https://media.xyzcdn.net/65a1b2c3/episode-126.m4a'
        assert calls == [PAGE_URL]
