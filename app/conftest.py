"""Shared pytest fixtures."""
import copy
import json
from pathlib import Path

import pytest
from prefect.testing.utilities import prefect_test_harness

from cache import CacheStore
from models.episode import parse_episodes

API_URL = 'https://xyzrank.justinbot.com/assets/hot-episodes.3f9a1c2b.json'


@pytest.fixture(autouse=True, scope="session")
def prefect_test_fixture():
    """Run every flow and task against a throwaway Prefect database."""
    with prefect_test_harness():
        yield


@pytest.fixture(scope="session")
def test_feeds_dir():
    """Provide path to test fixtures directory."""
    return Path(__file__).parent / "test_feeds"


@pytest.fixture(scope="session")
def _ranking_fixture(test_feeds_dir):
    return json.loads((test_feeds_dir / "hot-episodes.json").read_text(encoding='utf-8'))


@pytest.fixture
def ranking_payload(_ranking_fixture):
    """A fresh copy of the recorded ranking payload, safe to mutate."""
    return copy.deepcopy(_ranking_fixture)


@pytest.fixture
def episodes(ranking_payload):
    return parse_episodes(ranking_payload['data']['episodes'])


@pytest.fixture
def enriched_episodes(episodes):
    """First two episodes with audio, the third (no page link) without."""
    return [
        episodes[0].with_audio('https://media.xyzcdn.net/65a1b2c3/episode-126.m4a'),
        episodes[1].with_audio('https://media.example.com/tom/ep42.mp3?source=rss&t=1'),
        episodes[2],
    ]


@pytest.fixture(scope="session")
def episode_page_html(test_feeds_dir):
    return (test_feeds_dir / "episode_page.html").read_text(encoding='utf-8')


@pytest.fixture
def store(tmp_path):
    """Cache store rooted in a per-test temporary directory."""
    return CacheStore(cache_dir=tmp_path / 'cache', public_dir=tmp_path / 'public')
