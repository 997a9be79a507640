"""Prefect task for scraping a direct audio URL out of an episode page."""
import re
from typing import Optional
from urllib.parse import urlparse

import requests
from bs4 import BeautifulSoup
from prefect import task
from prefect.cache_policies import NONE
from utils.logging import get_logger

from constants import HTTP_USER_AGENT, ACCEPT_LANGUAGE, PAGE_TIMEOUT_SECONDS

PAGE_HEADERS = {
    'User-Agent': HTTP_USER_AGENT,
    'Accept': 'text/html,application/xhtml+xml,application/xml;q=0.9,image/webp,*/*;q=0.8',
    'Accept-Language': ACCEPT_LANGUAGE,
}

# Highest priority first: (tag, attribute to match, value it must have, attribute holding the URL)
AUDIO_CANDIDATES = [
    ('meta', 'property', 'og:audio', 'content'),
    ('meta', 'name', 'og:audio', 'content'),
    ('meta', 'property', 'audio', 'content'),
    ('meta', 'name', 'audio', 'content'),
    ('audio', None, None, 'src'),
    ('source', None, None, 'src'),
]

_has_scheme = re.compile(r'^[a-zA-Z][a-zA-Z0-9+.-]*:')


def find_audio_url(soup: BeautifulSoup) -> str:
    """Apply the candidate selectors in order and return the first non-empty value, or ''."""
    for tag, key, value, attr in AUDIO_CANDIDATES:
        node = soup.find(tag, attrs={key: value}) if key else soup.find(tag)
        found = (node.get(attr) or '').strip() if node else ''
        if found:
            return found
    return ''


def absolutize(audio_url: str, page_url: str) -> str:
    """
    Make a scraped audio URL absolute.

    Anything with a scheme is returned as is. Protocol-relative URLs take the page's
    scheme. Everything else is treated as a path on the page's origin.
    """
    if not audio_url or _has_scheme.match(audio_url):
        return audio_url
    page = urlparse(page_url)
    if audio_url.startswith('//'):
        return f'{page.scheme}:{audio_url}'
    origin = f'{page.scheme}://{page.netloc}'
    return origin + (audio_url if audio_url.startswith('/') else '/' + audio_url)


def _log_meta_tags(soup: BeautifulSoup, page_url: str) -> None:
    log = get_logger()
    log.debug(f"No audio found on {page_url}, meta tags present:")
    for meta in soup.find_all('meta'):
        key = meta.get('property') or meta.get('name')
        if key:
            log.debug(f"  {key}: {meta.get('content')}")


def extract_audio_url(html: str, page_url: str) -> str:
    soup = BeautifulSoup(html, 'lxml')
    audio_url = absolutize(find_audio_url(soup), page_url)
    if not audio_url:
        _log_meta_tags(soup, page_url)
    return audio_url


@task(
    name="resolve-audio-url",
    cache_policy=NONE,
    log_prints=True
)
def resolve_audio_url(page_url: str, session: Optional[requests.Session] = None,
                      timeout: float = PAGE_TIMEOUT_SECONDS) -> str:
    """
    Fetch an episode page and recover a playable audio URL from it.

    Never raises. Network errors, timeouts, error statuses and unparseable pages all
    come back as ''.

    Args:
        page_url: Episode page to scrape
        session: Optional requests session to reuse connections
        timeout: Request timeout in seconds

    Returns:
        Absolute audio URL, or '' if none could be found
    """
    log = get_logger()
    log.info(f"Resolving audio URL from {page_url}")
    getter = session.get if session is not None else requests.get
    try:
        response = getter(page_url, headers=PAGE_HEADERS, timeout=timeout)
        response.raise_for_status()
        audio_url = extract_audio_url(response.text, page_url)
    except requests.RequestException as e:
        log.warning(f"Fetching {page_url} failed: {e}")
        return ''
    except Exception as e:
        log.warning(f"Parsing {page_url} failed: {type(e).__name__}: {e}")
        return ''

    log.info(f"Audio for {page_url}: {audio_url or 'not found'}")
    return audio_url
