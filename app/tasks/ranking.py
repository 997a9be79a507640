"""Prefect task for downloading and validating the hot-episodes ranking."""
from typing import Optional

import requests
from prefect import task
from prefect.cache_policies import NONE
from tenacity import retry, stop_after_attempt, wait_exponential, retry_if_exception_type
from utils.logging import get_logger

from constants import (SITE_BASE_URL, HTTP_USER_AGENT, ACCEPT_LANGUAGE,
                       RANKING_TIMEOUT_SECONDS, RANKING_FETCH_ATTEMPTS)
from errors import MalformedResponse, NetworkError, Transient
from models.episode import Episode, parse_episodes

RANKING_HEADERS = {
    'User-Agent': HTTP_USER_AGENT,
    'Accept': 'application/json, text/plain, */*',
    'Accept-Language': ACCEPT_LANGUAGE,
    'Referer': SITE_BASE_URL,
}

TRANSIENT_STATUSES = (429, 502, 503, 504)


@retry(reraise=True, stop=stop_after_attempt(RANKING_FETCH_ATTEMPTS),
       wait=wait_exponential(multiplier=1, min=1, max=10),
       retry=retry_if_exception_type(Transient))
def _get(url: str, session, timeout: float) -> requests.Response:
    r = session.get(url, headers=RANKING_HEADERS, timeout=timeout)
    if r.status_code in TRANSIENT_STATUSES:
        raise Transient(f"HTTP {r.status_code}")
    r.raise_for_status()
    return r


def validate_ranking(payload) -> list[Episode]:
    """
    Check the ranking payload shape and parse its episodes.

    Raises:
        MalformedResponse: unless payload is an object with a data.episodes list of valid records
    """
    if not isinstance(payload, dict):
        raise MalformedResponse(f"Ranking payload is {type(payload).__name__}, expected object")
    data = payload.get('data')
    if not isinstance(data, dict) or not isinstance(data.get('episodes'), list):
        raise MalformedResponse("Ranking payload has no data.episodes list")
    return parse_episodes(data['episodes'])


@task(
    name="fetch-ranking",
    cache_policy=NONE,
    log_prints=True
)
def fetch_ranking(api_url: str, session: Optional[requests.Session] = None,
                  timeout: float = RANKING_TIMEOUT_SECONDS) -> tuple[dict, list[Episode]]:
    """
    Download the ranking JSON from the discovered endpoint.

    Args:
        api_url: Fingerprinted hot-episodes URL
        session: Optional requests session
        timeout: Per-attempt timeout in seconds

    Returns:
        Tuple of (raw payload, parsed episodes in ranking order)

    Raises:
        NetworkError: On connection failure, timeout or HTTP error status
        MalformedResponse: If the body is not JSON or lacks data.episodes
    """
    log = get_logger()
    log.info(f"Fetching ranking from {api_url}")

    try:
        response = _get(api_url, session or requests, timeout)
    except (requests.RequestException, Transient) as e:
        log.error(f"Error fetching ranking: {e}")
        raise NetworkError(f"Fetching {api_url} failed: {e}") from e

    try:
        payload = response.json()
    except ValueError as e:
        raise MalformedResponse(f"Ranking from {api_url} is not JSON: {e}") from e

    episodes = validate_ranking(payload)
    log.info(f"Fetched {len(episodes)} ranked episodes ({len(response.content)} bytes)")
    return payload, episodes
