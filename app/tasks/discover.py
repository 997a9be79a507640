"""Prefect task for locating the fingerprinted ranking URL behind the xyzrank single-page app."""
from typing import Optional

from bs4 import BeautifulSoup
from playwright.sync_api import sync_playwright, Error as PlaywrightError, TimeoutError as PlaywrightTimeoutError
from prefect import task
from prefect.cache_policies import NONE
from utils.logging import get_logger

from constants import SITE_BASE_URL, NAVIGATION_TIMEOUT_MS, QUIESCENCE_MS, HTTP_USER_AGENT, api_url_matcher
from errors import BrowserLaunchError, EndpointNotFound


def extract_api_url(html: str) -> Optional[str]:
    """
    Find the ranking URL in rendered markup.

    Inline <script> bodies are checked first, since that is where the bundle embeds the
    asset path, then the whole document as plain text.
    """
    soup = BeautifulSoup(html, 'lxml')
    for script in soup.find_all('script'):
        body = script.string or script.get_text()
        if body:
            match = api_url_matcher.search(body)
            if match:
                return match.group(0)
    match = api_url_matcher.search(html)
    return match.group(0) if match else None


@task(
    name="discover-endpoint",
    cache_policy=NONE,
    log_prints=True
)
def discover_endpoint(site_url: str = SITE_BASE_URL,
                      navigation_timeout_ms: int = NAVIGATION_TIMEOUT_MS,
                      quiescence_ms: int = QUIESCENCE_MS) -> str:
    """
    Load the single-page app in headless Chromium and capture the ranking URL it requests.

    Every response is tested against the fingerprint pattern while the page loads. After
    the network goes idle we keep listening for `quiescence_ms` to catch late requests.
    If nothing matched, the rendered markup is scanned instead.

    Args:
        site_url: Root of the single-page app
        navigation_timeout_ms: Upper bound on waiting for network idle
        quiescence_ms: Extra listening window after navigation settles

    Returns:
        The first matching URL

    Raises:
        BrowserLaunchError: If Chromium cannot be started
        EndpointNotFound: If neither the network nor the markup yields a match
    """
    log = get_logger()
    log.info(f"Starting headless browser to discover ranking endpoint on {site_url}")

    matches: list[str] = []

    def on_response(response):
        url = response.url
        if api_url_matcher.search(url):
            matches.append(url)
            log.info(f"Observed ranking endpoint: {url}")

    with sync_playwright() as pw:
        try:
            browser = pw.chromium.launch(
                headless=True,
                args=["--no-sandbox", "--disable-setuid-sandbox"],
            )
        except PlaywrightError as e:
            log.error(f"Could not launch Chromium: {e}")
            raise BrowserLaunchError(f"Could not launch Chromium: {e}") from e

        try:
            ctx = browser.new_context(user_agent=HTTP_USER_AGENT)
            page = ctx.new_page()
            page.on("response", on_response)

            try:
                page.goto(site_url.rstrip('/') + '/#/', wait_until="networkidle", timeout=navigation_timeout_ms)
            except PlaywrightTimeoutError:
                # Long-polling pages never go idle; whatever loaded so far may still contain the URL
                log.warning(f"Navigation to {site_url} did not settle within {navigation_timeout_ms} ms")

            if quiescence_ms > 0:
                page.wait_for_timeout(quiescence_ms)

            if not matches:
                log.info("No ranking request observed, scanning rendered page")
                found = extract_api_url(page.content())
                if found:
                    matches.append(found)
        except PlaywrightError as e:
            log.error(f"Browser error while discovering endpoint: {e}")
            raise EndpointNotFound(f"Browser error on {site_url}: {e}") from e
        finally:
            browser.close()

    if not matches:
        raise EndpointNotFound(f"No URL matching {api_url_matcher.pattern} found on {site_url}")

    log.info(f"Using ranking endpoint {matches[0]}")
    return matches[0]
