"""Tests for ranking endpoint discovery, with a stand-in for Playwright's sync API."""
import pytest
from playwright.sync_api import Error as PlaywrightError, TimeoutError as PlaywrightTimeoutError

import tasks.discover
from errors import BrowserLaunchError, EndpointNotFound
from tasks.discover import discover_endpoint, extract_api_url

API_URL = 'https://xyzrank.justinbot.com/assets/hot-episodes.3f9a1c2b.json'
LATER_API_URL = 'https://xyzrank.justinbot.com/assets/hot-episodes.0d0e0a0d.json'


class FakeResponse:
    def __init__(self, url):
        self.url = url


class FakePage:
    def __init__(self, browser):
        self.browser = browser
        self.handlers = []

    def on(self, event, handler):
        assert event == "response"
        self.handlers.append(handler)

    def goto(self, url, wait_until=None, timeout=None):
        self.browser.visited.append(url)
        for observed in self.browser.responses:
            for handler in self.handlers:
                handler(FakeResponse(observed))
        if self.browser.goto_error is not None:
            raise self.browser.goto_error

    def wait_for_timeout(self, ms):
        self.browser.waited.append(ms)

    def content(self):
        if self.browser.content_error is not None:
            raise self.browser.content_error
        return self.browser.html


class FakeContext:
    def __init__(self, browser):
        self.browser = browser

    def new_page(self):
        return FakePage(self.browser)


class FakeBrowser:
    def __init__(self, responses=(), html='<html></html>', goto_error=None, content_error=None):
        self.responses = list(responses)
        self.html = html
        self.goto_error = goto_error
        self.content_error = content_error
        self.visited = []
        self.waited = []
        self.closed = False

    def new_context(self, **kwargs):
        return FakeContext(self)

    def close(self):
        self.closed = True


class FakeChromium:
    def __init__(self, browser, launch_error=None):
        self.browser = browser
        self.launch_error = launch_error

    def launch(self, headless=True, args=None):
        assert headless
        if self.launch_error is not None:
            raise self.launch_error
        return self.browser


class FakePlaywright:
    def __init__(self, browser, launch_error=None):
        self.chromium = FakeChromium(browser, launch_error)

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        return False


@pytest.fixture
def fake_browser(monkeypatch):
    """Install a fake Playwright and return a function that configures its browser."""
    def install(launch_error=None, **kwargs):
        browser = FakeBrowser(**kwargs)
        monkeypatch.setattr(tasks.discover, 'sync_playwright', lambda: FakePlaywright(browser, launch_error))
        return browser
    return install


def discover(**kwargs):
    return discover_endpoint.fn(site_url='https://xyzrank.com', navigation_timeout_ms=1000, quiescence_ms=0, **kwargs)


class TestExtractApiUrl:

    def test_from_script_body(self):
        html = f'<html><head><script>window.__DATA_URL__ = "{API_URL}";</script></head></html>'
        assert extract_api_url(html) == API_URL

    def test_from_plain_markup(self):
        html = f'<html><body><link rel="preload" href="{API_URL}"></body></html>'
        assert extract_api_url(html) == API_URL

    def test_ignores_unfingerprinted_urls(self):
        html = '<script src="https://xyzrank.justinbot.com/assets/hot-episodes.json"></script>'
        assert extract_api_url(html) is None


class TestDiscoverEndpoint:

    def test_captures_matching_response(self, fake_browser):
        browser = fake_browser(responses=['https://xyzrank.com/assets/index.js', API_URL])
        assert discover() == API_URL
        assert browser.visited == ['https://xyzrank.com/#/']
        assert browser.closed

    def test_first_match_wins(self, fake_browser):
        fake_browser(responses=[API_URL, LATER_API_URL])
        assert discover() == API_URL

    def test_waits_for_late_requests(self, fake_browser):
        browser = fake_browser(responses=[API_URL])
        discover_endpoint.fn(site_url='https://xyzrank.com', navigation_timeout_ms=1000, quiescence_ms=250)
        assert browser.waited == [250]

    def test_navigation_timeout_keeps_observed_urls(self, fake_browser):
        browser = fake_browser(responses=[API_URL], goto_error=PlaywrightTimeoutError("Timeout 1000ms exceeded"))
        assert discover() == API_URL
        assert browser.closed

    def test_falls_back_to_rendered_markup(self, fake_browser):
        html = f'<html><script>fetch("{API_URL}")</script></html>'
        browser = fake_browser(responses=['https://xyzrank.com/assets/index.js'], html=html)
        assert discover() == API_URL
        assert browser.closed

    def test_nothing_found(self, fake_browser):
        browser = fake_browser(responses=['https://xyzrank.com/assets/index.js'])
        with pytest.raises(EndpointNotFound):
            discover()
        assert browser.closed

    def test_browser_error_is_endpoint_not_found(self, fake_browser):
        browser = fake_browser(content_error=PlaywrightError("Target page, context or browser has been closed"))
        with pytest.raises(EndpointNotFound):
            discover()
        assert browser.closed

    def test_launch_failure(self, fake_browser):
        fake_browser(launch_error=PlaywrightError("Executable doesn't exist"))
        with pytest.raises(BrowserLaunchError) as excinfo:
            discover()
        assert isinstance(excinfo.value, EndpointNotFound)
