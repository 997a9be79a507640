import re
from os import getenv
from pathlib import Path

# Upstream single-page app and the fingerprinted JSON asset it loads. The hash changes on every deploy.
SITE_BASE_URL = getenv('SITE_BASE_URL', 'https://xyzrank.com')
API_URL_PATTERN = getenv('API_URL_PATTERN',
                         r'https://xyzrank\.justinbot\.com/assets/hot-episodes\.[a-f0-9]+\.json')
api_url_matcher = re.compile(API_URL_PATTERN)

# Use absolute paths to avoid issues when running from different directories
_project_root = Path(__file__).parent.parent
CACHE_DIR = Path(getenv('CACHE_DIR', str(_project_root / 'cache')))
PUBLIC_DIR = Path(getenv('PUBLIC_DIR', str(_project_root / 'public')))

SNAPSHOT_FILE = 'podcasts.json'
RSS_FILE = 'podcasts.rss'
FEED_FILE = 'feed.xml'

# HTTP facade
HOST = getenv('HOST', '0.0.0.0')
PORT = int(getenv('PORT', '5777'))
PUBLIC_BASE_URL = getenv('PUBLIC_BASE_URL', f'http://localhost:{PORT}')

# The origin site serves different markup to obvious bots, so look like a desktop browser
HTTP_USER_AGENT = getenv('HTTP_USER_AGENT',
                         'Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 '
                         '(KHTML, like Gecko) Chrome/131.0.0.0 Safari/537.36')
ACCEPT_LANGUAGE = getenv('ACCEPT_LANGUAGE', 'zh-CN,zh;q=0.9,en;q=0.8')

# Endpoint discovery (milliseconds, as Playwright expects)
NAVIGATION_TIMEOUT_MS = int(getenv('NAVIGATION_TIMEOUT_MS', '30000'))
QUIESCENCE_MS = int(getenv('QUIESCENCE_MS', '5000'))

# Per-request timeouts, seconds
PAGE_TIMEOUT_SECONDS = float(getenv('PAGE_TIMEOUT_SECONDS', '15'))
RANKING_TIMEOUT_SECONDS = float(getenv('RANKING_TIMEOUT_SECONDS', '10'))
RANKING_FETCH_ATTEMPTS = int(getenv('RANKING_FETCH_ATTEMPTS', '3'))

# Self-imposed rate limit against the scraped origin. Sequential by default.
EPISODE_DELAY_SECONDS = float(getenv('EPISODE_DELAY_SECONDS', '1.0'))
ENRICH_CONCURRENCY = max(1, int(getenv('ENRICH_CONCURRENCY', '1')))

# Daily refresh, 08:00 Beijing time
REFRESH_CRON = getenv('REFRESH_CRON', '0 8 * * *')
REFRESH_TIMEZONE = getenv('REFRESH_TIMEZONE', 'Asia/Shanghai')

LOG_LEVEL = getenv('LOG_LEVEL', 'INFO')

# Feed channel metadata
FEED_TITLE = getenv('FEED_TITLE', 'XYZRank 热门播客排行榜')
FEED_DESCRIPTION = getenv('FEED_DESCRIPTION', '来自 xyzrank.com 的热门播客排行榜')
FEED_SUMMARY = getenv('FEED_SUMMARY', '热门播客排行榜，每日更新')
FEED_AUTHOR = getenv('FEED_AUTHOR', 'XYZRank')
FEED_OWNER_EMAIL = getenv('FEED_OWNER_EMAIL', 'info@xyzrank.com')
FEED_LANGUAGE = getenv('FEED_LANGUAGE', 'zh-CN')
FEED_KEYWORDS = getenv('FEED_KEYWORDS', '播客,排行榜,热门')
FEED_IMAGE_URL = getenv('FEED_IMAGE_URL', 'https://xyzrank.com/favicon.ico')
FEED_SIMPLE_IMAGE_URL = getenv('FEED_SIMPLE_IMAGE_URL', 'https://xyzrank.justinbot.com/public/og-image-2.png')
FEED_CATEGORY = getenv('FEED_CATEGORY', 'Technology')
FEED_SUBCATEGORY = getenv('FEED_SUBCATEGORY', 'Software How-To')

UNKNOWN_TITLE = '未知标题'
UNKNOWN_AUTHOR = '未知作者'
NO_DESCRIPTION = '无描述'
