import logging
import re
from datetime import datetime, timezone
from time import mktime
import feedparser
import requests
from bs4 import BeautifulSoup
from fakeout.models.article import PLACEHOLDER_IMAGE_URL
from fakeout.utils.text import clean_text, truncate_to_sentences

logger = logging.getLogger(__name__)

REQUEST_TIMEOUT = 10
USER_AGENT = 'FakeOutBot/1.0 (+https://github.com/fakeout-game)'
MAX_CONTENT_CHARS = 500
MIN_CONTENT_CHARS = 50

_BACKGROUND_IMAGE = re.compile(r'background-image:\s*url\([\'"]?([^\'")]+)[\'"]?\)', re.I)


def fetch_feed(url, timeout=None, limit=None):
    """
    Fetch and parse an RSS/Atom feed.
    Returns (entries, meta) where meta = {'ok': bool, 'error': str|None}.
    The HTTP request carries an explicit timeout so a slow feed can't hang a worker.
    """
    try:
        resp = requests.get(
            url,
            timeout=timeout or REQUEST_TIMEOUT,
            headers={'User-Agent': USER_AGENT},
        )
        resp.raise_for_status()
    except Exception as e:
        logger.warning(f"Failed to fetch feed {url}: {e}")
        return [], {'ok': False, 'error': str(e)}

    try:
        feed = feedparser.parse(resp.content)
    except Exception as e:
        logger.error(f"Failed to parse feed {url}: {e}")
        return [], {'ok': False, 'error': str(e)}

    if feed.bozo and not feed.entries:
        logger.warning(f"Malformed feed {url}: {feed.bozo_exception}")
        return [], {'ok': False, 'error': f'Malformed feed: {feed.bozo_exception}'}

    entries = list(feed.entries)
    if limit:
        entries = entries[:limit]
    logger.info(f"Fetched {len(entries)} entries from {url}")
    return entries, {'ok': True, 'error': None}


def _entry_html(entry):
    content = entry.get('content')
    if content:
        value = content[0].get('value') if isinstance(content, list) else None
        if value:
            return value
    return entry.get('summary') or entry.get('description') or ''


def extract_image_url(entry):
    """media:content, then enclosures, then the first image in the entry HTML."""
    for media in entry.get('media_content') or []:
        if media.get('url'):
            return media['url']

    for thumb in entry.get('media_thumbnail') or []:
        if thumb.get('url'):
            return thumb['url']

    for enclosure in entry.get('enclosures') or []:
        href = enclosure.get('href') or enclosure.get('url')
        if href and (enclosure.get('type') or 'image/').startswith('image/'):
            return href

    html = _entry_html(entry)
    if not html:
        return None

    soup = BeautifulSoup(html, 'html.parser')
    img = soup.find('img', src=True)
    if img:
        return img['src']

    match = _BACKGROUND_IMAGE.search(html)
    if match:
        return match.group(1)
    return None


def _published_at(entry):
    for key in ('published_parsed', 'updated_parsed'):
        parsed = entry.get(key)
        if parsed:
            try:
                return datetime.fromtimestamp(mktime(parsed), tz=timezone.utc)
            except (ValueError, OverflowError):
                continue
    return None


def normalize_entry(entry, category='general', source_name=None):
    """
    Turn a feedparser entry into an authentic-article dict.
    Returns None when the entry has no title or too little body text.
    """
    title = clean_text(entry.get('title', ''))
    if not title:
        return None

    content = clean_text(_entry_html(entry))
    content = truncate_to_sentences(content, n=4, max_chars=MAX_CONTENT_CHARS)
    if len(content) < MIN_CONTENT_CHARS:
        return None

    return {
        'title': title,
        'content': content,
        'image_url': extract_image_url(entry) or PLACEHOLDER_IMAGE_URL,
        'is_real': True,
        'reason': None,
        'category': category or 'general',
        'source': source_name or 'rss',
        'link': entry.get('link'),
        'published_at': _published_at(entry),
    }


def fetch_feed_items(url, category='general', source_name=None, timeout=None, limit=None):
    """Fetch a feed and return (article dicts, meta)."""
    entries, meta = fetch_feed(url, timeout=timeout, limit=limit)
    items = []
    for entry in entries:
        item = normalize_entry(entry, category=category, source_name=source_name or url)
        if item:
            items.append(item)
    return items, meta
