import logging
from datetime import datetime, timezone, timedelta
from time import perf_counter
from flask import current_app, has_app_context
from sqlalchemy import func
from fakeout.extensions import db
from fakeout.models.article import Article
from fakeout.models.source import Source
from fakeout.integrations.rss import fetch_feed_items
from fakeout.utils.text import normalize_title

logger = logging.getLogger(__name__)

INSERT_BATCH_SIZE = 5
ARTICLE_FIELDS = ('title', 'content', 'image_url', 'is_real', 'reason', 'category', 'source')


def store_articles(items):
    """
    Insert article dicts in small batches, skipping titles already stored.
    A failing batch is rolled back and skipped. Returns the stored dicts.
    """
    if not items:
        return []

    wanted = {normalize_title(i['title']) for i in items}
    existing = {
        row[0] for row in db.session.query(func.lower(func.trim(Article.title)))
        .filter(func.lower(func.trim(Article.title)).in_(list(wanted)))
    }

    fresh = []
    for item in items:
        key = normalize_title(item['title'])
        if key in existing:
            continue
        existing.add(key)
        fresh.append(item)

    stored = []
    for start in range(0, len(fresh), INSERT_BATCH_SIZE):
        batch = fresh[start:start + INSERT_BATCH_SIZE]
        rows = [Article(**{k: item.get(k) for k in ARTICLE_FIELDS}) for item in batch]
        try:
            db.session.add_all(rows)
            db.session.commit()
        except Exception as e:
            db.session.rollback()
            logger.error(f"Failed to insert batch of {len(batch)} articles: {e}")
            continue
        for item, row in zip(batch, rows):
            stored.append({**item, 'id': row.id})
    return stored


def ingest_sources(max_per_source=None):
    """Fetch every active source not in cooldown and store new authentic articles."""
    sources = Source.query.filter_by(is_active=True).all()
    limit = max_per_source or _config('RSS_ITEMS_PER_FEED', 8)
    timeout = _config('RSS_TIMEOUT_SECONDS', 10)
    now = datetime.now(timezone.utc)
    stored = []

    for source in sources:
        cooldown_until = source.cooldown_until()
        if cooldown_until and cooldown_until > now:
            logger.info(
                "Skipping source %s: in cooldown until %s",
                source.name,
                cooldown_until.isoformat(),
            )
            continue

        started_at = datetime.now(timezone.utc)
        t0 = perf_counter()
        try:
            items, meta = fetch_feed_items(
                source.url, category=source.category, source_name=source.name,
                timeout=timeout, limit=limit,
            )
            latency_ms = (perf_counter() - t0) * 1000.0
            if not meta.get('ok', True):
                raise RuntimeError(meta.get('error') or 'Feed fetch failed')

            added = store_articles(items)
            _mark_source_fetch_success(source, started_at, latency_ms)
            db.session.commit()
            stored.extend(added)
            logger.debug(f"Source {source.name}: {len(added)} new articles from {len(items)} items")
        except Exception as e:
            db.session.rollback()
            logger.error(f"Failed to process source {source.name}: {e}")
            _mark_source_fetch_failure(source, str(e), started_at)

    return stored


def ingest_feeds(feeds, max_per_feed=5):
    """
    Ad-hoc ingestion for a list of {'url', 'category'} dicts (admin tooling).
    Returns (stored articles, per-feed errors).
    """
    timeout = _config('RSS_TIMEOUT_SECONDS', 10)
    collected = []
    errors = []
    for feed in feeds:
        url = (feed.get('url') or '').strip()
        if not url:
            continue
        items, meta = fetch_feed_items(
            url, category=feed.get('category') or 'general', source_name=url,
            timeout=timeout, limit=max_per_feed,
        )
        if not meta.get('ok', True):
            errors.append({'url': url, 'error': meta.get('error')})
            continue
        collected.extend(items)
    return store_articles(collected), errors


def _mark_source_fetch_success(source, started_at, latency_ms):
    source.last_fetched_at = started_at
    source.last_success_at = started_at
    source.consecutive_failures = 0
    source.consecutive_successes = (source.consecutive_successes or 0) + 1
    source.last_error = None
    source.auto_disabled_until = None

    alpha = _source_latency_alpha()
    if source.avg_latency_ms is None:
        source.avg_latency_ms = latency_ms
    else:
        source.avg_latency_ms = (source.avg_latency_ms * (1.0 - alpha)) + (latency_ms * alpha)


def _mark_source_fetch_failure(source, error, started_at):
    source.last_fetched_at = started_at
    source.last_failure_at = started_at
    source.consecutive_successes = 0
    source.consecutive_failures = (source.consecutive_failures or 0) + 1
    source.total_failures = (source.total_failures or 0) + 1
    source.last_error = (error or 'unknown error')[:512]

    threshold = max(int(_config('SOURCE_FAILURE_THRESHOLD', 3)), 1)
    if source.consecutive_failures >= threshold:
        disable_minutes = max(int(_config('SOURCE_AUTO_DISABLE_MINUTES', 180)), 1)
        source.auto_disabled_until = started_at + timedelta(minutes=disable_minutes)
        logger.warning(
            "Source %s entered cooldown for %sm after %s consecutive failures",
            source.name,
            disable_minutes,
            source.consecutive_failures,
        )

    try:
        db.session.commit()
    except Exception:
        db.session.rollback()


def _config(key, default):
    if has_app_context():
        return current_app.config.get(key, default)
    return default


def _source_latency_alpha():
    raw = _config('SOURCE_LATENCY_ALPHA', 0.3)
    try:
        return max(0.0, min(1.0, float(raw)))
    except (TypeError, ValueError):
        return 0.3
