import logging
from flask import current_app
from fakeout.models.article import Article, PLACEHOLDER_IMAGE_URL
from fakeout.services.content_generator import ContentGenerator, FALLBACK_AUTHENTIC_ARTICLES
from fakeout.pipeline.ingest import ingest_sources, store_articles
from fakeout.pipeline.fabricate import backup_fabrications, fabricate_batch

logger = logging.getLogger(__name__)

MIN_FABRICATED = 3


def run_replenishment(force=False, generator=None):
    """
    Top up the corpus: authentic articles from RSS sources (built-in ones when
    every feed fails), then fabricated articles derived from them.
    """
    config = current_app.config
    total = Article.query.count()
    target = int(config.get('REPLENISH_CORPUS_TARGET', 30))
    if total > target and not force:
        logger.info(f"[Replenish] Skipped: corpus has {total} articles (target {target})")
        return {'status': 'skipped', 'total_articles': total, 'real_added': 0, 'fake_added': 0}

    logger.info(f"[Replenish] Starting with {total} articles in corpus")
    real = ingest_sources()
    if not real:
        logger.warning("[Replenish] No articles from RSS sources; using built-in authentic articles")
        real = store_articles([
            {**a, 'is_real': True, 'reason': None, 'source': 'fallback',
             'image_url': a.get('image_url') or PLACEHOLDER_IMAGE_URL}
            for a in FALLBACK_AUTHENTIC_ARTICLES
        ])
    seeds = real or [dict(a) for a in FALLBACK_AUTHENTIC_ARTICLES]

    fake_count = int(config.get('REPLENISH_FAKE_COUNT', 4))
    fakes = fabricate_batch(seeds, fake_count, generator=generator or ContentGenerator())
    if len(fakes) < MIN_FABRICATED:
        fakes += backup_fabrications(MIN_FABRICATED - len(fakes), {f['title'] for f in fakes})

    stored_fakes = store_articles(fakes)
    logger.info(f"[Replenish] Complete: {len(real)} authentic, {len(stored_fakes)} fabricated added")
    return {
        'status': 'complete',
        'total_articles': Article.query.count(),
        'real_added': len(real),
        'fake_added': len(stored_fakes),
    }
