import logging
import random
from fakeout.models.article import FABRICATION_REASONS, PLACEHOLDER_IMAGE_URL
from fakeout.services.content_generator import (
    BACKUP_FABRICATED_ARTICLES,
    ContentGenerator,
    fabricate_from,
)
from fakeout.utils.text import normalize_title

logger = logging.getLogger(__name__)

# Reasons whose rule-based transformation always rewrites the headline
HEADLINE_REWRITING_REASONS = (
    'Misleading Headline',
    'Satire or Parody',
    'Conspiracy Theory',
    'Impersonation',
)


def fabricate_batch(seed_articles, count, generator=None):
    """
    Produce up to `count` fabricated articles, one per seed article.
    LLM generation when a key is configured, rule-based transformation otherwise.
    """
    generator = generator or ContentGenerator()
    fabricated = []
    for seed in seed_articles[:count]:
        reason = random.choice(FABRICATION_REASONS)
        category = seed.get('category') or 'general'
        result = None
        if generator.gateway.available:
            result = generator.generate_article(category, reason)

        if result and result.get('generated_by') == 'llm':
            fabricated.append({
                'title': result['title'],
                'content': result['content'],
                'image_url': seed.get('image_url') or PLACEHOLDER_IMAGE_URL,
                'is_real': False,
                'reason': reason,
                'category': category,
                'source': 'generated',
            })
            continue

        fake = fabricate_from(seed, reason)
        if normalize_title(fake['title']) == normalize_title(seed.get('title')):
            # Same headline as the authentic original would be dropped as a duplicate
            fake = fabricate_from(seed, random.choice(HEADLINE_REWRITING_REASONS))
        fabricated.append(fake)

    logger.info(f"Fabricated {len(fabricated)} articles from {len(seed_articles)} seeds")
    return fabricated


def backup_fabrications(needed, exclude_titles=()):
    """Built-in fabricated articles used to top up a thin batch."""
    picked = []
    for backup in BACKUP_FABRICATED_ARTICLES:
        if len(picked) >= needed:
            break
        if backup['title'] in exclude_titles:
            continue
        picked.append({
            **backup,
            'image_url': PLACEHOLDER_IMAGE_URL,
            'is_real': False,
            'source': 'fallback',
        })
    return picked
