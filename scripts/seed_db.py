#!/usr/bin/env python3
"""Load seed feed sources and a starter set of articles into the database. Idempotent."""

import json
import os
import sys

# Add project root to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from fakeout import create_app
from fakeout.extensions import db
from fakeout.models.article import PLACEHOLDER_IMAGE_URL
from fakeout.models.source import Source
from fakeout.pipeline.fabricate import backup_fabrications
from fakeout.pipeline.ingest import store_articles
from fakeout.services.content_generator import FALLBACK_AUTHENTIC_ARTICLES


def seed_sources(filepath):
    """Load sources from JSON. Skip existing by URL."""
    with open(filepath) as f:
        sources = json.load(f)

    added = 0
    skipped = 0
    for s in sources:
        existing = Source.query.filter_by(url=s['url']).first()
        if existing:
            skipped += 1
            continue

        db.session.add(Source(
            name=s['name'],
            url=s['url'],
            category=s.get('category', 'general'),
        ))
        added += 1

    db.session.commit()
    print(f"Sources: {added} added, {skipped} skipped (already exist)")


def seed_articles():
    """Starter corpus so a fresh install can be played before the first feed refresh."""
    authentic = [
        {**a, 'is_real': True, 'reason': None, 'source': 'seed',
         'image_url': a.get('image_url') or PLACEHOLDER_IMAGE_URL}
        for a in FALLBACK_AUTHENTIC_ARTICLES
    ]
    fabricated = [{**a, 'source': 'seed'} for a in backup_fabrications(3)]
    stored = store_articles(authentic + fabricated)
    print(f"Articles: {len(stored)} added")


if __name__ == '__main__':
    app = create_app()
    project_root = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))

    with app.app_context():
        print("Seeding database...")
        seed_sources(os.path.join(project_root, 'seed_sources.json'))
        seed_articles()
        print("Done.")
