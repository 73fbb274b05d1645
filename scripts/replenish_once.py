#!/usr/bin/env python3
"""Run one corpus replenishment synchronously. Pass --force to ignore the corpus target."""

import os
import sys

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from fakeout import create_app
from fakeout.pipeline.replenish import run_replenishment

if __name__ == '__main__':
    app = create_app()
    force = '--force' in sys.argv[1:]

    print(f"Running replenishment (force={force})...")
    with app.app_context():
        result = run_replenishment(force=force)
        print(f"Replenishment {result['status']}: "
              f"{result['real_added']} authentic, {result['fake_added']} fabricated added")
        print(f"Corpus size: {result['total_articles']}")
