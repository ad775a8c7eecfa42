#!/usr/bin/env python3
"""
Seed the article catalogue.

Inserts the bundled sample articles that are not already present; existing
rows are left untouched.
"""
import os
import sys

# Add parent directory to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from dotenv import load_dotenv

load_dotenv()

from articlepay.config import get_config
from articlepay.database import close_all, init_all
from articlepay.seed import SEED_ARTICLES, seed_articles


def main():
    cfg = get_config()
    try:
        init_all(cfg, create_tables=True)
        inserted = seed_articles()
    except Exception as e:
        print(f"\n❌ Seeding failed: {e}")
        return 1
    finally:
        close_all()

    print(f"🌱 Inserted {len(inserted)} of {len(SEED_ARTICLES)} sample articles")
    for article_id in inserted:
        print(f"  - {article_id}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
