#!/usr/bin/env python3
"""
Database initialization script for articlepay.

Creates the articles and purchases tables (including the unique txid index)
and reports connection health.
"""
import os
import sys

# Add parent directory to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from dotenv import load_dotenv

load_dotenv()

from articlepay.config import get_config
from articlepay.database import close_all, get_database_url, get_health_status, init_all


def main():
    """Initialize database and create all tables."""
    print("=" * 60)
    print("articlepay Database Initialization")
    print("=" * 60)

    cfg = get_config()
    try:
        db_url = get_database_url(cfg)
        print(f"\n📊 Database URL: {db_url.split('@')[1] if '@' in db_url else db_url}")

        print("\n🔨 Creating database tables...")
        init_all(cfg, create_tables=True)
        print("✅ All tables created successfully")

        print("\n🏥 Checking database health...")
        health = get_health_status()

        print("\n📊 Database Health:")
        print(f"  Database: {health['database']['status']}")
        print(f"  Redis: {health['redis']['status']}")

        if health["database"]["status"] != "healthy":
            print("\n⚠️  Database is not healthy. Check configuration.")
            return 1

        print("\n✅ Database initialization complete!")
        print("\n📝 Next steps:")
        print("  1. Seed the catalogue: python scripts/seed_articles.py")
        print("  2. Start the application: gunicorn wsgi:application")
        return 0

    except Exception as e:
        print(f"\n❌ Error initializing database: {e}")
        import traceback

        traceback.print_exc()
        return 1
    finally:
        close_all()


if __name__ == "__main__":
    sys.exit(main())
