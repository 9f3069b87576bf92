#!/usr/bin/env python3
"""
Seed script: import clinic reference data from JSON into the database.

Loads locations, providers, holiday and PTO calendars, shift templates,
plans, slots and assignments from the seed file and upserts them, so it
is safe to run more than once.

Usage:
    python seed_db.py [path/to/seed.json] [--reset]

--reset drops and recreates every table first.
"""

import argparse
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent))

from clinic.core.config import SEED_FILE_PATH  # noqa: E402
from clinic.core.errors import StorageError  # noqa: E402
from clinic.core.logging_config import setup_logging  # noqa: E402
from clinic.core.storage import load_seed_file, seed_database  # noqa: E402
from clinic.database.database import Base, SessionLocal, engine  # noqa: E402


def reset_tables():
    """Drop and recreate all tables."""
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    print("   [OK] Tables recreated")


def seed(seed_path: str, reset: bool = False) -> bool:
    """Run the import. Returns False when the seed file cannot be used."""
    print("\n" + "=" * 50)
    print(f"SEED: {seed_path} -> {engine.url}")
    print("=" * 50 + "\n")

    if reset:
        print("1. Resetting database tables...")
        reset_tables()
    else:
        print("1. Creating database tables...")
        Base.metadata.create_all(bind=engine)
        print("   [OK] Tables created/verified")

    print("\n2. Loading seed file...")
    try:
        data = load_seed_file(seed_path)
    except StorageError as e:
        print(f"   [ERROR] {e}")
        return False
    print(f"   [OK] {len(data.providers)} providers, {len(data.assignments)} assignments")

    print("\n3. Writing rows...")
    db = SessionLocal()
    try:
        counts = seed_database(db, data)
    finally:
        db.close()

    for name, count in counts.items():
        print(f"   [OK] {name}: {count}")

    print("\nSeed complete.")
    return True


def main() -> int:
    parser = argparse.ArgumentParser(description="Seed the clinic scheduling database")
    parser.add_argument("seed_file", nargs="?", default=SEED_FILE_PATH)
    parser.add_argument("--reset", action="store_true", help="drop and recreate all tables first")
    args = parser.parse_args()

    setup_logging()
    return 0 if seed(args.seed_file, reset=args.reset) else 1


if __name__ == "__main__":
    sys.exit(main())
