#!/usr/bin/env python3
"""
Migrate collections from a JSON data directory to the SQLite backend.

Usage:
    python scripts/migrate_json_to_db.py --json-dir data --db data/musematch.db
"""

import argparse
import asyncio
from pathlib import Path
import sys

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from musematch.database import SqlStore
from musematch.errors import StorageError
from musematch.storage import COLLECTIONS, SESSION, JsonStore

COPIED = tuple(name for name in COLLECTIONS if name != SESSION)


async def migrate(json_dir: Path, db_path: Path, dry_run: bool = False) -> bool:
    """
    Copy every collection from JSON files into the database.

    Malformed records are dropped by the loader. Existing table contents
    are replaced.

    Args:
        json_dir: Directory holding <collection>.json files
        db_path: Path to SQLite database file
        dry_run: If True, don't write to database
    """
    source = JsonStore(json_dir)
    print(f"Loading collections from {json_dir}...")
    loaded = {}
    for name in COPIED:
        loaded[name] = await source.load(name)
        print(f"  {name}: {len(loaded[name])} records")

    session = await source.read_collection(SESSION)

    if dry_run:
        print("\n[DRY RUN] Nothing written.")
        return True

    print(f"\nWriting to {db_path}...")
    target = SqlStore(db_path)
    try:
        for name in COPIED:
            await target.save(name, loaded[name])
        await target.write_collection(SESSION, session)
    except StorageError as e:
        print(f"❌ Migration failed: {e}")
        return False
    finally:
        target.close()

    print("\n✅ Migration complete!")
    for name in COPIED:
        print(f"   {name}: {len(loaded[name])}")
    return True


def main():
    parser = argparse.ArgumentParser(description="Migrate musematch data from JSON files to SQLite")
    parser.add_argument("--json-dir", type=Path, default=Path("data"),
                        help="Directory with JSON collection files")
    parser.add_argument("--db", type=Path, default=Path("data/musematch.db"),
                        help="Path to SQLite database file")
    parser.add_argument("--dry-run", action="store_true",
                        help="Show what would be migrated without writing")

    args = parser.parse_args()

    if not args.json_dir.is_dir():
        print(f"❌ JSON directory not found: {args.json_dir}")
        sys.exit(1)

    ok = asyncio.run(migrate(args.json_dir, args.db, dry_run=args.dry_run))
    sys.exit(0 if ok else 1)


if __name__ == "__main__":
    main()
