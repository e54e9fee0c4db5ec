#!/usr/bin/env python3
"""
Seed the video categories.

Usage:
    python seed_categories.py [--dry-run]

Existing categories (matched by name) are left untouched, so the script can
be run repeatedly.
"""

import sys
import asyncio
from pathlib import Path

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from sqlalchemy import select
from app.database import async_session_maker, engine, Base
from app.models.category import Category

CATEGORY_NAMES = [
    "Cars and vehicles",
    "Comedy",
    "Education",
    "Gaming",
    "Entertainment",
    "Film and animation",
    "How-to and style",
    "Music",
    "News and politics",
    "People and blogs",
    "Pets and animals",
    "Science and technology",
    "Sports",
    "Travel and events",
]


def category_rows() -> list[dict]:
    return [
        {"name": name, "description": f"Videos related to {name.lower()}"}
        for name in CATEGORY_NAMES
    ]


async def seed(dry_run: bool = False) -> int:
    """Insert missing categories. Returns how many were (or would be) added."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async with async_session_maker() as db:
        result = await db.execute(select(Category.name))
        existing = set(result.scalars().all())

        added = 0
        for row in category_rows():
            if row["name"] in existing:
                print(f"EXISTS: {row['name']}")
                continue
            print(f"ADD: {row['name']}")
            if not dry_run:
                db.add(Category(**row))
            added += 1

        if not dry_run:
            await db.commit()

    return added


async def main():
    dry_run = "--dry-run" in sys.argv

    added = await seed(dry_run=dry_run)

    print(f"\n{'=' * 50}")
    print(f"Categories added: {added}")
    if dry_run and added > 0:
        print("\nRun without --dry-run to actually insert the categories.")


if __name__ == "__main__":
    asyncio.run(main())
