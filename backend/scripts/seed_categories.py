"""
Seed the default inventory categories with their low-stock thresholds.

Run locally:
  python backend/scripts/seed_categories.py

Existing categories keep their threshold unless --force is given.
"""

from __future__ import annotations

import argparse
import asyncio
from dataclasses import dataclass
from typing import Optional

from sqlalchemy import select

from db.database import async_session_maker, create_db_and_tables
from db.inventory.category import InventoryCategory


@dataclass(frozen=True)
class SeedCategory:
    name: str
    low_stock_threshold: Optional[int] = None


SEED_CATEGORIES: list[SeedCategory] = [
    SeedCategory(name="Uncategorized"),
    SeedCategory(name="Papeterie", low_stock_threshold=10),
    SeedCategory(name="Bureau", low_stock_threshold=10),
    SeedCategory(name="Informatique", low_stock_threshold=3),
    SeedCategory(name="Produits ménagers", low_stock_threshold=5),
    SeedCategory(name="Électroménager", low_stock_threshold=1),
]


async def main(force: bool = False) -> None:
    await create_db_and_tables()
    async with async_session_maker() as db:
        res = await db.execute(select(InventoryCategory))
        existing = {c.name: c for c in res.scalars().all()}

        created = 0
        updated = 0
        for seed in SEED_CATEGORIES:
            category = existing.get(seed.name)
            if category is None:
                db.add(InventoryCategory(name=seed.name, low_stock_threshold=seed.low_stock_threshold))
                created += 1
            elif force and category.low_stock_threshold != seed.low_stock_threshold:
                category.low_stock_threshold = seed.low_stock_threshold
                updated += 1

        await db.commit()
        print(f"Done. Categories created: {created}. Thresholds updated: {updated}.")


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("--force", action="store_true", help="overwrite thresholds of existing categories")
    args = parser.parse_args()
    asyncio.run(main(force=args.force))
