# rewards_bot/scripts/seed_sites.py
from __future__ import annotations

import asyncio
import json
import logging
import sys
from pathlib import Path

from rewards_bot.config import Settings
from rewards_bot.database.repo.sites import upsert_site
from rewards_bot.database.session import Database

log = logging.getLogger(__name__)

# Used when no JSON file is passed on the command line
DEFAULT_SITES = [
    {
        "slug": "podil",
        "name": "Coffee Point Podil",
        "address": "Kontraktova Sq, 4, Kyiv",
        "latitude": 50.4656,
        "longitude": 30.5155,
    },
    {
        "slug": "pechersk",
        "name": "Coffee Point Pechersk",
        "address": "Lavrska St, 10, Kyiv",
        "latitude": 50.4366,
        "longitude": 30.5537,
    },
]


def load_sites(path: str | None) -> list[dict]:
    if not path:
        return DEFAULT_SITES

    data = json.loads(Path(path).read_text(encoding="utf-8"))
    if not isinstance(data, list):
        raise ValueError("Sites file must contain a JSON list")
    return data


async def main(path: str | None = None) -> None:
    settings = Settings.load()
    db = Database(settings.database_url)
    await db.init_models()

    sites = load_sites(path)

    try:
        async with db.transaction() as session:
            for item in sites:
                site = await upsert_site(
                    session,
                    slug=str(item["slug"]),
                    name=str(item["name"]),
                    latitude=item.get("latitude"),
                    longitude=item.get("longitude"),
                    address=item.get("address"),
                    is_active=bool(item.get("is_active", True)),
                )
                log.info("Seeded site slug=%s id=%s", site.slug, site.id)
    finally:
        await db.close()


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO, format="%(asctime)s | %(levelname)s | %(name)s | %(message)s")
    asyncio.run(main(sys.argv[1] if len(sys.argv) > 1 else None))
