# rewards_bot/database/repo/sites.py
from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from rewards_bot.database.models import Site


async def list_active(session: AsyncSession) -> list[Site]:
    res = await session.execute(
        select(Site)
        .where(
            Site.is_active.is_(True),
            Site.latitude.is_not(None),
            Site.longitude.is_not(None),
        )
        .order_by(Site.name)
    )
    return list(res.scalars().all())


async def upsert_site(
    session: AsyncSession,
    *,
    slug: str,
    name: str,
    latitude: float | None,
    longitude: float | None,
    address: str | None = None,
    is_active: bool = True,
) -> Site:
    site = await session.scalar(select(Site).where(Site.slug == slug))
    if site is None:
        site = Site(slug=slug)
        session.add(site)

    site.name = name
    site.address = address
    site.latitude = latitude
    site.longitude = longitude
    site.is_active = is_active
    await session.flush()
    return site
