# rewards_bot/utils/geo.py
from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Iterable, Protocol

EARTH_RADIUS_M = 6_371_000


class SitePoint(Protocol):
    name: str
    latitude: float | None
    longitude: float | None
    is_active: bool


@dataclass(frozen=True, slots=True)
class NearestSite:
    site: SitePoint
    distance_m: float


def distance_meters(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Haversine great-circle distance in meters."""
    phi1 = math.radians(lat1)
    phi2 = math.radians(lat2)
    d_phi = math.radians(lat2 - lat1)
    d_lambda = math.radians(lon2 - lon1)

    a = math.sin(d_phi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2) ** 2
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return EARTH_RADIUS_M * c


def nearest(lat: float, lon: float, sites: Iterable[SitePoint]) -> NearestSite | None:
    """
    Closest active site that has coordinates.
    Returns None when no such site exists.
    """
    best: NearestSite | None = None
    for site in sites:
        if not site.is_active or site.latitude is None or site.longitude is None:
            continue
        d = distance_meters(lat, lon, site.latitude, site.longitude)
        if best is None or d < best.distance_m:
            best = NearestSite(site=site, distance_m=d)
    return best
