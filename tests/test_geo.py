from __future__ import annotations

from dataclasses import dataclass

import pytest

from rewards_bot.utils.geo import distance_meters, nearest


@dataclass
class SiteStub:
    name: str
    latitude: float | None
    longitude: float | None
    is_active: bool = True


def test_distance_to_self_is_zero():
    assert distance_meters(50.4501, 30.5234, 50.4501, 30.5234) == 0


def test_distance_is_symmetric():
    a = (50.4501, 30.5234)
    b = (50.4656, 30.5155)
    assert distance_meters(*a, *b) == pytest.approx(distance_meters(*b, *a))


def test_distance_of_hundredth_degree_latitude():
    # 0.01 deg along a meridian is ~1112 m
    assert distance_meters(50.0, 30.0, 50.01, 30.0) == pytest.approx(1111.95, abs=0.5)


def test_nearest_skips_inactive_and_unlocated_sites():
    sites = [
        SiteStub("closed", 50.4501, 30.5234, is_active=False),
        SiteStub("no-coords", None, None),
        SiteStub("far", 50.4656, 30.5155),
        SiteStub("near", 50.4510, 30.5234),
    ]

    found = nearest(50.4501, 30.5234, sites)

    assert found is not None
    assert found.site.name == "near"
    assert found.distance_m == pytest.approx(100, abs=1)


def test_nearest_without_candidates_is_none():
    assert nearest(50.0, 30.0, []) is None
    assert nearest(50.0, 30.0, [SiteStub("closed", 50.0, 30.0, is_active=False)]) is None
