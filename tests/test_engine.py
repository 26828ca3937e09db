from __future__ import annotations

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from rewards_bot.services.results import RewardsUnavailable
from conftest import SHOP_LAT, SHOP_LON


class BrokenRedis:
    async def set(self, *args, **kwargs):
        raise RedisConnectionError("redis is down")

    async def get(self, *args, **kwargs):
        raise RedisConnectionError("redis is down")

    async def delete(self, *args, **kwargs):
        raise RedisConnectionError("redis is down")

    async def eval(self, *args, **kwargs):
        raise RedisConnectionError("redis is down")


@pytest.mark.asyncio
async def test_infrastructure_errors_surface_as_unavailable(make_engine, make_user, load_user):
    engine = make_engine()
    engine.store._redis = BrokenRedis()
    user = await make_user(points=100)

    with pytest.raises(RewardsUnavailable):
        await engine.spin(user_id=user.id, telegram_id=user.telegram_id, latitude=SHOP_LAT, longitude=SHOP_LON)
    with pytest.raises(RewardsUnavailable):
        await engine.redeem(user_id=user.id, telegram_id=user.telegram_id)

    assert (await load_user(user.id)).points == 100
