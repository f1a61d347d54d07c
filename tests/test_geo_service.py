import math

import pytest
import redis

from pahlawan.geo_service import MAX_NEARBY_USERS, USER_LOCATIONS_KEY, GeoService

EARTH_RADIUS_M = 6372797.560856


class FakeGeoRedis:
    def __init__(self):
        self.positions = {}
        self.queries = []

    def geoadd(self, name, values):
        lon, lat, member = values
        self.positions.setdefault(name, {})[member] = (lon, lat)
        return 1

    def georadius(self, name, longitude, latitude, radius, unit=None, withdist=False,
                  withcoord=False, withhash=False, count=None, sort=None):
        self.queries.append({"name": name, "unit": unit, "count": count, "sort": sort})
        found = []
        for member, (lon, lat) in self.positions.get(name, {}).items():
            p1, p2 = math.radians(latitude), math.radians(lat)
            dlat = p2 - p1
            dlon = math.radians(lon - longitude)
            a = math.sin(dlat / 2) ** 2 + math.cos(p1) * math.cos(p2) * math.sin(dlon / 2) ** 2
            dist = 2 * EARTH_RADIUS_M * math.asin(math.sqrt(a))
            if dist <= radius:
                found.append((dist, member))
        found.sort(reverse=(sort == "DESC"))
        if count is not None:
            found = found[:count]
        return [member.encode() for _, member in found]


class BrokenRedis:
    def georadius(self, *args, **kwargs):
        raise redis.ConnectionError("connection refused")


def test_update_stores_lon_lat():
    fake = FakeGeoRedis()
    GeoService(fake).update_user_location("u1", -6.2088, 106.8456)
    assert fake.positions[USER_LOCATIONS_KEY]["u1"] == (106.8456, -6.2088)


def test_find_users_nearby_nearest_first():
    fake = FakeGeoRedis()
    service = GeoService(fake)
    service.update_user_location("b", -6.2108, 106.8456)
    service.update_user_location("a", -6.2088, 106.8456)
    service.update_user_location("c", -6.2188, 106.8456)
    assert service.find_users_nearby(-6.2088, 106.8456, 500) == ["a", "b"]


def test_query_parameters():
    fake = FakeGeoRedis()
    GeoService(fake).find_users_nearby(-6.2, 106.8, 500)
    assert fake.queries == [
        {"name": USER_LOCATIONS_KEY, "unit": "m", "count": MAX_NEARBY_USERS, "sort": "ASC"}
    ]


def test_no_users():
    assert GeoService(FakeGeoRedis()).find_users_nearby(-6.2, 106.8, 500) == []


def test_redis_error_is_wrapped():
    with pytest.raises(redis.RedisError, match="redis geo error"):
        GeoService(BrokenRedis()).find_users_nearby(-6.2, 106.8, 500)