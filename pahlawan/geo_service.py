"""Live user locations and radius queries backed by a Redis geo index."""

from __future__ import annotations

from datetime import timedelta
from typing import Any

import redis

USER_LOCATIONS_KEY = "geo:user_locations"
GEO_EXPIRY = timedelta(hours=24)
MAX_NEARBY_USERS = 10000


def _text(value: Any) -> str:
    if isinstance(value, (bytes, bytearray)):
        return bytes(value).decode()
    return str(value)


class GeoService:
    """Keeps users' GPS positions and finds the users around a point."""

    def __init__(self, client: redis.Redis) -> None:
        self._redis = client

    def update_user_location(self, user_id: str, lat: float, lon: float) -> None:
        """Record the user's current position in the geo index."""
        self._redis.geoadd(USER_LOCATIONS_KEY, (lon, lat, user_id))

    def find_users_nearby(self, lat: float, lon: float, radius_meters: float) -> list[str]:
        """Return up to 10,000 users within the radius, nearest first."""
        try:
            results = self._redis.georadius(
                USER_LOCATIONS_KEY,
                lon,
                lat,
                radius_meters,
                unit="m",
                count=MAX_NEARBY_USERS,
                sort="ASC",
            )
        except redis.RedisError as exc:
            raise redis.RedisError(f"redis geo error: {exc}") from exc
        return [_text(name) for name in results]