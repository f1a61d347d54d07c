"""XP and the real-time leaderboard kept in a Redis sorted set."""

from __future__ import annotations

import logging
import time
from typing import Any, Callable

import redis

logger = logging.getLogger(__name__)

LEADERBOARD_KEY = "loyalty:leaderboard"
USER_STATS_KEY = "loyalty:user:{}"


def _text(value: Any) -> str:
    if isinstance(value, (bytes, bytearray)):
        return bytes(value).decode()
    return str(value)


class LoyaltyService:
    """Tracks users' XP and their place on the global leaderboard."""

    def __init__(self, client: redis.Redis, clock: Callable[[], float] = time.time) -> None:
        self._redis = client
        self._clock = clock

    def add_xp(self, user_id: str, xp: float) -> None:
        """Add XP to the user's leaderboard score and log it in their history."""
        try:
            self._redis.zincrby(LEADERBOARD_KEY, xp, user_id)
        except redis.RedisError as exc:
            raise redis.RedisError(f"failed to update leaderboard: {exc}") from exc

        entry = f"{int(self._clock())}: +{xp:.2f} XP"
        try:
            self._redis.rpush(USER_STATS_KEY.format(user_id), entry)
        except redis.RedisError as exc:
            logger.warning("Failed to log XP history for %s: %s", user_id, exc)

    def top_users(self, count: int) -> list[tuple[str, float]]:
        """Return the top ``count`` users with their scores, highest first."""
        entries = self._redis.zrevrange(LEADERBOARD_KEY, 0, count - 1, withscores=True)
        return [(_text(member), float(score)) for member, score in entries]

    def user_rank(self, user_id: str) -> tuple[int, float]:
        """Return the user's zero-based rank and score."""
        pipe = self._redis.pipeline()
        pipe.zrevrank(LEADERBOARD_KEY, user_id)
        pipe.zscore(LEADERBOARD_KEY, user_id)
        try:
            rank, score = pipe.execute()
        except redis.RedisError as exc:
            raise redis.RedisError(f"failed to get rank: {exc}") from exc
        if rank is None or score is None:
            raise LookupError(f"failed to get rank: user {user_id} is not on the leaderboard")
        return int(rank), float(score)