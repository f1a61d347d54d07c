"""Surplus storage in SQL and the marketplace use cases built on it."""

from __future__ import annotations

import logging
import sqlite3
from datetime import datetime

from .domain import NutritionReport, SurplusItem, SurplusRepository
from .matching.engine import MatchingEngine, haversine

logger = logging.getLogger(__name__)

MARKETPLACE_RADIUS_M = 5000

_COLUMNS = "id, provider_id, lat, lon, quantity_kgs, food_type, expiry_time, status"


def _to_text(value: datetime | None) -> str | None:
    return value.isoformat() if value is not None else None


def _from_text(value: str | None) -> datetime | None:
    return datetime.fromisoformat(value) if value else None


def _row_to_item(row: tuple) -> SurplusItem:
    item_id, provider_id, lat, lon, quantity, food_type, expiry, status = row
    return SurplusItem(
        id=item_id,
        provider_id=provider_id,
        latitude=lat,
        longitude=lon,
        quantity_kgs=quantity,
        food_type=food_type or "",
        expiry_time=_from_text(expiry),
        status=status or "",
    )


class SqlSurplusRepository(SurplusRepository):
    """Surplus storage writing to a primary and reading from a replica."""

    def __init__(
        self, master: sqlite3.Connection, replica: sqlite3.Connection | None = None
    ) -> None:
        self._master = master
        self._replica = replica if replica is not None else master

    def create_schema(self) -> None:
        """Create the surplus table if it does not exist."""
        self._master.execute(
            """
            CREATE TABLE IF NOT EXISTS surplus (
                id TEXT PRIMARY KEY,
                provider_id TEXT NOT NULL,
                lat REAL NOT NULL,
                lon REAL NOT NULL,
                quantity_kgs REAL NOT NULL,
                food_type TEXT,
                expiry_time TEXT,
                status TEXT
            )
            """
        )
        self._master.commit()

    def get_by_id(self, item_id: str) -> SurplusItem:
        row = self._replica.execute(
            f"SELECT {_COLUMNS} FROM surplus WHERE id = ?", (item_id,)
        ).fetchone()
        if row is None:
            raise LookupError(f"surplus {item_id} not found")
        return _row_to_item(row)

    def fetch(self, lat: float, lon: float, radius: int) -> list[SurplusItem]:
        """Return the items within ``radius`` metres, nearest first."""
        items = map(_row_to_item, self._replica.execute(f"SELECT {_COLUMNS} FROM surplus"))
        located = (
            (haversine(lat, lon, item.latitude, item.longitude) * 1000.0, item)
            for item in items
        )
        nearby = sorted(
            ((distance, item) for distance, item in located if distance <= radius),
            key=lambda pair: pair[0],
        )
        return [item for _, item in nearby]

    def store(self, item: SurplusItem) -> None:
        self._master.execute(
            f"INSERT INTO surplus ({_COLUMNS}) VALUES (?, ?, ?, ?, ?, ?, ?, ?)",
            (
                item.id,
                item.provider_id,
                item.latitude,
                item.longitude,
                item.quantity_kgs,
                item.food_type,
                _to_text(item.expiry_time),
                item.status,
            ),
        )
        self._master.commit()

    def update(self, item: SurplusItem) -> None:
        cursor = self._master.execute(
            """
            UPDATE surplus
            SET provider_id = ?, lat = ?, lon = ?, quantity_kgs = ?,
                food_type = ?, expiry_time = ?, status = ?
            WHERE id = ?
            """,
            (
                item.provider_id,
                item.latitude,
                item.longitude,
                item.quantity_kgs,
                item.food_type,
                _to_text(item.expiry_time),
                item.status,
                item.id,
            ),
        )
        self._master.commit()
        if cursor.rowcount == 0:
            raise LookupError(f"surplus {item.id} not found")


class SurplusService:
    """Posting, browsing and claiming surplus food."""

    def __init__(
        self, repo: SurplusRepository, match_engine: MatchingEngine | None = None
    ) -> None:
        self.repo = repo
        self.match_engine = match_engine

    def post_surplus(self, item: SurplusItem) -> SurplusItem:
        """Store the item as available and return it."""
        item.status = "available"
        self.repo.store(item)
        return item

    def marketplace(self, lat: float, lon: float) -> list[SurplusItem]:
        """Return the offers within 5 km of the location."""
        return self.repo.fetch(lat, lon, MARKETPLACE_RADIUS_M)

    def claim(self, surplus_id: str, ngo_id: str) -> SurplusItem:
        """Mark an available surplus as claimed by the NGO and return it."""
        item = self.repo.get_by_id(surplus_id)
        if item.status != "available":
            raise ValueError(f"surplus {surplus_id} is not available: {item.status}")
        item.status = "claimed"
        self.repo.update(item)
        logger.info("Surplus %s claimed by %s", surplus_id, ngo_id)
        return item

    def analyze_freshness(self, image: bytes) -> NutritionReport:
        """Grade the food shown in the image."""
        return NutritionReport(health_score="Grade A", advice="Sangat bergizi!")