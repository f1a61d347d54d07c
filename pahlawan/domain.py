"""Core entities of the surplus marketplace and the contracts around them."""

from __future__ import annotations

import re
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Mapping

SURPLUS_STATUSES = ("available", "claimed", "expired")

_UUID_RE = re.compile(r"^[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}$")


def _format_time(value: datetime | None) -> str | None:
    if value is None:
        return None
    text = value.isoformat()
    return text[:-6] + "Z" if text.endswith("+00:00") else text


def _parse_time(value: str | None) -> datetime | None:
    if not value:
        return None
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"
    return datetime.fromisoformat(value)


class ValidationError(ValueError):
    """Raised when an entity breaks its validation rules.

    ``errors`` maps each failing JSON field name to the rule it failed.
    """

    def __init__(self, errors: Mapping[str, str]) -> None:
        self.errors = dict(errors)
        super().__init__(
            "; ".join(f"{name}: failed on '{rule}'" for name, rule in self.errors.items())
        )


@dataclass
class NutritionReport:
    calories: str = ""
    macronutrients: dict[str, str] = field(default_factory=dict)
    health_score: str = ""
    advice: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "calories": self.calories,
            "macronutrients": dict(self.macronutrients),
            "health_score": self.health_score,
            "advice": self.advice,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> NutritionReport:
        return cls(
            calories=data.get("calories", ""),
            macronutrients=dict(data.get("macronutrients") or {}),
            health_score=data.get("health_score", ""),
            advice=data.get("advice", ""),
        )


@dataclass
class SurplusItem:
    """A surplus food offer posted by a provider."""

    id: str = ""
    provider_id: str = ""
    food_type: str = ""
    quantity_kgs: float = 0.0
    original_price: float = 0.0
    discount_price: float = 0.0
    status: str = ""
    expiry_time: datetime | None = None
    latitude: float = 0.0
    longitude: float = 0.0
    s2_cell_id: int = 0
    version: int = 0
    escrow_status: str = ""
    created_at: datetime | None = None
    updated_at: datetime | None = None
    nutrition_report: NutritionReport | None = None

    def validate(self, now: datetime | None = None) -> None:
        """Check every field rule; raise ValidationError listing all failures."""
        errors: dict[str, str] = {}

        if not self.id:
            errors["id"] = "required"
        elif not _UUID_RE.match(self.id):
            errors["id"] = "uuid"
        if not self.provider_id:
            errors["provider_id"] = "required"
        if not self.food_type:
            errors["food_type"] = "required"

        if self.quantity_kgs == 0:
            errors["quantity_kgs"] = "required"
        elif self.quantity_kgs <= 0:
            errors["quantity_kgs"] = "gt"
        for name, price in (
            ("original_price", self.original_price),
            ("discount_price", self.discount_price),
        ):
            if price == 0:
                errors[name] = "required"
            elif price < 0:
                errors[name] = "gte"

        if not self.status:
            errors["status"] = "required"
        elif self.status not in SURPLUS_STATUSES:
            errors["status"] = "oneof"

        if self.expiry_time is None:
            errors["expiry_time"] = "required"
        else:
            if now is None:
                now = datetime.now(tz=self.expiry_time.tzinfo)
            if self.expiry_time <= now:
                errors["expiry_time"] = "gt"

        if self.latitude == 0:
            errors["lat"] = "required"
        elif not -90.0 <= self.latitude <= 90.0:
            errors["lat"] = "latitude"
        if self.longitude == 0:
            errors["lon"] = "required"
        elif not -180.0 <= self.longitude <= 180.0:
            errors["lon"] = "longitude"

        if errors:
            raise ValidationError(errors)

    def to_dict(self) -> dict[str, Any]:
        """Return the JSON representation of the item."""
        data: dict[str, Any] = {
            "id": self.id,
            "provider_id": self.provider_id,
            "food_type": self.food_type,
            "quantity_kgs": self.quantity_kgs,
            "original_price": self.original_price,
            "discount_price": self.discount_price,
            "status": self.status,
            "expiry_time": _format_time(self.expiry_time),
            "lat": self.latitude,
            "lon": self.longitude,
            "s2_cell_id": self.s2_cell_id,
            "version": self.version,
            "escrow_status": self.escrow_status,
            "created_at": _format_time(self.created_at),
            "updated_at": _format_time(self.updated_at),
        }
        if self.nutrition_report is not None:
            data["nutrition_report"] = self.nutrition_report.to_dict()
        return data

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> SurplusItem:
        """Build an item from its JSON representation."""
        report = data.get("nutrition_report")
        return cls(
            id=data.get("id", ""),
            provider_id=data.get("provider_id", ""),
            food_type=data.get("food_type", ""),
            quantity_kgs=float(data.get("quantity_kgs", 0.0)),
            original_price=float(data.get("original_price", 0.0)),
            discount_price=float(data.get("discount_price", 0.0)),
            status=data.get("status", ""),
            expiry_time=_parse_time(data.get("expiry_time")),
            latitude=float(data.get("lat", 0.0)),
            longitude=float(data.get("lon", 0.0)),
            s2_cell_id=int(data.get("s2_cell_id", 0)),
            version=int(data.get("version", 0)),
            escrow_status=data.get("escrow_status", ""),
            created_at=_parse_time(data.get("created_at")),
            updated_at=_parse_time(data.get("updated_at")),
            nutrition_report=NutritionReport.from_dict(report) if report else None,
        )


class SurplusRepository(ABC):
    """Storage of surplus items."""

    @abstractmethod
    def get_by_id(self, item_id: str) -> SurplusItem:
        """Return the item; raise LookupError if it does not exist."""

    @abstractmethod
    def fetch(self, lat: float, lon: float, radius: int) -> list[SurplusItem]:
        """Return the items within ``radius`` metres of the location."""

    @abstractmethod
    def store(self, item: SurplusItem) -> None:
        """Insert a new item."""

    @abstractmethod
    def update(self, item: SurplusItem) -> None:
        """Overwrite an existing item."""


@dataclass
class UserImpact:
    user_id: str
    total_saved_kgs: float = 0.0
    meals_rescued: int = 0
    co2_prevented: float = 0.0
    karma_points: int = 0
    current_rank: int = 0
    badges: list[str] = field(default_factory=list)
    last_update: datetime | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "user_id": self.user_id,
            "total_saved_kgs": self.total_saved_kgs,
            "meals_rescued": self.meals_rescued,
            "co2_prevented_kgs": self.co2_prevented,
            "karma_points": self.karma_points,
            "current_rank": self.current_rank,
            "badges": list(self.badges),
            "last_update": _format_time(self.last_update),
        }


@dataclass
class GlobalLeaderboard:
    region: str
    rankings: list[UserImpact] = field(default_factory=list)
    top_city: str = ""
    total_co2: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        return {
            "region": self.region,
            "rankings": [entry.to_dict() for entry in self.rankings],
            "top_city": self.top_city,
            "total_national_co2_saved": self.total_co2,
        }


@dataclass
class Dispute:
    """A user's complaint about a claim; status is pending, approved or rejected."""

    id: str
    claim_id: str
    user_id: str
    reason: str
    evidence: str = ""
    status: str = ""
    created_at: datetime | None = None