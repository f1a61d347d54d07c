# pahlawan

Building blocks for a surplus-food rescue platform. Restaurants post leftover
food; the package prices it as it nears expiry, finds the nearest receiving
NGO, ranks offers for buyers, records domain events in a transactional
outbox, holds payment in an event-sourced escrow ledger and keeps score of
trust, loyalty and impact.

## Installation

```
pip install .
```

For running the tests:

```
pip install ".[test]"
pytest
```

The only runtime dependency is `redis`, used by `pahlawan.geo_service` and
`pahlawan.loyalty`. Storage elsewhere uses `sqlite3` connections.

## What is inside

| Module | Purpose |
| --- | --- |
| `pahlawan.s2cell` | S2 cell identifiers (`CellID`: `from_lat_lng`, `parent`, `edge_neighbors`, `all_neighbors`, `to_token`, `to_lat_lng`), plus `get_shard_id` and `get_nearby_shards` for level-13 sharding |
| `pahlawan.geo` | `S2Engine` for level-15 cell lookups; `seed_regions_sql` turns `City` values into SQL seed rows; `main` prints the seed for `INDONESIAN_CITIES` |
| `pahlawan.pricing` | `PricingEngine`: exponential-decay pricing towards expiry with a floor, and impact points |
| `pahlawan.trust` | `TrustService`: a 0–850 score from `ScoreFactors` and the badge that goes with it |
| `pahlawan.masking` | `mask_pii` for e-mail addresses and phone numbers in logs |
| `pahlawan.matching.engine` | `MatchingEngine.match_ngo` (async) picks the nearest `NGO` for a `Surplus`; routing goes through a `CircuitBreaker` with a `haversine` fallback, and an emergency drop point is returned when there are no candidates |
| `pahlawan.matching.ai` | `AIEngine`: simulated waste prediction (`PredictionResult`) and heatmap points |
| `pahlawan.matching.super_app` | `RecommendationEngine` ranking and flash-sale detection, `VoucherService`, `orchestrate_fulfillment` (self pickup only within 5 km, else `FulfillmentError`) |
| `pahlawan.matching.nextgen` | `NextGenServices`: express delivery requests, carbon reports, group buys, drop points, provider ROI, food-safety windows, cold-chain courier choice |
| `pahlawan.matching.rematch` | `RematchWorker` re-routes a surplus named in an outbox event, using a `SurplusDirectory`; raises `NoCandidatesError` when nobody is left |
| `pahlawan.outbox` | `EventType`, `OutboxEvent` (JSON round trip), `create_schema`, `OutboxService` (insert in a caller's transaction, poll and publish to a `MessagePublisher`), `OutboxRepository` |
| `pahlawan.notifications` | `NotificationService`: `dispatch` with dead-lettering of undeliverable alerts, `notify_batch` fan-out in batches of 100 |
| `pahlawan.escrow` | `EscrowLedger` (append-only, `EscrowError` on early release), `rehydrate_state`, `PaymentGateway` |
| `pahlawan.logistics.models` | `DeliverySLA`, `Order` (S2 clustering cell, SLA upgrade to `CRITICAL` under 15 minutes), `Batch`, `RoutePoint` |
| `pahlawan.domain` | `SurplusItem` with validation and JSON conversion, `NutritionReport`, `SurplusRepository`, `UserImpact`, `GlobalLeaderboard`, `Dispute`, `ValidationError` |
| `pahlawan.surplus` | `SqlSurplusRepository` on `sqlite3` (primary and optional replica) and `SurplusService` for posting, the 5 km marketplace and claiming |
| `pahlawan.impact` | `ImpactService`: user impact, national leaderboard, share-card URLs |
| `pahlawan.inventory` | `InventoryService` turns low point-of-sale stock (`POSWebhookPayload`) into flash-sale outbox events |
| `pahlawan.recommendation` | `RecommendationService.smart_nudges` |
| `pahlawan.geo_service` | `GeoService`: user locations and radius queries in a Redis geo index |
| `pahlawan.loyalty` | `LoyaltyService`: XP and the leaderboard in a Redis sorted set |

## Examples

Price that decays as expiry approaches:

```python
from datetime import datetime, timedelta
from pahlawan.pricing import PricingEngine

now = datetime.now()
engine = PricingEngine()
price = engine.calculate_price(100.0, now - timedelta(hours=1), now + timedelta(hours=1), now)
# 36.79: halfway to expiry the price is original * e^-1
```

Geo sharding:

```python
from pahlawan.s2cell import get_shard_id, get_nearby_shards

shard = get_shard_id(-6.2088, 106.8456)
neighbours = get_nearby_shards(-6.2088, 106.8456)  # own cell first, then four edge neighbours
```

Matching a surplus to the nearest NGO:

```python
import asyncio
from pahlawan.matching.engine import NGO, MatchingEngine, Router, Surplus

class NoRouting(Router):
    async def get_travel_time(self, start_lat, start_lon, end_lat, end_lon):
        raise RuntimeError("routing unavailable")  # falls back to haversine

engine = MatchingEngine(NoRouting())
surplus = Surplus(id="surplus-1", lat=-6.2088, lon=106.8456, quantity_kgs=50.0)
candidates = [NGO("ngo-1", -6.2100, 106.8460), NGO("ngo-2", -6.2200, 106.8500)]
best = asyncio.run(engine.match_ngo(surplus, candidates))  # ngo-1
```

Escrow lifecycle:

```python
from pahlawan.escrow import EscrowLedger

ledger = EscrowLedger()
ledger.secure_payment("order-1", 25000.0)
ledger.food_delivered("order-1")
ledger.release_funds("order-1")
ledger.state("order-1").status  # "CLOSED"
```

Releasing funds before delivery is confirmed raises `EscrowError`.

Outbox:

```python
import sqlite3
from pahlawan.outbox import EventType, OutboxEvent, OutboxRepository, create_schema

db = sqlite3.connect(":memory:")
create_schema(db)
OutboxRepository(db).save(
    OutboxEvent(id="evt-1", aggregate_id="surplus-1",
                event_type=EventType.SURPLUS_POSTED, payload=b'{"surplus_id":"surplus-1"}')
)
```

## Command line

Print SQL that seeds the major Indonesian cities as geo regions:

```
pahlawan-seed-regions
```

## What it does not do

- There is no HTTP API or server; the services are called from Python.
- Courier batching and dispatch are not included: `pahlawan.logistics.models`
  defines orders, batches and SLAs, but nothing groups orders into batches or
  assigns them to couriers.
- There is no key/value cache and no background worker that listens to a
  message broker; `OutboxService.poll_and_publish` hands events to whatever
  `MessagePublisher` you supply.
- Routing, push delivery, payments and the AI predictions are local stand-ins:
  plug in a `Router`, a push sender for `NotificationService`, or replace the
  simulated values as needed.