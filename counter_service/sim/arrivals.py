from __future__ import annotations

"""
File: counter_service/sim/arrivals.py
Purpose: Seeded order arrival generation.
Key responsibilities:
- Draw drink and customer types from the fixed frequency tables.
- Sample per-minute Poisson arrival counts and rush-hour batch sizes.
- Build deterministic arrival schedules (with a schedule hash) for replays.
"""

from dataclasses import dataclass
import hashlib
import json

import numpy as np

from counter_service.sim.entities import (
    CUSTOMER_FREQUENCIES,
    MENU,
    CustomerType,
    Drink,
)

_DRINK_CODES = list(MENU)
_DRINK_P = np.array([MENU[c].frequency for c in _DRINK_CODES], dtype=float)
_DRINK_P = _DRINK_P / _DRINK_P.sum()
_CUSTOMER_TYPES = list(CUSTOMER_FREQUENCIES)
_CUSTOMER_P = np.array([CUSTOMER_FREQUENCIES[c] for c in _CUSTOMER_TYPES], dtype=float)
_CUSTOMER_P = _CUSTOMER_P / _CUSTOMER_P.sum()


@dataclass(frozen=True)
class ArrivalSpec:
    """A scheduled arrival: minute, drink and customer type."""
    minute: int
    drink: Drink
    customer_type: CustomerType


class OrderFactory:
    """Random source for arrivals; pass a seed for reproducible draws."""
    def __init__(self, seed: int | None = None) -> None:
        self.seed = seed
        self.rng = np.random.default_rng(seed)

    def drink(self) -> Drink:
        return MENU[_DRINK_CODES[int(self.rng.choice(len(_DRINK_CODES), p=_DRINK_P))]]

    def customer_type(self) -> CustomerType:
        return _CUSTOMER_TYPES[int(self.rng.choice(len(_CUSTOMER_TYPES), p=_CUSTOMER_P))]

    def poisson_count(self, rate: float) -> int:
        """Number of arrivals in one minute for rate `rate` per minute."""
        if rate <= 0:
            return 0
        return int(self.rng.poisson(rate))

    def rush_size(self, low: int, high: int) -> int:
        """Inclusive uniform batch size for a rush."""
        return int(self.rng.integers(low, high + 1))


def generate_schedule(
    seed: int | None,
    arrival_count: int,
    arrival_rate: float,
    horizon_minutes: int | None = None,
) -> list[ArrivalSpec]:
    """Generate `arrival_count` arrivals from per-minute Poisson counts.

    Generation stops early at `horizon_minutes` when given, so the schedule may
    hold fewer arrivals than requested if the rate is low.
    """
    if arrival_count <= 0:
        raise ValueError("arrival_count must be > 0")
    if arrival_rate <= 0:
        raise ValueError("arrival_rate must be > 0")
    factory = OrderFactory(seed)
    schedule: list[ArrivalSpec] = []
    minute = 0
    while len(schedule) < arrival_count:
        if horizon_minutes is not None and minute >= horizon_minutes:
            break
        for _ in range(factory.poisson_count(arrival_rate)):
            if len(schedule) >= arrival_count:
                break
            schedule.append(ArrivalSpec(minute=minute, drink=factory.drink(), customer_type=factory.customer_type()))
        minute += 1
    return schedule


def schedule_hash(schedule: list[ArrivalSpec]) -> str:
    """Stable digest of a schedule for comparability across runs."""
    payload = [
        {"minute": a.minute, "drink": a.drink.code, "customer_type": a.customer_type}
        for a in schedule
    ]
    encoded = json.dumps(payload, sort_keys=True, separators=(",", ":")).encode("utf-8")
    return hashlib.sha256(encoded).hexdigest()


def group_by_minute(schedule: list[ArrivalSpec]) -> dict[int, list[ArrivalSpec]]:
    grouped: dict[int, list[ArrivalSpec]] = {}
    for spec in schedule:
        grouped.setdefault(spec.minute, []).append(spec)
    return grouped
