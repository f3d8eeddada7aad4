from __future__ import annotations

"""
File: counter_service/sim/entities.py
Purpose: Core dataclasses, menu tables and type aliases for the counter simulation.
Key responsibilities:
- Order / Worker / SimulationState records and their lifecycle fields.
- Fixed drink menu, customer-type timeouts and arrival frequency tables.
- Engine configuration (SMART weights, thresholds, tolerances).
"""

from dataclasses import dataclass, field
from math import isclose
from typing import Literal


CustomerType = Literal["gold", "regular", "new"]
OrderStatus = Literal["queued", "in_service", "completed", "abandoned"]
WorkerStatus = Literal["free", "busy"]
Urgency = Literal["normal", "elevated", "urgent"]
PolicyName = Literal["fifo", "smart"]
ArrivalMode = Literal["manual", "poisson"]

CUSTOMER_TYPES: tuple[CustomerType, ...] = ("gold", "regular", "new")
POLICY_NAMES: tuple[PolicyName, ...] = ("fifo", "smart")


class InvalidDrinkTypeError(ValueError):
    """Raised when an order names a drink outside the fixed menu."""


class WorkerBusyError(RuntimeError):
    """Raised when an order is assigned to a worker that is not free."""


@dataclass(frozen=True)
class Drink:
    """Menu entry: preparation time and relative arrival frequency."""
    code: str
    name: str
    prep_minutes: int
    frequency: float


MENU: dict[str, Drink] = {
    "cold_brew": Drink("cold_brew", "Cold Brew", 1, 0.25),
    "espresso": Drink("espresso", "Espresso", 2, 0.20),
    "americano": Drink("americano", "Americano", 2, 0.15),
    "cappuccino": Drink("cappuccino", "Cappuccino", 4, 0.20),
    "latte": Drink("latte", "Latte", 4, 0.12),
    "mocha": Drink("mocha", "Mocha", 6, 0.08),
}

MIN_PREP_MINUTES = min(d.prep_minutes for d in MENU.values())

# Queued orders waiting longer than this are abandoned (and count as complaints).
CUSTOMER_TIMEOUTS: dict[CustomerType, int] = {"gold": 10, "regular": 10, "new": 8}

CUSTOMER_FREQUENCIES: dict[CustomerType, float] = {"gold": 0.20, "regular": 0.50, "new": 0.30}

CUSTOMER_LABELS: dict[CustomerType, str] = {"gold": "Gold Member", "regular": "Regular", "new": "New Customer"}


def resolve_drink(value: str) -> Drink:
    """Look up a drink by code or display name, case-insensitively."""
    key = str(value).strip().lower().replace("-", "_").replace(" ", "_")
    drink = MENU.get(key)
    if drink is None:
        raise InvalidDrinkTypeError(f"unknown drink type: {value!r}")
    return drink


@dataclass(frozen=True)
class SmartWeights:
    """Weights of the four SMART score components; must sum to 1.0."""
    wait: float = 0.40
    tier: float = 0.25
    short_job: float = 0.10
    fairness: float = 0.25

    def __post_init__(self) -> None:
        values = (self.wait, self.tier, self.short_job, self.fairness)
        if any(v < 0 for v in values):
            raise ValueError("SMART weights must be non-negative")
        if not isclose(sum(values), 1.0, abs_tol=1e-9):
            raise ValueError(f"SMART weights must sum to 1.0, got {sum(values):.4f}")


@dataclass(frozen=True)
class EngineConfig:
    """Tunable parameters shared by the live clock and comparison runs."""
    worker_count: int = 3
    arrival_rate: float = 1.4
    default_policy: str = "smart"
    seed: int | None = 42
    rush_min_orders: int = 5
    rush_max_orders: int = 8
    fairness_tolerance: int = 3
    metrics_window: int = 100
    urgent_after_minutes: int = 8
    elevated_after_minutes: int = 4
    wait_norm_minutes: float = 10.0
    weights: SmartWeights = field(default_factory=SmartWeights)
    tier_values: dict[str, float] = field(
        default_factory=lambda: {"gold": 1.0, "regular": 0.6, "new": 0.3}
    )

    def __post_init__(self) -> None:
        if self.worker_count <= 0:
            raise ValueError("worker_count must be > 0")
        if self.arrival_rate <= 0:
            raise ValueError("arrival_rate must be > 0")
        if self.default_policy not in POLICY_NAMES:
            raise ValueError(f"invalid policy: {self.default_policy}")
        if self.rush_min_orders <= 0 or self.rush_max_orders < self.rush_min_orders:
            raise ValueError("rush order bounds must satisfy 0 < min <= max")
        if self.fairness_tolerance < 0:
            raise ValueError("fairness_tolerance must be >= 0")
        if self.metrics_window <= 0:
            raise ValueError("metrics_window must be > 0")
        if set(self.tier_values) != set(CUSTOMER_TYPES):
            raise ValueError("tier_values must define gold, regular and new")


@dataclass
class Order:
    """Order definition and lifecycle tracking for the simulation."""
    id: int
    drink: Drink
    customer_type: CustomerType
    arrival_minute: int
    status: OrderStatus = "queued"
    assigned_worker_id: int | None = None
    priority_score: float = 0.0
    urgency: Urgency = "normal"
    people_served_ahead: int = 0
    service_start_minute: int | None = None
    completion_minute: int | None = None
    abandoned_minute: int | None = None
    fairness_violation: bool = False

    @property
    def prep_minutes(self) -> int:
        return self.drink.prep_minutes

    @property
    def timeout_minutes(self) -> int:
        return CUSTOMER_TIMEOUTS[self.customer_type]

    def elapsed(self, current_minute: int) -> int:
        """Minutes waited so far while queued."""
        return max(0, current_minute - self.arrival_minute)

    def past_cutoff(self, current_minute: int) -> bool:
        return self.elapsed(current_minute) > self.timeout_minutes

    @property
    def wait_minutes(self) -> int | None:
        if self.service_start_minute is not None:
            return self.service_start_minute - self.arrival_minute
        if self.abandoned_minute is not None:
            return self.abandoned_minute - self.arrival_minute
        return None

    @property
    def total_minutes(self) -> int | None:
        if self.completion_minute is None:
            return None
        return self.completion_minute - self.arrival_minute

    @property
    def complaint(self) -> bool:
        """Abandoned, or served after waiting past the customer's cutoff."""
        if self.status == "abandoned":
            return True
        wait = self.wait_minutes
        return self.service_start_minute is not None and wait is not None and wait > self.timeout_minutes


@dataclass
class Worker:
    """Barista state tracked by the worker pool."""
    id: int
    name: str
    status: WorkerStatus = "free"
    current_order: Order | None = None
    remaining_minutes: int = 0
    total_work_minutes: int = 0
    orders_completed: int = 0

    @property
    def current_order_id(self) -> int | None:
        return self.current_order.id if self.current_order is not None else None

    @property
    def is_free(self) -> bool:
        return self.status == "free"


@dataclass
class SimulationState:
    """Container for all simulation entities and counters."""
    workers: list[Worker]
    policy: PolicyName = "smart"
    arrival_mode: ArrivalMode = "manual"
    arrival_rate: float = 1.4
    current_minute: int = 0
    next_order_id: int = 1
    pending: list[Order] = field(default_factory=list)
    completed: list[Order] = field(default_factory=list)
    abandoned: list[Order] = field(default_factory=list)
    fairness_violations: int = 0

    @property
    def total_orders(self) -> int:
        return self.next_order_id - 1

    def busy_workers(self) -> list[Worker]:
        return [w for w in self.workers if not w.is_free]


def make_workers(count: int) -> list[Worker]:
    """Create `count` free baristas with ids starting at 1."""
    return [Worker(id=idx, name=f"Barista {idx}") for idx in range(1, count + 1)]
