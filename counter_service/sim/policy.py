from __future__ import annotations

"""
File: counter_service/sim/policy.py
Purpose: Priority policies that rank queued orders.
Key responsibilities:
- FIFO: earliest arrival first.
- SMART: weighted wait / tier / short-job / anti-starvation score.
- Urgency tiers and a readable priority reason for queue snapshots.
"""

from typing import Protocol

from counter_service.sim.entities import (
    CUSTOMER_LABELS,
    MIN_PREP_MINUTES,
    EngineConfig,
    Order,
    Urgency,
)


class PriorityPolicy(Protocol):
    """Maps (order, minute) to a priority score; higher is served first."""
    name: str

    def score(self, order: Order, current_minute: int) -> tuple[float, Urgency]:
        ...


def urgency_for(wait: float, config: EngineConfig) -> Urgency:
    """Coarse urgency label derived from elapsed wait."""
    if wait > config.urgent_after_minutes:
        return "urgent"
    if wait > config.elevated_after_minutes:
        return "elevated"
    return "normal"


def rank_key(order: Order) -> tuple[float, int, int]:
    """Sort key: score desc, then earlier arrival, then lower id."""
    return (-order.priority_score, order.arrival_minute, order.id)


class FifoPolicy:
    name = "fifo"

    def __init__(self, config: EngineConfig) -> None:
        self.config = config

    def score(self, order: Order, current_minute: int) -> tuple[float, Urgency]:
        return float(-order.arrival_minute), urgency_for(order.elapsed(current_minute), self.config)


class SmartPolicy:
    """Weighted priority over four components normalized to [0, 1].

    - wait: elapsed wait over the normalization horizon, capped at 1
    - tier: configured customer-tier value
    - short_job: shortest prep time on the menu divided by this order's prep time
    - fairness: psa / (psa + tolerance), strictly increasing in people served ahead
    """
    name = "smart"

    def __init__(self, config: EngineConfig) -> None:
        self.config = config
        self.weights = config.weights

    def components(self, order: Order, current_minute: int) -> dict[str, float]:
        wait = order.elapsed(current_minute)
        horizon = max(self.config.wait_norm_minutes, 1e-9)
        psa = order.people_served_ahead
        tolerance = max(self.config.fairness_tolerance, 1)
        return {
            "wait": min(wait / horizon, 1.0),
            "tier": float(self.config.tier_values[order.customer_type]),
            "short_job": MIN_PREP_MINUTES / order.prep_minutes,
            "fairness": psa / (psa + tolerance),
        }

    def score(self, order: Order, current_minute: int) -> tuple[float, Urgency]:
        parts = self.components(order, current_minute)
        w = self.weights
        total = (
            w.wait * parts["wait"]
            + w.tier * parts["tier"]
            + w.short_job * parts["short_job"]
            + w.fairness * parts["fairness"]
        )
        return total, urgency_for(order.elapsed(current_minute), self.config)


def make_policy(name: str, config: EngineConfig) -> PriorityPolicy:
    if name == "fifo":
        return FifoPolicy(config)
    if name == "smart":
        return SmartPolicy(config)
    raise ValueError(f"invalid policy: {name}")


def priority_reason(order: Order, current_minute: int, config: EngineConfig, urgency: Urgency | None = None) -> str:
    """Human-readable explanation shown next to a queued order."""
    urgency = urgency or order.urgency
    wait = order.elapsed(current_minute)
    remaining = order.timeout_minutes - wait
    if urgency == "urgent":
        reason = f"Urgent - {max(remaining, 0)} min before {CUSTOMER_LABELS[order.customer_type]} timeout"
    elif urgency == "elevated":
        reason = f"Approaching timeout - {remaining} min remaining"
    elif order.customer_type == "gold":
        reason = "Gold member priority"
    elif order.prep_minutes <= 2:
        reason = "Quick order - throughput optimization"
    elif wait > 3:
        reason = "Wait time accumulating"
    else:
        reason = "Standard priority"
    if order.people_served_ahead > config.fairness_tolerance:
        reason += f" | Fairness: {order.people_served_ahead} skipped"
    return reason
