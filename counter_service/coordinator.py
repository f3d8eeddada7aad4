from __future__ import annotations

"""
File: counter_service/coordinator.py
Purpose: Single owner of the live simulation clock.
Key responsibilities:
- Serialize every command and snapshot read under one lock.
- Run comparisons on private clocks without touching live state.
"""

import threading

from counter_service.sim.comparison import run_comparison
from counter_service.sim.engine import SimulationClock, describe_order
from counter_service.sim.entities import CustomerType, EngineConfig, PolicyName


class Coordinator:
    """Lock-serialized facade over the live SimulationClock."""
    def __init__(self, config: EngineConfig | None = None, auto_advance: bool = False) -> None:
        self.config = config or EngineConfig()
        self.clock = SimulationClock(self.config)
        self.default_auto_advance = auto_advance
        self.auto_advance = auto_advance
        self._lock = threading.Lock()

    def create_order(self, drink: str, customer_type: CustomerType | None = None) -> dict:
        with self._lock:
            return describe_order(self.clock.create_order(drink, customer_type))

    def add_random_order(self) -> dict:
        with self._lock:
            return describe_order(self.clock.add_random_order())

    def trigger_rush(self) -> dict:
        with self._lock:
            orders = self.clock.trigger_rush()
        return {"count": len(orders), "order_ids": [o.id for o in orders]}

    def advance(self) -> dict:
        with self._lock:
            return self.clock.advance().as_dict()

    def switch_policy(self, name: PolicyName) -> dict:
        with self._lock:
            self.clock.switch_policy(name)
            return {"policy": self.clock.state.policy}

    def set_auto_arrivals(self, enabled: bool, rate: float | None = None) -> dict:
        with self._lock:
            self.clock.set_auto_arrivals(enabled, rate)
            return {"arrival_mode": self.clock.state.arrival_mode, "arrival_rate": self.clock.state.arrival_rate}

    def set_auto_advance(self, enabled: bool) -> dict:
        with self._lock:
            self.auto_advance = bool(enabled)
            return {"auto_advance": self.auto_advance}

    def reset(self) -> dict:
        with self._lock:
            self.clock.reset()
            self.auto_advance = self.default_auto_advance
            return {"minute": self.clock.current_minute, "policy": self.clock.state.policy}

    def queue_snapshot(self) -> dict:
        with self._lock:
            return {
                "minute": self.clock.current_minute,
                "policy": self.clock.state.policy,
                "orders": self.clock.queue_snapshot(),
            }

    def worker_snapshot(self) -> dict:
        with self._lock:
            return self.clock.worker_snapshot()

    def metrics(self) -> dict:
        with self._lock:
            snap = self.clock.metrics_snapshot()
            snap["auto_advance"] = self.auto_advance
            return snap

    def analytics(self) -> dict:
        with self._lock:
            return self.clock.analytics_snapshot()

    def compare(self, **kwargs) -> dict:
        """Run a comparison on private clocks; the live lock is not taken."""
        return run_comparison(config=self.config, **kwargs)
