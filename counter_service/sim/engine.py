from __future__ import annotations

"""
File: counter_service/sim/engine.py
Purpose: Discrete one-minute simulation clock for the service counter.
Key responsibilities:
- Admit arrivals, advance baristas, dispatch and abandon in a fixed tick order.
- Accept commands (new order, rush, policy switch, auto arrivals, reset).
- Serve queue/worker/metrics snapshots over the same state.
"""

from dataclasses import dataclass, field
import heapq
import logging

from counter_service.sim.arrivals import ArrivalSpec, OrderFactory, group_by_minute
from counter_service.sim.dispatcher import Dispatcher, rank
from counter_service.sim.entities import (
    CUSTOMER_LABELS,
    CUSTOMER_TYPES,
    CustomerType,
    Drink,
    EngineConfig,
    Order,
    PolicyName,
    SimulationState,
    make_workers,
    resolve_drink,
)
from counter_service.sim.metrics import MetricsAggregator, workload_balance, workload_breakdown
from counter_service.sim.policy import make_policy, priority_reason
from counter_service.sim.workers import WorkerPool

logger = logging.getLogger("counter-engine")


@dataclass
class TickSummary:
    """What happened during one simulated minute."""
    minute: int
    arrivals: list[int] = field(default_factory=list)
    assignments: list[dict[str, int]] = field(default_factory=list)
    completions: list[int] = field(default_factory=list)
    abandonments: list[int] = field(default_factory=list)
    fairness_violations: int = 0
    queue_length: int = 0

    def as_dict(self) -> dict:
        return {
            "minute": self.minute,
            "arrivals": list(self.arrivals),
            "assignments": [dict(a) for a in self.assignments],
            "completions": list(self.completions),
            "abandonments": list(self.abandonments),
            "fairness_violations": self.fairness_violations,
            "queue_length": self.queue_length,
        }


def describe_order(order: Order) -> dict:
    """Serializable view of an order at any lifecycle stage."""
    return {
        "id": order.id,
        "drink": order.drink.code,
        "drink_name": order.drink.name,
        "customer_type": order.customer_type,
        "arrival_minute": order.arrival_minute,
        "prep_minutes": order.prep_minutes,
        "status": order.status,
        "assigned_worker_id": order.assigned_worker_id,
        "priority_score": round(order.priority_score, 4),
        "urgency": order.urgency,
        "people_served_ahead": order.people_served_ahead,
        "service_start_minute": order.service_start_minute,
        "completion_minute": order.completion_minute,
        "abandoned_minute": order.abandoned_minute,
        "wait_minutes": order.wait_minutes,
        "total_minutes": order.total_minutes,
        "fairness_violation": order.fairness_violation,
        "complaint": order.complaint,
    }


class SimulationClock:
    """Owns one SimulationState and advances it minute by minute."""
    def __init__(
        self,
        config: EngineConfig | None = None,
        policy: PolicyName | None = None,
        schedule: list[ArrivalSpec] | None = None,
    ) -> None:
        self.config = config or EngineConfig()
        self.schedule = group_by_minute(schedule) if schedule else {}
        self._initial_policy = policy or self.config.default_policy
        self._build()

    def _build(self) -> None:
        cfg = self.config
        self.state = SimulationState(
            workers=make_workers(cfg.worker_count),
            policy=self._initial_policy,
            arrival_rate=cfg.arrival_rate,
        )
        self.pool = WorkerPool(self.state.workers)
        self.dispatcher = Dispatcher(self.pool, make_policy(self.state.policy, cfg), cfg)
        self.factory = OrderFactory(cfg.seed)
        self.metrics = MetricsAggregator(cfg.metrics_window)

    @property
    def current_minute(self) -> int:
        return self.state.current_minute

    # Commands

    def create_order(self, drink: str | Drink, customer_type: CustomerType | None = None) -> Order:
        """Enqueue an order at the current minute; customer type is drawn when omitted."""
        resolved = drink if isinstance(drink, Drink) else resolve_drink(drink)
        if customer_type is None:
            customer_type = self.factory.customer_type()
        elif customer_type not in CUSTOMER_TYPES:
            raise ValueError(f"invalid customer type: {customer_type}")
        return self._enqueue(resolved, customer_type)

    def add_random_order(self) -> Order:
        return self._enqueue(self.factory.drink(), self.factory.customer_type())

    def trigger_rush(self) -> list[Order]:
        """Enqueue a burst of random orders at the current minute."""
        count = self.factory.rush_size(self.config.rush_min_orders, self.config.rush_max_orders)
        orders = [self.add_random_order() for _ in range(count)]
        logger.info("rush triggered minute=%s count=%s", self.state.current_minute, count)
        return orders

    def switch_policy(self, name: PolicyName) -> None:
        """Use `name` for subsequent dispatch rounds; in-flight orders are kept."""
        policy = make_policy(name, self.config)
        if self.state.policy != name:
            logger.info("policy switched minute=%s from=%s to=%s", self.state.current_minute, self.state.policy, name)
        self.state.policy = name
        self.dispatcher.policy = policy

    def set_auto_arrivals(self, enabled: bool, rate: float | None = None) -> None:
        if rate is not None:
            if rate <= 0:
                raise ValueError("arrival_rate must be > 0")
            self.state.arrival_rate = float(rate)
        self.state.arrival_mode = "poisson" if enabled else "manual"
        logger.info("arrivals mode=%s rate=%s", self.state.arrival_mode, self.state.arrival_rate)

    def reset(self) -> None:
        """Discard all orders and barista state; restore defaults and the seeded RNG."""
        self._build()
        logger.info("simulation reset policy=%s workers=%s", self.state.policy, self.config.worker_count)

    def advance(self) -> TickSummary:
        """Run one tick: arrivals, barista progress, dispatch, abandonment, clock."""
        state = self.state
        minute = state.current_minute
        summary = TickSummary(minute=minute)

        # 1. arrivals
        if state.arrival_mode == "poisson":
            for _ in range(self.factory.poisson_count(state.arrival_rate)):
                summary.arrivals.append(self.add_random_order().id)
        for spec in self.schedule.get(minute, []):
            summary.arrivals.append(self._enqueue(spec.drink, spec.customer_type).id)

        # 2. baristas
        for order in self.pool.tick(minute):
            state.completed.append(order)
            self.metrics.note_completed(order)
            summary.completions.append(order.id)

        # 3. dispatch
        before = state.fairness_violations
        for a in self.dispatcher.assign(state):
            summary.assignments.append({"order_id": a.order.id, "worker_id": a.worker.id})
        summary.fairness_violations = state.fairness_violations - before
        if summary.fairness_violations:
            self.metrics.note_fairness_violations(summary.fairness_violations)

        # 4. abandonment
        still_queued: list[Order] = []
        for order in state.pending:
            if not order.past_cutoff(minute):
                still_queued.append(order)
                continue
            order.status = "abandoned"
            order.abandoned_minute = minute
            state.abandoned.append(order)
            self.metrics.note_abandoned(order)
            summary.abandonments.append(order.id)
            logger.info(
                "order abandoned order_id=%s customer_type=%s wait=%s",
                order.id,
                order.customer_type,
                order.wait_minutes,
            )
        state.pending = still_queued

        # 5. clock
        state.current_minute += 1
        summary.queue_length = len(state.pending)
        logger.debug(
            "tick minute=%s arrivals=%s assigned=%s completed=%s abandoned=%s queue=%s",
            minute,
            len(summary.arrivals),
            len(summary.assignments),
            len(summary.completions),
            len(summary.abandonments),
            summary.queue_length,
        )
        return summary

    def run(self, minutes: int) -> list[TickSummary]:
        return [self.advance() for _ in range(minutes)]

    # Queries

    def queue_snapshot(self) -> list[dict]:
        """Queued orders in dispatch order with priority, reason and estimated wait."""
        minute = self.state.current_minute
        ranked = rank(self.state.pending, self.dispatcher.policy, minute)
        # Minutes from now until each barista can start a new order; a busy one
        # frees up in the tick where its countdown reaches zero.
        slots = [max(w.remaining_minutes - 1, 0) if not w.is_free else 0 for w in self.state.workers]
        heapq.heapify(slots)
        rows: list[dict] = []
        for position, (order, score, urgency) in enumerate(ranked, start=1):
            start = heapq.heappop(slots) if slots else 0
            heapq.heappush(slots, start + order.prep_minutes)
            row = describe_order(order)
            row.update(
                {
                    "rank": position,
                    "priority_score": round(score, 4),
                    "urgency": urgency,
                    "customer_label": CUSTOMER_LABELS[order.customer_type],
                    "wait_so_far": order.elapsed(minute),
                    "timeout_minutes": order.timeout_minutes,
                    "estimated_wait_minutes": float(start),
                    "reason": priority_reason(order, minute, self.config, urgency),
                }
            )
            rows.append(row)
        return rows

    def worker_snapshot(self) -> dict:
        """Per-barista state with workload ratios and free/busy counts."""
        breakdown = {row["id"]: row for row in workload_breakdown(self.state.workers)}
        rows: list[dict] = []
        for worker in sorted(self.state.workers, key=lambda w: w.id):
            row = dict(breakdown[worker.id])
            current = worker.current_order
            row.update(
                {
                    "current_order_id": worker.current_order_id,
                    "current_drink": current.drink.name if current is not None else None,
                    "remaining_minutes": worker.remaining_minutes,
                }
            )
            rows.append(row)
        busy = len(self.state.busy_workers())
        return {
            "minute": self.state.current_minute,
            "workers": rows,
            "busy": busy,
            "free": len(self.state.workers) - busy,
        }

    def metrics_snapshot(self) -> dict:
        snap = self.metrics.snapshot(queue_length=len(self.state.pending))
        snap.update(
            {
                "minute": self.state.current_minute,
                "policy": self.state.policy,
                "arrival_mode": self.state.arrival_mode,
                "arrival_rate": self.state.arrival_rate,
                "busy_workers": len(self.state.busy_workers()),
                "window": self.metrics.window_snapshot(),
            }
        )
        return snap

    def analytics_snapshot(self) -> dict:
        """Rolling-window analytics plus fairness and workload balance."""
        snap = self.metrics.snapshot(queue_length=len(self.state.pending))
        return {
            "minute": self.state.current_minute,
            "policy": self.state.policy,
            "window": self.metrics.window_snapshot(),
            "complaints_by_customer_type": snap["complaints_by_customer_type"],
            "fairness_violations": snap["fairness_violations"],
            "fairness_violation_rate": snap["fairness_violation_rate"],
            "timeout_rate": snap["timeout_rate"],
            "workload_balance": workload_balance(self.state.workers),
            "workers": workload_breakdown(self.state.workers),
        }

    def conservation(self) -> dict[str, int]:
        """Counts per lifecycle bucket; their sum equals total orders created."""
        state = self.state
        return {
            "pending": len(state.pending),
            "in_service": len(state.busy_workers()),
            "completed": len(state.completed),
            "abandoned": len(state.abandoned),
            "total": state.total_orders,
        }

    def all_orders(self) -> list[Order]:
        state = self.state
        in_service = [w.current_order for w in state.workers if w.current_order is not None]
        return sorted(state.pending + in_service + state.completed + state.abandoned, key=lambda o: o.id)

    def _enqueue(self, drink: Drink, customer_type: CustomerType) -> Order:
        state = self.state
        order = Order(
            id=state.next_order_id,
            drink=drink,
            customer_type=customer_type,
            arrival_minute=state.current_minute,
        )
        state.next_order_id += 1
        state.pending.append(order)
        self.metrics.note_created()
        logger.debug(
            "order created order_id=%s drink=%s customer_type=%s minute=%s",
            order.id,
            drink.code,
            customer_type,
            order.arrival_minute,
        )
        return order
