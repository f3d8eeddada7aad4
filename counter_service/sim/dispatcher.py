from __future__ import annotations

"""
File: counter_service/sim/dispatcher.py
Purpose: Rank queued orders with the active policy and fill free baristas.
Key responsibilities:
- Rescore every queued order each tick.
- Assign highest-ranked eligible orders to free baristas (lowest id first).
- Track people-served-ahead and flag fairness violations.
"""

from dataclasses import dataclass
import logging

from counter_service.sim.entities import EngineConfig, Order, SimulationState, Urgency, Worker
from counter_service.sim.policy import PriorityPolicy, rank_key
from counter_service.sim.workers import WorkerPool

logger = logging.getLogger("counter-dispatcher")


@dataclass
class Assignment:
    """Order handed to a barista during one tick."""
    order: Order
    worker: Worker


def rank(orders: list[Order], policy: PriorityPolicy, current_minute: int) -> list[tuple[Order, float, Urgency]]:
    """Rank orders by policy score without touching the orders."""
    scored = [(order, *policy.score(order, current_minute)) for order in orders]
    return sorted(scored, key=lambda item: (-item[1], item[0].arrival_minute, item[0].id))


def rescore(orders: list[Order], policy: PriorityPolicy, current_minute: int) -> list[Order]:
    """Recompute score/urgency for each order and return them ranked."""
    for order in orders:
        order.priority_score, order.urgency = policy.score(order, current_minute)
    return sorted(orders, key=rank_key)


class Dispatcher:
    """Pairs ranked orders with free baristas once per tick."""
    def __init__(self, pool: WorkerPool, policy: PriorityPolicy, config: EngineConfig) -> None:
        self.pool = pool
        self.policy = policy
        self.config = config

    def assign(self, state: SimulationState) -> list[Assignment]:
        """Run one dispatch round under the current policy."""
        policy = self.policy
        minute = state.current_minute
        ranked = rescore(state.pending, policy, minute)
        # Orders past their cutoff are left for the timeout scan.
        eligible = [o for o in ranked if not o.past_cutoff(minute)]

        assignments: list[Assignment] = []
        for worker, order in zip(self.pool.free_workers(), eligible):
            self.pool.assign(worker, order, minute)
            assignments.append(Assignment(order=order, worker=worker))

        if not assignments:
            return assignments

        served_ids = {a.order.id for a in assignments}
        state.pending = [o for o in state.pending if o.id not in served_ids]

        self._track_skips(state, [a.order for a in assignments])
        for a in assignments:
            logger.debug(
                "order assigned minute=%s order_id=%s worker_id=%s score=%.4f policy=%s",
                minute,
                a.order.id,
                a.worker.id,
                a.order.priority_score,
                policy.name,
            )
        return assignments

    def _track_skips(self, state: SimulationState, served: list[Order]) -> None:
        """Count later arrivals served ahead of each order still eligible for service."""
        tolerance = self.config.fairness_tolerance
        for order in state.pending:
            if order.past_cutoff(state.current_minute):
                continue
            skipped_by = sum(1 for s in served if s.arrival_minute > order.arrival_minute)
            if skipped_by == 0:
                continue
            order.people_served_ahead += skipped_by
            if order.people_served_ahead > tolerance and not order.fairness_violation:
                order.fairness_violation = True
                state.fairness_violations += 1
                logger.info(
                    "fairness violation order_id=%s people_served_ahead=%s tolerance=%s",
                    order.id,
                    order.people_served_ahead,
                    tolerance,
                )
