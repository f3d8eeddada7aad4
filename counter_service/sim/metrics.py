from __future__ import annotations

"""
File: counter_service/sim/metrics.py
Purpose: Running and rolling-window statistics over resolved orders.
Key responsibilities:
- Wait/total time averages, complaint, timeout and fairness rates.
- Rolling window over the most recent completed orders.
- Per-barista workload breakdown and balance score.
"""

from collections import deque
from math import sqrt

from counter_service.sim.entities import CUSTOMER_LABELS, Order, Worker


def _rate(part: int, whole: int) -> float:
    return round(part * 100.0 / whole, 1) if whole else 0.0


class MetricsAggregator:
    """Observes completed/abandoned orders and keeps incremental statistics."""
    def __init__(self, window_size: int = 100) -> None:
        self.window_size = window_size
        self.reset()

    def reset(self) -> None:
        self.created = 0
        self.completed = 0
        self.abandoned = 0
        self.complaints = 0
        self.fairness_violations = 0
        self.wait_total = 0.0
        self.max_wait = 0.0
        self.total_time_total = 0.0
        self.complaints_by_type: dict[str, int] = {}
        self.window: deque[Order] = deque(maxlen=self.window_size)

    def note_created(self, count: int = 1) -> None:
        self.created += count

    def note_fairness_violations(self, count: int) -> None:
        self.fairness_violations += count

    def note_completed(self, order: Order) -> None:
        wait = float(order.wait_minutes or 0)
        self.completed += 1
        self.wait_total += wait
        self.max_wait = max(self.max_wait, wait)
        self.total_time_total += float(order.total_minutes or 0)
        self.window.append(order)
        if order.complaint:
            self._note_complaint(order)

    def note_abandoned(self, order: Order) -> None:
        self.abandoned += 1
        self._note_complaint(order)

    def _note_complaint(self, order: Order) -> None:
        self.complaints += 1
        label = CUSTOMER_LABELS[order.customer_type]
        self.complaints_by_type[label] = self.complaints_by_type.get(label, 0) + 1

    def snapshot(self, queue_length: int = 0) -> dict[str, object]:
        """Aggregate running metrics."""
        resolved = self.completed + self.abandoned
        return {
            "avg_wait_minutes": round(self.wait_total / self.completed, 2) if self.completed else 0.0,
            "max_wait_minutes": round(self.max_wait, 2),
            "avg_total_minutes": round(self.total_time_total / self.completed, 2) if self.completed else 0.0,
            "complaints": self.complaints,
            "complaint_rate": _rate(self.complaints, resolved),
            "timeout_rate": _rate(self.abandoned, self.created),
            "fairness_violations": self.fairness_violations,
            "fairness_violation_rate": _rate(self.fairness_violations, self.created),
            "queue_length": queue_length,
            "total_orders": self.created,
            "completed_orders": self.completed,
            "abandoned_orders": self.abandoned,
            "complaints_by_customer_type": dict(self.complaints_by_type),
        }

    def window_snapshot(self) -> dict[str, object]:
        """Statistics over the last `window_size` completed orders."""
        orders = list(self.window)
        size = len(orders)
        if not size:
            return {"orders_analyzed": 0, "avg_wait_minutes": 0.0, "avg_total_minutes": 0.0, "complaints": 0, "complaint_rate": 0.0}
        complaints = sum(1 for o in orders if o.complaint)
        return {
            "orders_analyzed": size,
            "avg_wait_minutes": round(sum(o.wait_minutes or 0 for o in orders) / size, 2),
            "avg_total_minutes": round(sum(o.total_minutes or 0 for o in orders) / size, 2),
            "complaints": complaints,
            "complaint_rate": _rate(complaints, size),
        }


def workload_breakdown(workers: list[Worker]) -> list[dict[str, object]]:
    """Per-barista totals with workload ratio against an even split."""
    total = sum(w.total_work_minutes for w in workers)
    count = len(workers)
    rows: list[dict[str, object]] = []
    for w in sorted(workers, key=lambda item: item.id):
        ratio = (w.total_work_minutes / total) * count if total > 0 else 1.0
        rows.append({
            "id": w.id,
            "name": w.name,
            "status": w.status,
            "total_work_minutes": w.total_work_minutes,
            "orders_completed": w.orders_completed,
            "avg_time_per_order": round(w.total_work_minutes / w.orders_completed, 2) if w.orders_completed else 0.0,
            "workload_share": round(w.total_work_minutes * 100.0 / total, 1) if total > 0 else 0.0,
            "workload_ratio": round(ratio, 2),
            "overloaded": ratio > 1.2,
            "underutilized": ratio < 0.8,
        })
    return rows


def workload_balance(workers: list[Worker]) -> float:
    """100 for a perfectly even split, falling with the coefficient of variation."""
    if not workers:
        return 100.0
    loads = [float(w.total_work_minutes) for w in workers]
    mean = sum(loads) / len(loads)
    if mean <= 0:
        return 100.0
    std = sqrt(sum((x - mean) ** 2 for x in loads) / len(loads))
    return round(max(0.0, 100.0 - std / mean * 100.0), 1)
