from __future__ import annotations

"""
File: counter_service/sim/workers.py
Purpose: Barista pool state machines (free -> busy -> free).
Key responsibilities:
- Assign an order to a free barista and start its prep countdown.
- Advance busy baristas one minute and emit completed orders.
"""

from counter_service.sim.entities import Order, Worker, WorkerBusyError


class WorkerPool:
    """Fixed-size set of baristas advanced by the simulation clock."""
    def __init__(self, workers: list[Worker]) -> None:
        self.workers = workers
        self.workers_by_id = {w.id: w for w in workers}

    def free_workers(self) -> list[Worker]:
        """Free baristas in ascending id order."""
        return sorted((w for w in self.workers if w.is_free), key=lambda w: w.id)

    def assign(self, worker: Worker, order: Order, minute: int) -> None:
        """Start serving `order` on `worker` at `minute`."""
        if not worker.is_free:
            raise WorkerBusyError(f"worker {worker.id} is busy with order {worker.current_order_id}")
        worker.status = "busy"
        worker.current_order = order
        worker.remaining_minutes = order.prep_minutes

        order.status = "in_service"
        order.assigned_worker_id = worker.id
        order.service_start_minute = minute

    def tick(self, minute: int) -> list[Order]:
        """Advance every busy barista by one minute; return orders finished at `minute`."""
        finished: list[Order] = []
        for worker in sorted(self.workers, key=lambda w: w.id):
            if worker.is_free or worker.current_order is None:
                continue
            worker.remaining_minutes -= 1
            if worker.remaining_minutes > 0:
                continue
            order = worker.current_order
            worker.total_work_minutes += order.prep_minutes
            worker.orders_completed += 1
            worker.status = "free"
            worker.current_order = None
            worker.remaining_minutes = 0

            order.status = "completed"
            order.completion_minute = minute
            finished.append(order)
        return finished

