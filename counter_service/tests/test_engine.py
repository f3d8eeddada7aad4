import pytest

from counter_service.sim.engine import SimulationClock
from counter_service.sim.entities import EngineConfig, InvalidDrinkTypeError


def _assert_conserved(clock: SimulationClock) -> None:
    counts = clock.conservation()
    assert counts["pending"] + counts["in_service"] + counts["completed"] + counts["abandoned"] == counts["total"]


def test_single_espresso_is_served_immediately():
    clock = SimulationClock(EngineConfig())
    order = clock.create_order("espresso", "regular")

    first = clock.advance()
    assert first.assignments == [{"order_id": order.id, "worker_id": 1}]
    assert clock.advance().completions == []
    assert clock.advance().completions == [order.id]

    assert order.status == "completed"
    assert order.service_start_minute == 0
    assert order.completion_minute == 2
    assert order.wait_minutes == 0
    assert order.total_minutes == 2
    assert not order.complaint


def test_new_customer_waiting_past_cutoff_is_abandoned():
    clock = SimulationClock(EngineConfig(), policy="fifo")
    for _ in range(6):
        clock.create_order("mocha", "gold")
    newcomer = clock.create_order("espresso", "new")

    summaries = clock.run(12)

    assert newcomer.status == "abandoned"
    assert newcomer.abandoned_minute == 9
    assert newcomer.wait_minutes == 9
    assert newcomer.service_start_minute is None
    assert newcomer.assigned_worker_id is None
    assert newcomer.complaint
    assert summaries[9].abandonments == [newcomer.id]
    assert clock.metrics.snapshot()["complaints"] == 1


@pytest.mark.parametrize("policy", ["smart", "fifo"])
def test_conservation_and_non_negative_state_under_poisson_arrivals(policy):
    clock = SimulationClock(EngineConfig(seed=7), policy=policy)
    clock.set_auto_arrivals(True, rate=2.5)
    for _ in range(150):
        clock.advance()
        _assert_conserved(clock)
        for worker in clock.state.workers:
            assert worker.remaining_minutes >= 0
            assert worker.is_free == (worker.current_order is None)
    assert clock.state.total_orders > 0
    assert clock.state.completed
    for order in clock.all_orders():
        if order.wait_minutes is not None:
            assert order.wait_minutes >= 0
        if order.total_minutes is not None:
            assert order.total_minutes >= order.wait_minutes
        if order.status in {"in_service", "completed"}:
            assert order.wait_minutes <= order.timeout_minutes


def test_fifo_starts_service_in_arrival_order():
    clock = SimulationClock(EngineConfig(seed=11), policy="fifo")
    clock.set_auto_arrivals(True, rate=1.8)
    clock.run(120)
    served = sorted((o for o in clock.all_orders() if o.service_start_minute is not None), key=lambda o: o.id)
    starts = [o.service_start_minute for o in served]
    assert starts == sorted(starts)
    assert clock.state.fairness_violations == 0


def test_rush_enqueues_batch_at_current_minute():
    clock = SimulationClock(EngineConfig(rush_min_orders=5, rush_max_orders=8))
    clock.advance()
    orders = clock.trigger_rush()
    assert 5 <= len(orders) <= 8
    assert {o.arrival_minute for o in orders} == {1}
    assert len(clock.state.pending) == len(orders)


def test_invalid_drink_creates_nothing():
    clock = SimulationClock(EngineConfig())
    with pytest.raises(InvalidDrinkTypeError):
        clock.create_order("matcha", "gold")
    assert clock.state.total_orders == 0
    assert clock.state.pending == []


def test_switch_policy_keeps_queued_orders():
    clock = SimulationClock(EngineConfig(worker_count=1))
    for _ in range(3):
        clock.create_order("latte", "regular")
    clock.advance()
    clock.switch_policy("fifo")
    assert clock.state.policy == "fifo"
    assert len(clock.state.pending) == 2
    _assert_conserved(clock)


def test_reset_restores_initial_state_and_seeded_draws():
    clock = SimulationClock(EngineConfig(seed=5))
    first_draws = [(o.drink.code, o.customer_type) for o in (clock.add_random_order() for _ in range(5))]
    clock.switch_policy("fifo")
    clock.set_auto_arrivals(True)
    clock.run(10)

    clock.reset()

    assert clock.current_minute == 0
    assert clock.state.pending == []
    assert clock.state.policy == "smart"
    assert clock.state.arrival_mode == "manual"
    assert clock.metrics.snapshot()["total_orders"] == 0
    again = [(o.drink.code, o.customer_type) for o in (clock.add_random_order() for _ in range(5))]
    assert again == first_draws
    assert clock.state.pending[0].id == 1


def test_queue_snapshot_ranks_with_estimated_wait():
    clock = SimulationClock(EngineConfig(worker_count=1))
    clock.create_order("mocha", "regular")
    clock.advance()
    clock.create_order("latte", "new")
    clock.create_order("cold_brew", "gold")

    rows = clock.queue_snapshot()

    assert [r["rank"] for r in rows] == [1, 2]
    assert rows[0]["drink"] == "cold_brew"
    # The lone barista frees up after the mocha; the latte waits for the cold brew too.
    assert rows[0]["estimated_wait_minutes"] == 5.0
    assert rows[1]["estimated_wait_minutes"] == 6.0
    assert rows[0]["reason"]


def test_worker_snapshot_counts_busy_and_free():
    clock = SimulationClock(EngineConfig())
    clock.create_order("latte", "gold")
    clock.advance()
    snap = clock.worker_snapshot()
    assert snap["busy"] == 1
    assert snap["free"] == 2
    assert snap["workers"][0]["current_drink"] == "Latte"
    assert snap["workers"][0]["remaining_minutes"] == 4
    assert all(w["workload_ratio"] == 1.0 for w in snap["workers"])


def test_estimated_wait_counts_busy_baristas():
    clock = SimulationClock(EngineConfig())
    for _ in range(3):
        clock.create_order("mocha", "gold")
    clock.advance()
    waiting = [clock.create_order("espresso", "regular") for _ in range(4)]

    rows = clock.queue_snapshot()

    assert [r["id"] for r in rows] == [o.id for o in waiting]
    assert [r["estimated_wait_minutes"] for r in rows] == [5.0, 5.0, 5.0, 7.0]

    clock.run(10)
    assert [o.wait_minutes for o in waiting] == [5, 5, 5, 7]


def test_queue_snapshot_leaves_orders_untouched():
    clock = SimulationClock(EngineConfig())
    order = clock.create_order("latte", "gold")

    rows = clock.queue_snapshot()

    assert rows[0]["priority_score"] > 0
    assert order.priority_score == 0.0
    assert order.urgency == "normal"
