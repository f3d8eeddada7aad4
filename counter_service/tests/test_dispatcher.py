from counter_service.sim.dispatcher import Dispatcher
from counter_service.sim.entities import MENU, EngineConfig, Order, SimulationState, make_workers
from counter_service.sim.policy import FifoPolicy, SmartPolicy
from counter_service.sim.workers import WorkerPool


def _order(order_id: int, drink: str, customer_type: str, arrival: int) -> Order:
    return Order(id=order_id, drink=MENU[drink], customer_type=customer_type, arrival_minute=arrival)


def _setup(worker_count: int, pending: list[Order], minute: int, policy: str = "smart"):
    cfg = EngineConfig(worker_count=worker_count)
    pool = WorkerPool(make_workers(worker_count))
    state = SimulationState(workers=pool.workers, current_minute=minute, pending=list(pending))
    chosen = SmartPolicy(cfg) if policy == "smart" else FifoPolicy(cfg)
    return state, Dispatcher(pool, chosen, cfg)


def _old_order_and_gold_rush() -> list[Order]:
    old = _order(1, "mocha", "new", arrival=0)
    golds = [_order(i, "cold_brew", "gold", arrival=1) for i in range(2, 7)]
    return [old] + golds


def test_three_urgent_orders_fill_three_free_workers():
    orders = [_order(i, "latte", "gold", arrival=0) for i in (1, 2, 3)]
    state, dispatcher = _setup(3, orders, minute=9)

    assignments = dispatcher.assign(state)

    assert len(assignments) == 3
    assert state.pending == []
    assert all(o.urgency == "urgent" for o in orders)
    assert sorted(a.worker.id for a in assignments) == [1, 2, 3]


def test_lowest_id_worker_is_chosen_first():
    state, dispatcher = _setup(3, [_order(1, "espresso", "regular", arrival=0)], minute=0)
    assignments = dispatcher.assign(state)
    assert [(a.order.id, a.worker.id) for a in assignments] == [(1, 1)]


def test_orders_past_cutoff_are_not_assigned():
    expired = _order(1, "espresso", "new", arrival=0)
    fresh = _order(2, "espresso", "regular", arrival=5)
    state, dispatcher = _setup(2, [expired, fresh], minute=9)

    assignments = dispatcher.assign(state)

    assert [a.order.id for a in assignments] == [2]
    assert state.pending == [expired]
    assert expired.status == "queued"
    assert expired.people_served_ahead == 0


def test_skipped_old_order_records_fairness_violation():
    state, dispatcher = _setup(4, _old_order_and_gold_rush(), minute=1)

    assignments = dispatcher.assign(state)

    assert [a.order.id for a in assignments] == [2, 3, 4, 5]
    remaining = {o.id: o for o in state.pending}
    assert remaining[1].people_served_ahead == 4
    assert remaining[1].fairness_violation
    # Same-minute arrivals do not count as skips.
    assert remaining[6].people_served_ahead == 0
    assert state.fairness_violations == 1


def test_violation_is_flagged_once_per_order():
    state, dispatcher = _setup(4, _old_order_and_gold_rush(), minute=1)
    dispatcher.assign(state)
    for worker in state.workers:
        worker.status = "free"
        worker.current_order = None
    state.pending.append(_order(7, "cold_brew", "gold", arrival=1))

    dispatcher.assign(state)

    assert state.fairness_violations == 1


def test_fifo_serves_oldest_first_without_violations():
    state, dispatcher = _setup(4, _old_order_and_gold_rush(), minute=1, policy="fifo")

    assignments = dispatcher.assign(state)

    assert [a.order.id for a in assignments] == [1, 2, 3, 4]
    assert state.fairness_violations == 0
