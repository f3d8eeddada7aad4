import pytest

from counter_service.sim.entities import (
    MENU,
    EngineConfig,
    InvalidDrinkTypeError,
    Order,
    SmartWeights,
    resolve_drink,
)
from counter_service.sim.policy import FifoPolicy, SmartPolicy, make_policy, priority_reason, rank_key, urgency_for


def _order(order_id: int, drink: str = "latte", customer_type: str = "regular", arrival: int = 0, psa: int = 0) -> Order:
    return Order(
        id=order_id,
        drink=MENU[drink],
        customer_type=customer_type,
        arrival_minute=arrival,
        people_served_ahead=psa,
    )


def test_fifo_prefers_earlier_arrival():
    policy = FifoPolicy(EngineConfig())
    early, _ = policy.score(_order(1, arrival=2), current_minute=5)
    late, _ = policy.score(_order(2, arrival=4), current_minute=5)
    assert early > late


def test_smart_prefers_gold_over_new_at_equal_wait():
    policy = SmartPolicy(EngineConfig())
    gold, _ = policy.score(_order(1, customer_type="gold"), current_minute=3)
    new, _ = policy.score(_order(2, customer_type="new"), current_minute=3)
    assert gold > new


def test_smart_prefers_short_jobs():
    policy = SmartPolicy(EngineConfig())
    quick, _ = policy.score(_order(1, drink="cold_brew"), current_minute=0)
    slow, _ = policy.score(_order(2, drink="mocha"), current_minute=0)
    assert quick > slow


def test_smart_components_stay_normalized():
    policy = SmartPolicy(EngineConfig())
    parts = policy.components(_order(1, drink="mocha", customer_type="gold", psa=50), current_minute=40)
    assert all(0.0 <= value <= 1.0 for value in parts.values())
    assert parts["wait"] == 1.0
    assert parts["tier"] == 1.0


def test_smart_fairness_term_grows_with_people_served_ahead():
    policy = SmartPolicy(EngineConfig())
    scores = [policy.score(_order(1, psa=psa), current_minute=2)[0] for psa in range(6)]
    assert scores == sorted(scores)
    assert len(set(scores)) == len(scores)


def test_urgency_tiers():
    cfg = EngineConfig()
    assert urgency_for(9, cfg) == "urgent"
    assert urgency_for(8, cfg) == "elevated"
    assert urgency_for(5, cfg) == "elevated"
    assert urgency_for(4, cfg) == "normal"


def test_rank_key_breaks_ties_by_arrival_then_id():
    a = _order(3, arrival=1)
    b = _order(1, arrival=2)
    c = _order(2, arrival=1)
    for o in (a, b, c):
        o.priority_score = 0.5
    assert [o.id for o in sorted([a, b, c], key=rank_key)] == [2, 3, 1]


def test_weights_must_sum_to_one():
    with pytest.raises(ValueError):
        SmartWeights(wait=0.5, tier=0.5, short_job=0.5, fairness=0.0)
    with pytest.raises(ValueError):
        EngineConfig(arrival_rate=0)


def test_make_policy_rejects_unknown_name():
    assert make_policy("fifo", EngineConfig()).name == "fifo"
    with pytest.raises(ValueError):
        make_policy("lifo", EngineConfig())


def test_resolve_drink_accepts_code_or_display_name():
    assert resolve_drink("Cold Brew").code == "cold_brew"
    assert resolve_drink("ESPRESSO").prep_minutes == 2
    with pytest.raises(InvalidDrinkTypeError):
        resolve_drink("matcha")


def test_priority_reason_mentions_skips_past_tolerance():
    cfg = EngineConfig()
    order = _order(1, customer_type="gold", psa=5)
    order.urgency = "normal"
    reason = priority_reason(order, current_minute=1, config=cfg)
    assert reason.startswith("Gold member priority")
    assert "5 skipped" in reason
