from classroom_seat_match.search import SearchBudget


def test_node_limit_trips_and_stays_tripped():
    budget = SearchBudget(node_limit=3, time_limit_sec=60)
    assert not budget.tick()
    assert not budget.tick()
    assert budget.tick()
    assert budget.exhausted
    assert budget.check()


def test_time_limit_uses_injected_clock():
    now = [0.0]
    budget = SearchBudget(node_limit=1_000, time_limit_sec=1.0, clock=lambda: now[0])
    assert not budget.tick()
    now[0] = 1.5
    assert budget.tick()
    assert budget.nodes == 2
