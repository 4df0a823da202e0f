# tests/test_ranking.py
from datetime import datetime, timedelta
from types import SimpleNamespace

from jigz.services.ranking import rank, top_bidders

T0 = datetime(2024, 1, 1, 12, 0, 0)


def _app(name, coins_bid, minutes):
    return SimpleNamespace(id=name, coins_bid=coins_bid, created_at=T0 + timedelta(minutes=minutes))


def test_higher_bid_ranks_first_then_earlier_application():
    apps = [_app("A", 0, 1), _app("B", 5, 2), _app("C", 5, 3), _app("D", 2, 0)]

    ranked = rank(apps)

    assert [r.application.id for r in ranked] == ["B", "C", "D", "A"]
    assert [r.rank for r in ranked] == [1, 2, 3, 4]
    assert [r.is_bidding for r in ranked] == [True, True, True, False]


def test_full_tie_keeps_input_order():
    apps = [_app("X", 3, 5), _app("Y", 3, 5), _app("Z", 3, 5)]
    assert [r.application.id for r in rank(apps)] == ["X", "Y", "Z"]


def test_raised_bid_moves_application_up():
    a1 = _app("A1", 0, 0)
    a2 = _app("A2", 2, 1)
    a3 = _app("A3", 2, 2)
    assert [r.application.id for r in rank([a1, a2, a3])] == ["A2", "A3", "A1"]

    a1.coins_bid += 3
    assert [r.application.id for r in rank([a1, a2, a3])] == ["A1", "A2", "A3"]


def test_missing_bid_counts_as_zero():
    ranked = rank([_app("A", None, 0), _app("B", 1, 1)])
    assert [r.application.id for r in ranked] == ["B", "A"]
    assert ranked[1].is_bidding is False


def test_top_bidders_only_bidding_and_limited():
    apps = [_app(str(i), i % 3, i) for i in range(10)]

    top = top_bidders(apps)

    assert len(top) == 4
    assert all(r.is_bidding for r in top)
    assert [r.application.coins_bid for r in top] == [2, 2, 2, 1]
    assert top_bidders([_app("A", 0, 0)]) == []


def test_empty_input():
    assert rank([]) == []


def test_rank_is_deterministic():
    apps = [_app(str(i), (i * 7) % 4, i % 3) for i in range(12)]
    assert rank(apps) == rank(apps)
