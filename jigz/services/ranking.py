# jigz/services/ranking.py
"""Priority-bid ranking of job applications.

Order: higher coins_bid first, then earlier created_at. `sorted` is
stable, so applications tied on both keys keep their input order; the
repository loads them by (created_at, id) to make that order fixed.

Rankings are computed on every read and never stored, so a new
application or a raised bid moves positions immediately.
"""
from dataclasses import dataclass
from typing import Any, Iterable, List


@dataclass(frozen=True)
class RankedApplication:
    application: Any
    rank: int
    is_bidding: bool


def _coins(app) -> int:
    return int(app.coins_bid or 0)


def rank(applications: Iterable[Any]) -> List[RankedApplication]:
    ordered = sorted(applications, key=lambda a: (-_coins(a), a.created_at))
    return [
        RankedApplication(application=a, rank=i, is_bidding=_coins(a) > 0)
        for i, a in enumerate(ordered, start=1)
    ]


def top_bidders(applications: Iterable[Any], limit: int = 4) -> List[RankedApplication]:
    """The highest `limit` ranked applications that carry a priority bid."""
    return [r for r in rank(applications) if r.is_bidding][:limit]
