# jigz/services/search.py
"""Public job search.

Only jobs that are open, approved and not yet expired are ever returned;
that predicate is evaluated at query time against `now` and does not
depend on the expiry sweep having run. Results are memoized in Redis for
a short TTL keyed by the full parameter set (see search_cache).
"""
import logging
import math
import time
from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy import case, func, or_, select
from sqlalchemy.orm import Session
from starlette.concurrency import run_in_threadpool

from jigz.db.models import Application, Job, utcnow
from jigz.models.marketplace import JobOut, Pagination, SearchMeta, SearchParams, SearchResult
from jigz.services.search_cache import SearchCache, make_cache_key, search_cache

logger = logging.getLogger(__name__)

ALL_CATEGORIES = "All Categories"
ALL_LOCATIONS = "All Locations"


def _like(term: str) -> str:
    escaped = term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"


def _terms(query: Optional[str]) -> List[str]:
    return [t for t in (query or "").split() if t]


def visible_conditions(now: datetime) -> list:
    return [Job.status == "open", Job.approval_status == "approved", Job.expires_at > now]


def build_conditions(params: SearchParams, now: datetime) -> list:
    conds = visible_conditions(now)

    for term in _terms(params.query):
        pattern = _like(term)
        conds.append(or_(Job.title.ilike(pattern, escape="\\"), Job.description.ilike(pattern, escape="\\")))

    if params.category and params.category != ALL_CATEGORIES:
        conds.append(Job.category == params.category)
    if params.location and params.location != ALL_LOCATIONS:
        conds.append(func.lower(Job.location) == params.location.lower())
    if params.experience_level and params.experience_level != "any":
        conds.append(Job.experience_level == params.experience_level)
    if params.currency:
        conds.append(Job.currency == params.currency.upper())

    # budget range overlap; a job with one bound set is treated as a point
    job_lo = func.coalesce(Job.min_budget, Job.max_budget)
    job_hi = func.coalesce(Job.max_budget, Job.min_budget)
    if params.min_budget is not None:
        conds.append(job_hi >= params.min_budget)
    if params.max_budget is not None:
        conds.append(job_lo <= params.max_budget)
    return conds


def _direction(column, order: str):
    return column.asc().nulls_last() if order == "asc" else column.desc().nulls_last()


def build_order(params: SearchParams) -> list:
    query = (params.query or "").strip()
    if params.sort_by == "relevance":
        if query:
            pattern = _like(query)
            score = case(
                (Job.title.ilike(pattern, escape="\\"), 3),
                (Job.description.ilike(pattern, escape="\\"), 2),
                else_=1,
            )
            order = [score.desc(), Job.created_at.desc()]
        else:
            order = [Job.created_at.desc()]
    elif params.sort_by == "date":
        order = [_direction(Job.created_at, params.sort_order or "desc")]
    elif params.sort_by == "budget_low":
        order = [_direction(Job.max_budget, params.sort_order or "asc"), Job.created_at.desc()]
    else:  # budget_high
        order = [_direction(Job.max_budget, params.sort_order or "desc"), Job.created_at.desc()]
    # id as last key keeps consecutive pages disjoint
    order.append(Job.id.asc())
    return order


def _application_counts(session: Session, job_ids: List[str]) -> Dict[str, int]:
    if not job_ids:
        return {}
    rows = session.execute(
        select(Application.job_id, func.count(Application.id))
        .where(Application.job_id.in_(job_ids))
        .group_by(Application.job_id)
    ).all()
    return {job_id: n for job_id, n in rows}


def run_search(session: Session, params: SearchParams, now: Optional[datetime] = None) -> Dict[str, Any]:
    """Execute the search against the database (no cache)."""
    now = now or utcnow()
    conds = build_conditions(params, now)

    total = session.scalar(select(func.count()).select_from(Job).where(*conds)) or 0
    pages = math.ceil(total / params.limit) if total else 0
    offset = (params.page - 1) * params.limit

    jobs = session.execute(
        select(Job).where(*conds).order_by(*build_order(params)).offset(offset).limit(params.limit)
    ).scalars().all()
    counts = _application_counts(session, [j.id for j in jobs])

    items = []
    for job in jobs:
        out = JobOut.model_validate(job)
        out.application_count = counts.get(job.id, 0)
        items.append(out)

    result = SearchResult(
        jobs=items,
        pagination=Pagination(
            page=params.page,
            limit=params.limit,
            total=total,
            pages=pages,
            has_next=params.page < pages,
            has_prev=params.page > 1,
        ),
        search_meta=SearchMeta(
            query=params.query,
            filters=params.model_dump(
                by_alias=True,
                include={"category", "location", "experience_level", "min_budget", "max_budget", "currency", "sort_by", "sort_order"},
            ),
        ),
    )
    return result.model_dump(by_alias=True, mode="json")


async def search_jobs(session: Session, params: SearchParams, now: Optional[datetime] = None, cache: Optional[SearchCache] = None) -> Dict[str, Any]:
    """Cached search. `searchMeta.executionTime` is wall-clock milliseconds."""
    cache = cache or search_cache
    started = time.perf_counter()
    key = make_cache_key(params.model_dump(mode="json"))

    cached = await cache.get(key)
    if cached is not None:
        cached["searchMeta"]["executionTime"] = round((time.perf_counter() - started) * 1000, 3)
        cached["searchMeta"]["fromCache"] = True
        return cached

    result = await run_in_threadpool(run_search, session, params, now)
    result["searchMeta"]["executionTime"] = round((time.perf_counter() - started) * 1000, 3)
    result["searchMeta"]["fromCache"] = False
    await cache.set(key, result)
    logger.debug("Job search total=%s page=%s took=%sms", result["pagination"]["total"], params.page, result["searchMeta"]["executionTime"])
    return result
