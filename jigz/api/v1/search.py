# jigz/api/v1/search.py
from typing import Optional

from fastapi import APIRouter, Depends, Query
from fastapi.exceptions import RequestValidationError
from pydantic import ValidationError
from sqlalchemy.orm import Session

from jigz.core.config import settings
from jigz.db.session import get_db
from jigz.models.marketplace import SearchParams, SortBy, SortOrder
from jigz.services.search import search_jobs

router = APIRouter()


@router.get("/search/jobs")
async def search(
    query: Optional[str] = Query(None, max_length=200),
    category: Optional[str] = Query(None),
    location: Optional[str] = Query(None),
    experience_level: Optional[str] = Query(None, alias="experienceLevel"),
    min_budget: Optional[int] = Query(None, alias="minBudget", ge=0),
    max_budget: Optional[int] = Query(None, alias="maxBudget", ge=0),
    currency: Optional[str] = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(settings.SEARCH_DEFAULT_LIMIT, ge=1, le=settings.SEARCH_MAX_LIMIT),
    sort_by: SortBy = Query("relevance", alias="sortBy"),
    sort_order: Optional[SortOrder] = Query(None, alias="sortOrder"),
    db: Session = Depends(get_db),
):
    try:
        params = SearchParams(
            query=query.strip() if query else None,
            category=category,
            location=location,
            experience_level=experience_level,
            min_budget=min_budget,
            max_budget=max_budget,
            currency=currency,
            page=page,
            limit=limit,
            sort_by=sort_by,
            sort_order=sort_order,
        )
    except ValidationError as exc:
        # same 422 shape as a bad query parameter
        raise RequestValidationError(exc.errors())
    return await search_jobs(db, params)
