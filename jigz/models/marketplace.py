# jigz/models/marketplace.py
"""Validation and wire models for the marketplace.

Field ranges and enums mirror the storage schema; FastAPI turns any
violation into a per-field 422 response. All models speak camelCase on
the wire and accept snake_case from Python callers.
"""
from datetime import datetime
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel

from jigz.core.config import settings

BudgetType = Literal["fixed", "hourly"]
ExperienceLevel = Literal["any", "beginner", "intermediate", "expert"]
PriceType = Literal["fixed", "hourly", "per_project"]
ReportCategory = Literal["spam", "inappropriate", "fake", "discriminatory", "unsafe", "other"]
ReviewType = Literal["client_to_worker", "worker_to_client"]
SortBy = Literal["relevance", "date", "budget_low", "budget_high"]
SortOrder = Literal["asc", "desc"]


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


# ---------- jobs ----------

class JobCreate(CamelModel):
    title: str = Field(min_length=1, max_length=200)
    description: str = Field(min_length=1, max_length=5000)
    category: str = Field(min_length=1, max_length=100)
    location: str = Field(min_length=1, max_length=200)
    specific_area: Optional[str] = Field(default=None, max_length=200)
    min_budget: Optional[int] = Field(default=None, ge=0)
    max_budget: int = Field(ge=1)
    budget_type: BudgetType = "fixed"
    currency: str = Field(default="USD", min_length=3, max_length=3)
    experience_level: ExperienceLevel = "any"
    duration: Optional[str] = Field(default=None, max_length=50)
    freelancers_needed: int = Field(default=1, ge=1, le=50)

    @model_validator(mode="after")
    def _budget_range(self):
        if self.min_budget is not None and self.min_budget > self.max_budget:
            raise ValueError("minBudget cannot exceed maxBudget")
        self.currency = self.currency.upper()
        return self


class JobOut(CamelModel):
    id: str
    user_id: str
    title: str
    description: str
    category: str
    location: str
    specific_area: Optional[str] = None
    min_budget: Optional[int] = None
    max_budget: Optional[int] = None
    budget_type: str
    currency: str
    experience_level: str
    duration: Optional[str] = None
    freelancers_needed: int
    status: str
    approval_status: str
    expires_at: datetime
    created_at: datetime
    application_count: Optional[int] = None


# ---------- applications ----------

class ApplicationCreate(CamelModel):
    job_id: str
    bid_amount: int = Field(ge=1)
    coins_bid: int = Field(default=0, ge=0, le=1000)
    message: str = Field(min_length=1, max_length=2000)
    experience: Optional[str] = Field(default=None, max_length=2000)


class BidIncrease(CamelModel):
    additional_coins: int = Field(ge=1, le=1000)


class ApplicationStatusUpdate(CamelModel):
    status: Literal["accepted", "rejected"]


class ApplicationOut(CamelModel):
    id: str
    job_id: str
    user_id: str
    bid_amount: int
    coins_bid: int
    message: str
    experience: Optional[str] = None
    status: str
    is_completed: bool
    completed_at: Optional[datetime] = None
    created_at: datetime


class RankedApplicationOut(ApplicationOut):
    rank: int
    is_bidding: bool


class TopBidderOut(CamelModel):
    application_id: str
    user_id: str
    name: str
    coins_bid: int
    rank: int


# ---------- services ----------

class ServiceCreate(CamelModel):
    title: str = Field(min_length=1, max_length=100)
    description: str = Field(min_length=1, max_length=1500)
    category: str = Field(min_length=1, max_length=100)
    location: str = Field(min_length=1, max_length=200)
    price_from: int = Field(ge=1)
    price_to: Optional[int] = Field(default=None, ge=1)
    price_type: PriceType = "fixed"
    currency: str = Field(default="USD", min_length=3, max_length=3)
    experience_level: Literal["beginner", "intermediate", "expert"] = "intermediate"
    available_slots: int = Field(default=5, ge=1, le=100)

    @model_validator(mode="after")
    def _price_range(self):
        if self.price_to is not None and self.price_to < self.price_from:
            raise ValueError("priceTo cannot be lower than priceFrom")
        self.currency = self.currency.upper()
        return self


class ServiceOut(CamelModel):
    id: str
    user_id: str
    title: str
    description: str
    category: str
    location: str
    price_from: int
    price_to: Optional[int] = None
    price_type: str
    currency: str
    experience_level: str
    available_slots: int
    status: str
    approval_status: str
    expires_at: datetime
    created_at: datetime


class ServiceRequestCreate(CamelModel):
    message: str = Field(min_length=1, max_length=2000)
    budget: int = Field(ge=1)
    coins_bid: int = Field(default=0, ge=0, le=100)
    timeline: Optional[str] = Field(default=None, max_length=200)


class ServiceRequestOut(CamelModel):
    id: str
    service_id: str
    user_id: str
    message: str
    budget: int
    coins_bid: int
    timeline: Optional[str] = None
    status: str
    accepted_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    created_at: datetime


class ServiceList(CamelModel):
    services: List[ServiceOut]
    total: int


# ---------- reviews & endorsements ----------

class ReviewCreate(CamelModel):
    job_id: str
    reviewee_id: str
    review_type: ReviewType
    rating: Optional[int] = Field(default=None, ge=1, le=5)
    comment: Optional[str] = Field(default=None, max_length=2000)
    quality_of_work_rating: Optional[int] = Field(default=None, ge=1, le=5)
    communication_rating: Optional[int] = Field(default=None, ge=1, le=5)
    timeliness_rating: Optional[int] = Field(default=None, ge=1, le=5)

    @model_validator(mode="after")
    def _shape(self):
        if self.review_type == "client_to_worker":
            subs = (self.quality_of_work_rating, self.communication_rating, self.timeliness_rating)
            if any(s is None for s in subs):
                raise ValueError("Detailed ratings are required for client-to-freelancer reviews")
        elif self.rating is None:
            raise ValueError("rating is required")
        return self


class ReviewOut(CamelModel):
    id: str
    job_id: str
    reviewer_id: str
    reviewee_id: str
    rating: int
    comment: Optional[str] = None
    review_type: str
    quality_of_work_rating: Optional[int] = None
    communication_rating: Optional[int] = None
    timeliness_rating: Optional[int] = None
    created_at: datetime


class RatingSummary(CamelModel):
    user_id: str
    average_rating: float
    total_reviews: int


class EndorsementCreate(CamelModel):
    endorsee_id: str
    job_id: str
    skill: str = Field(min_length=1, max_length=100)
    message: Optional[str] = Field(default=None, max_length=1000)


class EndorsementOut(CamelModel):
    id: str
    endorser_id: str
    endorsee_id: str
    job_id: str
    skill: str
    message: Optional[str] = None
    created_at: datetime


# ---------- coins ----------

class CoinBalance(CamelModel):
    coins: int
    last_reset: Optional[datetime] = None
    days_until_reset: int


class CoinAdjust(CamelModel):
    amount: int
    mode: Literal["add", "remove", "set"] = "add"


# ---------- search ----------

class SearchParams(CamelModel):
    query: Optional[str] = Field(default=None, max_length=200)
    category: Optional[str] = None
    location: Optional[str] = None
    experience_level: Optional[str] = None
    min_budget: Optional[int] = Field(default=None, ge=0)
    max_budget: Optional[int] = Field(default=None, ge=0)
    currency: Optional[str] = None
    page: int = Field(default=1, ge=1)
    limit: int = Field(default=settings.SEARCH_DEFAULT_LIMIT, ge=1, le=settings.SEARCH_MAX_LIMIT)
    sort_by: SortBy = "relevance"
    sort_order: Optional[SortOrder] = None


class Pagination(CamelModel):
    page: int
    limit: int
    total: int
    pages: int
    has_next: bool
    has_prev: bool


class SearchMeta(CamelModel):
    query: Optional[str] = None
    filters: Dict[str, Any] = Field(default_factory=dict)
    execution_time: float = 0.0
    from_cache: bool = False


class SearchResult(CamelModel):
    jobs: List[JobOut]
    pagination: Pagination
    search_meta: SearchMeta


# ---------- reports ----------

class ReportCreate(CamelModel):
    category: ReportCategory
    reason: str = Field(min_length=1, max_length=2000)


class ReportUpdate(CamelModel):
    status: Literal["reviewed", "resolved", "dismissed"]
    admin_notes: Optional[str] = Field(default=None, max_length=2000)


class ReportOut(CamelModel):
    id: str
    job_id: str
    reporter_id: str
    category: str
    reason: str
    status: str
    admin_notes: Optional[str] = None
    reviewed_by: Optional[str] = None
    reviewed_at: Optional[datetime] = None
    created_at: datetime


# ---------- messaging ----------

class ConversationCreate(CamelModel):
    application_id: Optional[str] = None
    service_request_id: Optional[str] = None

    @model_validator(mode="after")
    def _one_subject(self):
        if bool(self.application_id) == bool(self.service_request_id):
            raise ValueError("Provide exactly one of applicationId or serviceRequestId")
        return self


class ConversationOut(CamelModel):
    id: str
    job_id: Optional[str] = None
    application_id: Optional[str] = None
    service_id: Optional[str] = None
    service_request_id: Optional[str] = None
    owner_id: str
    counterpart_id: str
    last_message_at: datetime
    created_at: datetime


class MessageCreate(CamelModel):
    content: str = Field(min_length=1, max_length=5000)


class MessageOut(CamelModel):
    id: str
    conversation_id: str
    sender_id: str
    content: str
    is_read: bool
    created_at: datetime
