# jigz/services/gateway.py
"""Coin-gated actions.

Every paid action runs as one database transaction:

    preconditions -> cost -> ledger.debit -> entity mutation -> commit

Any failure after the first write (insufficient coins, a constraint
violation, an exception while building the entity) rolls the whole
transaction back, so the user keeps their coins and no row is created
or changed. A successful call makes exactly one balance change and one
entity change.
"""
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Callable, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from jigz.core.config import settings
from jigz.db.models import Application, Job, Service, ServiceRequest, SkillEndorsement, gen_id, utcnow
from jigz.models.marketplace import (
    ApplicationCreate,
    BidIncrease,
    EndorsementCreate,
    JobCreate,
    ServiceCreate,
    ServiceRequestCreate,
)
from jigz.repositories import marketplace as repo
from jigz.services.errors import AlreadyApplied, AlreadyEndorsed, Forbidden, InvalidState, JigzError, NotEligible, NotFound
from jigz.services.ledger import ACTION_COSTS, CoinLedger

logger = logging.getLogger(__name__)


@dataclass
class ActionPlan:
    """What a paid action costs and how to perform it once paid for."""
    cost: int
    mutate: Callable[[], Any]
    reference_id: Optional[str] = None
    # raised instead of IntegrityError when a unique constraint trips
    conflict: Optional[JigzError] = None


def _lifetime() -> timedelta:
    return timedelta(days=settings.LISTING_LIFETIME_DAYS)


class CoinGateway:
    """Runs coin-consuming actions for one request session.

    Usage:
        gateway = CoinGateway(db)
        application = gateway.perform(user_id, "apply", ApplicationCreate(...))
    """

    def __init__(self, session: Session, now: Optional[datetime] = None):
        self._session = session
        self._ledger = CoinLedger(session)
        self._now = now
        self._planners = {
            "post_job": self._plan_post_job,
            "edit_job": self._plan_edit_job,
            "extend_job": self._plan_extend_job,
            "apply": self._plan_apply,
            "raise_bid": self._plan_raise_bid,
            "endorse_skill": self._plan_endorse_skill,
            "post_service": self._plan_post_service,
            "extend_service": self._plan_extend_service,
            "service_request": self._plan_service_request,
            "accept_service_request": self._plan_accept_service_request,
        }

    def perform(self, user_id: str, action: str, payload: Any = None, target_id: Optional[str] = None):
        planner = self._planners.get(action)
        if planner is None:
            raise ValueError(f"Unknown coin action: {action}")
        # one clock reading per action: preconditions, debit and row timestamps agree
        now = self._now or utcnow()
        try:
            plan = planner(user_id, payload, target_id, now)
        except Exception:
            self._session.rollback()
            raise
        return self.run(user_id, action, plan, now=now)

    def run(self, user_id: str, reason: str, plan: ActionPlan, now: Optional[datetime] = None):
        """Debit `plan.cost`, apply `plan.mutate()` and commit, or roll back both."""
        now = now or self._now or utcnow()
        try:
            self._ledger.debit(user_id, plan.cost, reason=reason, reference_id=plan.reference_id, now=now)
            entity = plan.mutate()
            self._session.flush()
            self._session.commit()
        except IntegrityError:
            self._session.rollback()
            logger.warning("Coin action %s for user=%s hit a constraint; rolled back", reason, user_id)
            if plan.conflict is not None:
                raise plan.conflict
            raise
        except Exception:
            self._session.rollback()
            logger.info("Coin action %s for user=%s rolled back", reason, user_id)
            raise
        logger.info("Coin action %s user=%s cost=%s ref=%s", reason, user_id, plan.cost, plan.reference_id)
        return entity

    # ---------- jobs ----------

    def _owned_job(self, user_id: str, job_id: Optional[str], verb: str) -> Job:
        job = repo.get_job(self._session, job_id) if job_id else None
        if job is None:
            raise NotFound("Job not found")
        if job.user_id != user_id:
            raise Forbidden(f"You can only {verb} your own job postings")
        return job

    def _plan_post_job(self, user_id: str, payload: JobCreate, target_id: Optional[str], now: datetime) -> ActionPlan:
        job_id = gen_id()

        def mutate():
            job = Job(
                id=job_id,
                user_id=user_id,
                status="open",
                approval_status="pending",
                expires_at=now + _lifetime(),
                created_at=now,
                **payload.model_dump(),
            )
            self._session.add(job)
            return job

        return ActionPlan(cost=ACTION_COSTS["post_job"], mutate=mutate, reference_id=job_id)

    def _plan_edit_job(self, user_id: str, payload: JobCreate, target_id: Optional[str], now: datetime) -> ActionPlan:
        job = self._owned_job(user_id, target_id, "edit")

        def mutate():
            for field, value in payload.model_dump().items():
                setattr(job, field, value)
            # edits go back through moderation
            job.approval_status = "pending"
            job.approved_by = None
            job.approved_at = None
            job.status = "open"
            return job

        return ActionPlan(cost=ACTION_COSTS["edit_job"], mutate=mutate, reference_id=job.id)

    def _plan_extend_job(self, user_id: str, payload, target_id: Optional[str], now: datetime) -> ActionPlan:
        job = self._owned_job(user_id, target_id, "extend")
        if job.status in ("in_progress", "completed"):
            raise NotEligible("Only open job postings can be extended")

        def mutate():
            job.expires_at = job.expires_at + _lifetime()
            if job.status == "closed" and job.expires_at > now:
                job.status = "open"
            return job

        return ActionPlan(cost=ACTION_COSTS["extend_job"], mutate=mutate, reference_id=job.id)

    # ---------- applications ----------

    def _plan_apply(self, user_id: str, payload: ApplicationCreate, target_id: Optional[str], now: datetime) -> ActionPlan:
        job = repo.get_job(self._session, payload.job_id)
        if job is None:
            raise NotFound("Job not found")
        if job.user_id == user_id:
            raise NotEligible("You cannot apply to your own job")
        if job.status != "open" or job.approval_status != "approved" or job.expires_at <= now:
            raise NotEligible("This job is not accepting applications")
        if repo.find_application(self._session, user_id, job.id) is not None:
            raise AlreadyApplied()

        application_id = gen_id()

        def mutate():
            application = Application(
                id=application_id,
                user_id=user_id,
                status="pending",
                created_at=now,
                **payload.model_dump(),
            )
            self._session.add(application)
            return application

        return ActionPlan(
            cost=ACTION_COSTS["apply"] + payload.coins_bid,
            mutate=mutate,
            reference_id=application_id,
            conflict=AlreadyApplied(),
        )

    def _plan_raise_bid(self, user_id: str, payload: BidIncrease, target_id: Optional[str], now: datetime) -> ActionPlan:
        application = repo.get_application(self._session, target_id) if target_id else None
        if application is None:
            raise NotFound("Application not found")
        if application.user_id != user_id:
            raise Forbidden("You can only bid on your own applications")

        def mutate():
            application.coins_bid = (application.coins_bid or 0) + payload.additional_coins
            return application

        return ActionPlan(cost=payload.additional_coins, mutate=mutate, reference_id=application.id)

    # ---------- endorsements ----------

    def _plan_endorse_skill(self, user_id: str, payload: EndorsementCreate, target_id: Optional[str], now: datetime) -> ActionPlan:
        job = repo.get_job(self._session, payload.job_id)
        if job is None:
            raise NotFound("Job not found")
        if repo.has_endorsed(self._session, user_id, payload.endorsee_id, job.id):
            raise AlreadyEndorsed("You have already endorsed this freelancer for this job")
        if job.user_id != user_id or not repo.has_accepted_application(self._session, payload.endorsee_id, job.id):
            raise NotEligible("You can only endorse freelancers who have worked on your jobs")

        endorsement_id = gen_id()

        def mutate():
            endorsement = SkillEndorsement(id=endorsement_id, endorser_id=user_id, created_at=now, **payload.model_dump())
            self._session.add(endorsement)
            return endorsement

        return ActionPlan(
            cost=ACTION_COSTS["endorse_skill"],
            mutate=mutate,
            reference_id=endorsement_id,
            conflict=AlreadyEndorsed("You have already endorsed this freelancer for this job"),
        )

    # ---------- services ----------

    def _plan_post_service(self, user_id: str, payload: ServiceCreate, target_id: Optional[str], now: datetime) -> ActionPlan:
        service_id = gen_id()

        def mutate():
            service = Service(
                id=service_id,
                user_id=user_id,
                status="active",
                approval_status="pending",
                expires_at=now + _lifetime(),
                created_at=now,
                **payload.model_dump(),
            )
            self._session.add(service)
            return service

        return ActionPlan(cost=ACTION_COSTS["post_service"], mutate=mutate, reference_id=service_id)

    def _plan_extend_service(self, user_id: str, payload, target_id: Optional[str], now: datetime) -> ActionPlan:
        service = repo.get_service(self._session, target_id) if target_id else None
        if service is None:
            raise NotFound("Service not found")
        if service.user_id != user_id:
            raise Forbidden("Only the service owner can extend this service")

        def mutate():
            service.expires_at = service.expires_at + _lifetime()
            return service

        return ActionPlan(cost=ACTION_COSTS["extend_service"], mutate=mutate, reference_id=service.id)

    def _plan_service_request(self, user_id: str, payload: ServiceRequestCreate, target_id: Optional[str], now: datetime) -> ActionPlan:
        service = repo.get_service(self._session, target_id) if target_id else None
        if service is None:
            raise NotFound("Service not found")
        if service.user_id == user_id:
            raise NotEligible("You cannot request your own service")
        if service.status != "active" or service.approval_status != "approved" or service.expires_at <= now:
            raise NotEligible("This service is not accepting requests")

        request_id = gen_id()

        def mutate():
            request = ServiceRequest(
                id=request_id,
                service_id=service.id,
                user_id=user_id,
                status="pending",
                created_at=now,
                **payload.model_dump(),
            )
            self._session.add(request)
            return request

        return ActionPlan(
            cost=ACTION_COSTS["service_request"] + payload.coins_bid,
            mutate=mutate,
            reference_id=request_id,
        )

    def _plan_accept_service_request(self, user_id: str, payload, target_id: Optional[str], now: datetime) -> ActionPlan:
        request = repo.get_service_request(self._session, target_id) if target_id else None
        if request is None:
            raise NotFound("Service request not found")
        service = repo.get_service(self._session, request.service_id)
        if service is None:
            raise NotFound("Service not found")
        if service.user_id != user_id:
            raise Forbidden("Only the service owner can accept requests")
        if request.status != "pending":
            raise InvalidState("Only pending requests can be accepted")

        def mutate():
            request.status = "accepted"
            request.accepted_at = now
            return request

        return ActionPlan(cost=ACTION_COSTS["accept_service_request"], mutate=mutate, reference_id=request.id)
