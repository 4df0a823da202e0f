# jigz/services/reviews.py
import logging

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from jigz.db.models import Review
from jigz.models.marketplace import RatingSummary, ReviewCreate
from jigz.repositories import marketplace as repo
from jigz.services.errors import AlreadyReviewed, NotEligible, NotFound

logger = logging.getLogger(__name__)


def overall_rating(payload: ReviewCreate) -> int:
    """Client reviews average the three sub-ratings; worker reviews give one."""
    if payload.review_type == "client_to_worker":
        subs = (payload.quality_of_work_rating, payload.communication_rating, payload.timeliness_rating)
        # round half up: 4.5 -> 5
        return int(sum(subs) / len(subs) + 0.5)
    return int(payload.rating)


def _check_eligible(db: Session, reviewer_id: str, payload: ReviewCreate) -> None:
    job = repo.get_job(db, payload.job_id)
    if job is None:
        raise NotFound("Job not found")
    if reviewer_id == payload.reviewee_id:
        raise NotEligible("You cannot review yourself")

    if payload.review_type == "client_to_worker":
        # job owner rates the freelancer whose work was marked completed
        ok = job.user_id == reviewer_id and repo.has_accepted_application(
            db, payload.reviewee_id, job.id, completed_only=True
        )
    else:
        # freelancer rates the client once the work is completed
        ok = job.user_id == payload.reviewee_id and repo.has_accepted_application(
            db, reviewer_id, job.id, completed_only=True
        )
    if not ok:
        raise NotEligible("You can only review users you completed this job with")


def create_review(db: Session, reviewer_id: str, payload: ReviewCreate) -> Review:
    _check_eligible(db, reviewer_id, payload)
    if repo.has_reviewed(db, reviewer_id, payload.reviewee_id, payload.job_id):
        raise AlreadyReviewed("You have already reviewed this user for this job")

    review = Review(
        job_id=payload.job_id,
        reviewer_id=reviewer_id,
        reviewee_id=payload.reviewee_id,
        rating=overall_rating(payload),
        comment=payload.comment,
        review_type=payload.review_type,
        quality_of_work_rating=payload.quality_of_work_rating,
        communication_rating=payload.communication_rating,
        timeliness_rating=payload.timeliness_rating,
    )
    db.add(review)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise AlreadyReviewed("You have already reviewed this user for this job")
    logger.info("Review %s job=%s %s -> %s rating=%s", review.review_type, review.job_id, reviewer_id, review.reviewee_id, review.rating)
    return review


def user_rating_summary(db: Session, user_id: str) -> RatingSummary:
    average, total = repo.rating_summary(db, user_id)
    return RatingSummary(user_id=user_id, average_rating=round(average, 2), total_reviews=total)
