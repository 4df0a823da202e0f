# tests/test_moderation.py
from datetime import timedelta

import pytest

from jigz.db.models import Job, utcnow
from jigz.models.marketplace import ReviewCreate
from jigz.services import moderation, reviews
from jigz.services.errors import AlreadyReviewed, Forbidden, InvalidState, NotEligible


def test_only_moderators_approve(db, make_user, make_job):
    job = make_job(make_user(), approval_status="pending")

    with pytest.raises(Forbidden):
        moderation.set_job_approval(db, make_user(), job.id, approved=True)

    moderator = make_user(role="moderator")
    approved = moderation.set_job_approval(db, moderator, job.id, approved=True)
    assert approved.approval_status == "approved"
    assert approved.approved_by == moderator.id

    rejected = moderation.set_job_approval(db, moderator, job.id, approved=False)
    assert rejected.approval_status == "rejected"
    assert rejected.approved_at is None


def test_close_expired_jobs(db, make_user, make_job):
    owner = make_user()
    now = utcnow()
    stale = make_job(owner, expires_at=now - timedelta(hours=1))
    fresh = make_job(owner)
    busy = make_job(owner, status="in_progress", expires_at=now - timedelta(hours=1))

    assert moderation.close_expired_jobs(db, now=now) == 1
    assert moderation.close_expired_jobs(db, now=now) == 0

    db.expire_all()
    assert db.get(Job, stale.id).status == "closed"
    assert db.get(Job, fresh.id).status == "open"
    assert db.get(Job, busy.id).status == "in_progress"


def test_accept_and_complete(db, make_user, make_job, make_application):
    owner, worker = make_user(), make_user()
    job = make_job(owner)
    application = make_application(job, worker)

    with pytest.raises(InvalidState):
        moderation.mark_application_completed(db, owner.id, application.id)
    with pytest.raises(Forbidden):
        moderation.set_application_status(db, worker.id, application.id, "accepted")

    moderation.set_application_status(db, owner.id, application.id, "accepted")
    assert db.get(Job, job.id).status == "in_progress"

    done = moderation.mark_application_completed(db, owner.id, application.id)
    assert done.is_completed is True
    assert done.completed_at is not None
    assert db.get(Job, job.id).status == "completed"

    with pytest.raises(InvalidState):
        moderation.set_application_status(db, owner.id, application.id, "rejected")


def _worker_review(job, client, rating=5):
    return ReviewCreate(job_id=job.id, reviewee_id=client.id, review_type="worker_to_client", rating=rating)


def test_review_requires_completed_work(db, make_user, make_job, make_application):
    client, worker, stranger = make_user(), make_user(), make_user()
    job = make_job(client)
    make_application(job, worker, status="accepted")

    with pytest.raises(NotEligible):
        reviews.create_review(db, worker.id, _worker_review(job, client))

    # the client cannot rate a worker whose application was never accepted
    make_application(job, stranger)
    with pytest.raises(NotEligible):
        reviews.create_review(
            db,
            client.id,
            ReviewCreate(
                job_id=job.id,
                reviewee_id=stranger.id,
                review_type="client_to_worker",
                quality_of_work_rating=5,
                communication_rating=5,
                timeliness_rating=5,
            ),
        )


def test_worker_reviews_client_once(db, make_user, make_job, make_application):
    client, worker = make_user(), make_user()
    job = make_job(client)
    make_application(job, worker, status="accepted", is_completed=True)

    review = reviews.create_review(db, worker.id, _worker_review(job, client, rating=4))
    assert review.rating == 4

    with pytest.raises(AlreadyReviewed):
        reviews.create_review(db, worker.id, _worker_review(job, client))

    summary = reviews.user_rating_summary(db, client.id)
    assert summary.total_reviews == 1
    assert summary.average_rating == 4.0


def test_overall_rating_is_rounded_mean():
    payload = ReviewCreate(
        job_id="j",
        reviewee_id="u",
        review_type="client_to_worker",
        quality_of_work_rating=5,
        communication_rating=4,
        timeliness_rating=5,
    )
    assert reviews.overall_rating(payload) == 5


def test_client_review_needs_detailed_ratings():
    with pytest.raises(ValueError):
        ReviewCreate(job_id="j", reviewee_id="u", review_type="client_to_worker", rating=5)
