# tests/test_services.py
from datetime import timedelta

import pytest

from jigz.db.models import Job, Review, ServiceRequest, utcnow
from jigz.repositories import marketplace as repo
from jigz.services import moderation
from jigz.services.errors import AlreadyReported, Forbidden, InvalidState, NotEligible, NotFound


def _review(db, job, reviewer, reviewee, rating):
    db.add(Review(job_id=job.id, reviewer_id=reviewer.id, reviewee_id=reviewee.id, rating=rating, review_type="client_to_worker"))
    db.commit()


def _request(db, service, client, status="pending"):
    request = ServiceRequest(service_id=service.id, user_id=client.id, message="Can you come Friday?", budget=25, status=status)
    db.add(request)
    db.commit()
    return request


def test_browse_lists_visible_services_best_rated_first(db, make_user, make_job, make_service):
    now = utcnow()
    good, ok, unrated = make_user(), make_user(), make_user()
    client = make_user()
    job = make_job(client)
    _review(db, job, client, good, 5)
    _review(db, job, client, ok, 3)

    newest_unrated = make_service(unrated, created_at=now)
    rated_ok = make_service(ok, created_at=now - timedelta(days=2))
    rated_good = make_service(good, created_at=now - timedelta(days=3))
    make_service(good, approval_status="pending")
    make_service(good, status="paused")
    make_service(good, expires_at=now - timedelta(minutes=1))

    listed = repo.list_services(db, now)

    assert [s.id for s in listed] == [rated_good.id, rated_ok.id, newest_unrated.id]


def test_browse_filters(db, make_user, make_service):
    owner = make_user()
    garden = make_service(owner, title="Garden care", category="Gardening", location="Kisumu West", price_from=15)
    make_service(owner, title="Deep clean", category="Cleaning", location="Nairobi", price_from=40)

    now = utcnow()
    assert [s.id for s in repo.list_services(db, now, query="GARDEN")] == [garden.id]
    assert [s.id for s in repo.list_services(db, now, category="Gardening")] == [garden.id]
    assert [s.id for s in repo.list_services(db, now, location="kisumu")] == [garden.id]
    assert [s.id for s in repo.list_services(db, now, max_price=20)] == [garden.id]
    assert len(repo.list_services(db, now, min_price=15)) == 2
    assert repo.list_services(db, now, min_price=41) == []


def test_dismiss_pending_request(db, make_user, make_service):
    owner, client = make_user(), make_user()
    request = _request(db, make_service(owner), client)

    with pytest.raises(Forbidden):
        moderation.dismiss_service_request(db, client.id, request.id)

    dismissed = moderation.dismiss_service_request(db, owner.id, request.id)
    assert dismissed.status == "rejected"

    with pytest.raises(InvalidState):
        moderation.dismiss_service_request(db, owner.id, request.id)


def test_complete_only_accepted_requests(db, make_user, make_service):
    owner, client = make_user(), make_user()
    service = make_service(owner)
    pending = _request(db, service, client)
    accepted = _request(db, service, make_user(), status="accepted")
    now = utcnow()

    with pytest.raises(InvalidState):
        moderation.complete_service_request(db, owner.id, pending.id)

    done = moderation.complete_service_request(db, owner.id, accepted.id, now=now)
    assert done.status == "completed"
    assert done.completed_at == now

    with pytest.raises(InvalidState):
        moderation.complete_service_request(db, owner.id, accepted.id)
    with pytest.raises(NotFound):
        moderation.complete_service_request(db, owner.id, "missing")


def test_owner_and_requester_lists(db, make_user, make_service):
    owner, client = make_user(), make_user()
    service = make_service(owner)
    low = _request(db, service, client)
    high = ServiceRequest(service_id=service.id, user_id=make_user().id, message="Urgent", budget=50, coins_bid=3)
    db.add(high)
    db.commit()

    assert [r.id for r in repo.list_requests_for_service(db, service.id)] == [high.id, low.id]
    assert [s.id for s in repo.list_services_for_user(db, owner.id)] == [service.id]
    assert [r.id for r in repo.list_service_requests_for_user(db, client.id)] == [low.id]


def test_report_once_per_job(db, make_user, make_job):
    owner, reporter = make_user(), make_user()
    job = make_job(owner)

    report = moderation.create_report(db, reporter.id, job.id, "spam", "Same ad posted ten times")
    assert report.status == "pending"
    assert repo.has_reported(db, reporter.id, job.id)

    with pytest.raises(AlreadyReported):
        moderation.create_report(db, reporter.id, job.id, "fake", "again")
    with pytest.raises(NotEligible):
        moderation.create_report(db, owner.id, job.id, "spam", "mine")
    with pytest.raises(NotFound):
        moderation.create_report(db, reporter.id, "missing", "spam", "gone")


def test_upheld_report_takes_job_down(db, make_user, make_job):
    admin = make_user(role="admin")
    job = make_job(make_user())
    report = moderation.create_report(db, make_user().id, job.id, "unsafe", "Asks for cash upfront")

    with pytest.raises(Forbidden):
        moderation.review_report(db, make_user(role="moderator"), report.id, "resolved")

    reviewed = moderation.review_report(db, admin, report.id, "resolved", admin_notes="Confirmed scam")

    assert reviewed.status == "resolved"
    assert reviewed.reviewed_by == admin.id
    assert reviewed.admin_notes == "Confirmed scam"
    db.expire_all()
    stored = db.get(Job, job.id)
    assert stored.status == "closed"
    assert stored.approval_status == "rejected"


def test_dismissed_report_leaves_job(db, make_user, make_job):
    admin = make_user(role="admin")
    job = make_job(make_user())
    report = moderation.create_report(db, make_user().id, job.id, "other", "Not sure")

    moderation.review_report(db, admin, report.id, "dismissed")

    db.expire_all()
    assert db.get(Job, job.id).approval_status == "approved"
    assert [r.status for r in repo.list_reports(db, status="dismissed")] == ["dismissed"]
    assert repo.list_reports(db, status="pending") == []
