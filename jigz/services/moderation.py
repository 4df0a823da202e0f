# jigz/services/moderation.py
"""Moderator actions and job lifecycle transitions that cost no coins."""
import logging
from datetime import datetime
from typing import Optional

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from jigz.db.models import Application, Job, JobReport, Service, ServiceRequest, User, utcnow
from jigz.repositories import marketplace as repo
from jigz.services.errors import AlreadyReported, Forbidden, InvalidState, NotEligible, NotFound

logger = logging.getLogger(__name__)

MODERATOR_ROLES = ("moderator", "admin")


def require_role(user: User, roles=MODERATOR_ROLES) -> None:
    if user.role not in roles:
        raise Forbidden("Insufficient permissions")


def set_job_approval(db: Session, moderator: User, job_id: str, approved: bool) -> Job:
    require_role(moderator)
    job = repo.get_job(db, job_id)
    if job is None:
        raise NotFound("Job not found")
    job.approval_status = "approved" if approved else "rejected"
    job.approved_by = moderator.id if approved else None
    job.approved_at = utcnow() if approved else None
    db.commit()
    logger.info("Job %s %s by %s", job.id, job.approval_status, moderator.id)
    return job


def set_service_approval(db: Session, moderator: User, service_id: str, approved: bool) -> Service:
    require_role(moderator)
    service = repo.get_service(db, service_id)
    if service is None:
        raise NotFound("Service not found")
    service.approval_status = "approved" if approved else "rejected"
    service.approved_by = moderator.id if approved else None
    service.approved_at = utcnow() if approved else None
    db.commit()
    logger.info("Service %s %s by %s", service.id, service.approval_status, moderator.id)
    return service


def close_expired_jobs(db: Session, now: Optional[datetime] = None) -> int:
    """Flip open jobs past their expiry to `closed`.

    Search filters on expires_at itself, so this sweep only tidies the
    stored status; nothing depends on it having run.
    """
    now = now or utcnow()
    result = db.execute(
        update(Job).where(Job.status == "open", Job.expires_at <= now).values(status="closed")
    )
    db.commit()
    if result.rowcount:
        logger.info("Closed %s expired jobs", result.rowcount)
    return result.rowcount or 0


def set_application_status(db: Session, owner_id: str, application_id: str, status: str) -> Application:
    """Job owner accepts or rejects an application."""
    application = repo.get_application(db, application_id)
    if application is None:
        raise NotFound("Application not found")
    job = repo.get_job(db, application.job_id)
    if job is None or job.user_id != owner_id:
        raise Forbidden("Only the job poster can update applications")
    if application.is_completed:
        raise InvalidState("Completed applications cannot change status")
    application.status = status
    if status == "accepted" and job.status == "open":
        job.status = "in_progress"
    db.commit()
    return application


def mark_application_completed(db: Session, owner_id: str, application_id: str, now: Optional[datetime] = None) -> Application:
    application = repo.get_application(db, application_id)
    if application is None:
        raise NotFound("Application not found")
    job = repo.get_job(db, application.job_id)
    if job is None or job.user_id != owner_id:
        raise Forbidden("Only the job poster can mark applications as completed")
    if application.status != "accepted":
        raise InvalidState("Only accepted applications can be marked as completed")
    application.is_completed = True
    application.completed_at = now or utcnow()
    job.status = "completed"
    db.commit()
    return application


def _owned_service_request(db: Session, owner_id: str, request_id: str) -> ServiceRequest:
    request = repo.get_service_request(db, request_id)
    if request is None:
        raise NotFound("Service request not found")
    service = repo.get_service(db, request.service_id)
    if service is None or service.user_id != owner_id:
        raise Forbidden("Only the service owner can update requests")
    return request


def dismiss_service_request(db: Session, owner_id: str, request_id: str) -> ServiceRequest:
    request = _owned_service_request(db, owner_id, request_id)
    if request.status != "pending":
        raise InvalidState("Only pending requests can be dismissed")
    request.status = "rejected"
    db.commit()
    logger.info("Service request %s dismissed by %s", request.id, owner_id)
    return request


def complete_service_request(db: Session, owner_id: str, request_id: str, now: Optional[datetime] = None) -> ServiceRequest:
    request = _owned_service_request(db, owner_id, request_id)
    if request.status == "completed":
        raise InvalidState("Service request is already completed")
    if request.status != "accepted":
        raise InvalidState("Only accepted requests can be completed")
    request.status = "completed"
    request.completed_at = now or utcnow()
    db.commit()
    logger.info("Service request %s completed by %s", request.id, owner_id)
    return request


def create_report(db: Session, reporter_id: str, job_id: str, category: str, reason: str) -> JobReport:
    job = repo.get_job(db, job_id)
    if job is None:
        raise NotFound("Job not found")
    if job.user_id == reporter_id:
        raise NotEligible("You cannot report your own job")
    if repo.has_reported(db, reporter_id, job_id):
        raise AlreadyReported("You have already reported this job")

    report = JobReport(job_id=job_id, reporter_id=reporter_id, category=category, reason=reason)
    db.add(report)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise AlreadyReported("You have already reported this job")
    logger.info("Job %s reported by %s (%s)", job_id, reporter_id, category)
    return report


def review_report(
    db: Session,
    admin: User,
    report_id: str,
    status: str,
    admin_notes: Optional[str] = None,
    now: Optional[datetime] = None,
) -> JobReport:
    """Record the admin's verdict; an upheld report takes the job down."""
    require_role(admin, roles=("admin",))
    report = repo.get_report(db, report_id)
    if report is None:
        raise NotFound("Report not found")
    report.status = status
    report.admin_notes = admin_notes
    report.reviewed_by = admin.id
    report.reviewed_at = now or utcnow()
    if status in ("reviewed", "resolved"):
        job = repo.get_job(db, report.job_id)
        if job is not None:
            # kept for the audit trail; closed + rejected hides it everywhere
            job.status = "closed"
            job.approval_status = "rejected"
    db.commit()
    logger.info("Report %s marked %s by %s", report.id, status, admin.id)
    return report
