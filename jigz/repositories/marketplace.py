# jigz/repositories/marketplace.py
from datetime import datetime
from typing import List, Optional

from sqlalchemy import func, or_, select
from sqlalchemy.orm import Session

from jigz.db.models import (
    Application,
    Conversation,
    Job,
    JobReport,
    Message,
    Review,
    Service,
    ServiceRequest,
    SkillEndorsement,
    User,
)


def get_user(db: Session, user_id: str) -> Optional[User]:
    return db.get(User, user_id)

def get_user_by_email(db: Session, email: str) -> Optional[User]:
    return db.execute(select(User).where(User.email == email)).scalar_one_or_none()

def get_user_by_username(db: Session, username: str) -> Optional[User]:
    return db.execute(select(User).where(User.username == username)).scalar_one_or_none()

def get_job(db: Session, job_id: str) -> Optional[Job]:
    return db.get(Job, job_id)

def list_jobs_for_user(db: Session, user_id: str) -> List[Job]:
    return list(db.execute(select(Job).where(Job.user_id == user_id).order_by(Job.created_at.desc())).scalars())

def count_applications(db: Session, job_id: str) -> int:
    return db.scalar(select(func.count(Application.id)).where(Application.job_id == job_id)) or 0

def get_application(db: Session, application_id: str) -> Optional[Application]:
    return db.get(Application, application_id)

def find_application(db: Session, user_id: str, job_id: str) -> Optional[Application]:
    return db.execute(
        select(Application).where(Application.user_id == user_id, Application.job_id == job_id)
    ).scalar_one_or_none()

def list_applications_for_job(db: Session, job_id: str) -> List[Application]:
    # (created_at, id) gives fully tied bids a fixed input order for ranking
    return list(
        db.execute(
            select(Application).where(Application.job_id == job_id).order_by(Application.created_at.asc(), Application.id.asc())
        ).scalars()
    )

def list_applications_for_user(db: Session, user_id: str) -> List[Application]:
    return list(
        db.execute(select(Application).where(Application.user_id == user_id).order_by(Application.created_at.desc())).scalars()
    )

def has_accepted_application(db: Session, user_id: str, job_id: str, completed_only: bool = False) -> bool:
    stmt = select(func.count(Application.id)).where(
        Application.job_id == job_id,
        Application.user_id == user_id,
        Application.status == "accepted",
    )
    if completed_only:
        stmt = stmt.where(Application.is_completed.is_(True))
    return (db.scalar(stmt) or 0) > 0

def get_service(db: Session, service_id: str) -> Optional[Service]:
    return db.get(Service, service_id)

def get_service_request(db: Session, request_id: str) -> Optional[ServiceRequest]:
    return db.get(ServiceRequest, request_id)

def list_services(
    db: Session,
    now: datetime,
    query: Optional[str] = None,
    category: Optional[str] = None,
    location: Optional[str] = None,
    experience_level: Optional[str] = None,
    min_price: Optional[int] = None,
    max_price: Optional[int] = None,
) -> List[Service]:
    """Approved, active, unexpired services; best-rated providers first."""
    ratings = (
        select(Review.reviewee_id.label("user_id"), func.avg(Review.rating).label("avg_rating"))
        .group_by(Review.reviewee_id)
        .subquery()
    )
    stmt = (
        select(Service)
        .outerjoin(ratings, ratings.c.user_id == Service.user_id)
        .where(Service.approval_status == "approved", Service.status == "active", Service.expires_at > now)
    )
    if query:
        pattern = f"%{query.lower()}%"
        stmt = stmt.where(or_(func.lower(Service.title).like(pattern), func.lower(Service.description).like(pattern)))
    if category:
        stmt = stmt.where(Service.category == category)
    if location:
        stmt = stmt.where(func.lower(Service.location).like(f"%{location.lower()}%"))
    if experience_level:
        stmt = stmt.where(Service.experience_level == experience_level)
    if min_price is not None:
        stmt = stmt.where(Service.price_from >= min_price)
    if max_price is not None:
        stmt = stmt.where(Service.price_from <= max_price)
    stmt = stmt.order_by(func.coalesce(ratings.c.avg_rating, 0).desc(), Service.created_at.desc(), Service.id.asc())
    return list(db.execute(stmt).scalars())

def list_services_for_user(db: Session, user_id: str) -> List[Service]:
    return list(db.execute(select(Service).where(Service.user_id == user_id).order_by(Service.created_at.desc())).scalars())

def list_requests_for_service(db: Session, service_id: str) -> List[ServiceRequest]:
    return list(
        db.execute(
            select(ServiceRequest)
            .where(ServiceRequest.service_id == service_id)
            .order_by(ServiceRequest.coins_bid.desc(), ServiceRequest.created_at.asc())
        ).scalars()
    )

def list_service_requests_for_user(db: Session, user_id: str) -> List[ServiceRequest]:
    return list(
        db.execute(
            select(ServiceRequest).where(ServiceRequest.user_id == user_id).order_by(ServiceRequest.created_at.desc())
        ).scalars()
    )

def has_endorsed(db: Session, endorser_id: str, endorsee_id: str, job_id: str) -> bool:
    stmt = select(func.count(SkillEndorsement.id)).where(
        SkillEndorsement.endorser_id == endorser_id,
        SkillEndorsement.endorsee_id == endorsee_id,
        SkillEndorsement.job_id == job_id,
    )
    return (db.scalar(stmt) or 0) > 0

def list_endorsements_for_user(db: Session, user_id: str) -> List[SkillEndorsement]:
    return list(
        db.execute(
            select(SkillEndorsement).where(SkillEndorsement.endorsee_id == user_id).order_by(SkillEndorsement.created_at.desc())
        ).scalars()
    )

def has_reviewed(db: Session, reviewer_id: str, reviewee_id: str, job_id: str) -> bool:
    stmt = select(func.count(Review.id)).where(
        Review.reviewer_id == reviewer_id,
        Review.reviewee_id == reviewee_id,
        Review.job_id == job_id,
    )
    return (db.scalar(stmt) or 0) > 0

def list_reviews_for_user(db: Session, user_id: str) -> List[Review]:
    return list(db.execute(select(Review).where(Review.reviewee_id == user_id).order_by(Review.created_at.desc())).scalars())

def rating_summary(db: Session, user_id: str):
    avg, total = db.execute(
        select(func.avg(Review.rating), func.count(Review.id)).where(Review.reviewee_id == user_id)
    ).one()
    return float(avg or 0.0), int(total or 0)

def get_report(db: Session, report_id: str) -> Optional[JobReport]:
    return db.get(JobReport, report_id)

def has_reported(db: Session, reporter_id: str, job_id: str) -> bool:
    stmt = select(func.count(JobReport.id)).where(JobReport.reporter_id == reporter_id, JobReport.job_id == job_id)
    return (db.scalar(stmt) or 0) > 0

def list_reports_for_job(db: Session, job_id: str) -> List[JobReport]:
    return list(db.execute(select(JobReport).where(JobReport.job_id == job_id).order_by(JobReport.created_at.desc())).scalars())

def list_reports(db: Session, status: Optional[str] = None) -> List[JobReport]:
    stmt = select(JobReport).order_by(JobReport.created_at.desc())
    if status:
        stmt = stmt.where(JobReport.status == status)
    return list(db.execute(stmt).scalars())

def get_conversation(db: Session, conversation_id: str) -> Optional[Conversation]:
    return db.get(Conversation, conversation_id)

def find_conversation_for_application(db: Session, application_id: str) -> Optional[Conversation]:
    return db.execute(select(Conversation).where(Conversation.application_id == application_id)).scalar_one_or_none()

def find_conversation_for_service_request(db: Session, request_id: str) -> Optional[Conversation]:
    return db.execute(select(Conversation).where(Conversation.service_request_id == request_id)).scalar_one_or_none()

def list_conversations_for_user(db: Session, user_id: str) -> List[Conversation]:
    return list(
        db.execute(
            select(Conversation)
            .where(or_(Conversation.owner_id == user_id, Conversation.counterpart_id == user_id))
            .order_by(Conversation.last_message_at.desc())
        ).scalars()
    )

def list_messages(db: Session, conversation_id: str) -> List[Message]:
    return list(
        db.execute(
            select(Message).where(Message.conversation_id == conversation_id).order_by(Message.created_at.asc(), Message.id.asc())
        ).scalars()
    )

def count_unread(db: Session, user_id: str, conversation_id: Optional[str] = None) -> int:
    """Unread messages addressed to `user_id`, optionally within one conversation."""
    stmt = (
        select(func.count(Message.id))
        .join(Conversation, Conversation.id == Message.conversation_id)
        .where(
            or_(Conversation.owner_id == user_id, Conversation.counterpart_id == user_id),
            Message.sender_id != user_id,
            Message.is_read.is_(False),
        )
    )
    if conversation_id:
        stmt = stmt.where(Message.conversation_id == conversation_id)
    return db.scalar(stmt) or 0
