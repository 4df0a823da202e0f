# jigz/db/models.py
import datetime
import uuid

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship

from .base import Base


def utcnow() -> datetime.datetime:
    """Naive UTC timestamp; every column in the schema stores naive UTC."""
    return datetime.datetime.now(datetime.timezone.utc).replace(tzinfo=None)


def gen_id() -> str:
    return str(uuid.uuid4())


class User(Base):
    __tablename__ = "users"
    __table_args__ = (CheckConstraint("coins >= 0", name="coins_non_negative"),)

    id = Column(String(36), primary_key=True, default=gen_id)
    username = Column(String(50), unique=True, index=True, nullable=False)
    email = Column(String(255), unique=True, index=True, nullable=False)
    name = Column(String(100), nullable=False)
    password_hash = Column(String(255), nullable=True)
    role = Column(String(20), nullable=False, default="user")  # user / moderator / admin
    is_active = Column(Boolean, nullable=False, default=True)
    coins = Column(Integer, nullable=False, default=20)
    last_coin_reset = Column(DateTime, nullable=False, default=utcnow)
    created_at = Column(DateTime, nullable=False, default=utcnow)

    def __repr__(self) -> str:
        return f"<User id={self.id} username={self.username} coins={self.coins}>"


class Job(Base):
    __tablename__ = "jobs"
    __table_args__ = (
        Index("jobs_status_approval_idx", "status", "approval_status"),
        Index("jobs_location_category_idx", "location", "category"),
        Index("jobs_budget_idx", "min_budget", "max_budget"),
    )

    id = Column(String(36), primary_key=True, default=gen_id)
    user_id = Column(String(36), ForeignKey("users.id"), nullable=False, index=True)
    title = Column(String(200), nullable=False, index=True)
    description = Column(Text, nullable=False)
    category = Column(String(100), nullable=False, index=True)
    location = Column(String(200), nullable=False, index=True)
    specific_area = Column(String(200), nullable=True)
    min_budget = Column(Integer, nullable=True)
    max_budget = Column(Integer, nullable=True)
    budget_type = Column(String(20), nullable=False, default="fixed")  # fixed / hourly
    currency = Column(String(3), nullable=False, default="USD")
    experience_level = Column(String(20), nullable=False, default="any", index=True)
    duration = Column(String(50), nullable=True)
    freelancers_needed = Column(Integer, nullable=False, default=1)
    status = Column(String(20), nullable=False, default="open", index=True)  # open / in_progress / completed / closed
    approval_status = Column(String(20), nullable=False, default="pending", index=True)  # pending / approved / rejected
    approved_by = Column(String(36), nullable=True)
    approved_at = Column(DateTime, nullable=True)
    expires_at = Column(DateTime, nullable=False, index=True)
    created_at = Column(DateTime, nullable=False, default=utcnow, index=True)

    applications = relationship("Application", back_populates="job", cascade="all, delete-orphan")

    def __repr__(self) -> str:
        return f"<Job id={self.id} status={self.status} approval={self.approval_status}>"


class Application(Base):
    __tablename__ = "applications"
    __table_args__ = (
        UniqueConstraint("job_id", "user_id", name="uq_applications_job_user"),
        CheckConstraint("coins_bid >= 0", name="coins_bid_non_negative"),
        Index("applications_job_id_coins_bid_idx", "job_id", "coins_bid"),
        Index("applications_job_id_created_at_idx", "job_id", "created_at"),
    )

    id = Column(String(36), primary_key=True, default=gen_id)
    job_id = Column(String(36), ForeignKey("jobs.id"), nullable=False)
    user_id = Column(String(36), ForeignKey("users.id"), nullable=False, index=True)
    bid_amount = Column(Integer, nullable=False)
    coins_bid = Column(Integer, nullable=False, default=0)
    message = Column(Text, nullable=False)
    experience = Column(Text, nullable=True)
    status = Column(String(20), nullable=False, default="pending")  # pending / accepted / rejected
    is_completed = Column(Boolean, nullable=False, default=False)
    completed_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)

    job = relationship("Job", back_populates="applications")
    user = relationship("User")


class Service(Base):
    __tablename__ = "services"
    __table_args__ = (
        Index("services_status_approval_idx", "status", "approval_status"),
        Index("services_price_idx", "price_from", "price_to"),
    )

    id = Column(String(36), primary_key=True, default=gen_id)
    user_id = Column(String(36), ForeignKey("users.id"), nullable=False, index=True)
    title = Column(String(100), nullable=False, index=True)
    description = Column(Text, nullable=False)
    category = Column(String(100), nullable=False, index=True)
    location = Column(String(200), nullable=False, index=True)
    price_from = Column(Integer, nullable=False)
    price_to = Column(Integer, nullable=True)
    price_type = Column(String(20), nullable=False, default="fixed")  # fixed / hourly / per_project
    currency = Column(String(3), nullable=False, default="USD")
    experience_level = Column(String(20), nullable=False, default="intermediate")
    available_slots = Column(Integer, nullable=False, default=5)
    status = Column(String(20), nullable=False, default="active")  # active / paused / inactive
    approval_status = Column(String(20), nullable=False, default="pending")
    approved_by = Column(String(36), nullable=True)
    approved_at = Column(DateTime, nullable=True)
    expires_at = Column(DateTime, nullable=False, index=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)

    requests = relationship("ServiceRequest", back_populates="service", cascade="all, delete-orphan")


class ServiceRequest(Base):
    __tablename__ = "service_requests"
    __table_args__ = (
        Index("service_requests_service_id_coins_bid_idx", "service_id", "coins_bid"),
    )

    id = Column(String(36), primary_key=True, default=gen_id)
    service_id = Column(String(36), ForeignKey("services.id"), nullable=False, index=True)
    user_id = Column(String(36), ForeignKey("users.id"), nullable=False, index=True)
    message = Column(Text, nullable=False)
    budget = Column(Integer, nullable=False)
    coins_bid = Column(Integer, nullable=False, default=0)
    timeline = Column(String(200), nullable=True)
    status = Column(String(20), nullable=False, default="pending")  # pending / accepted / rejected / completed
    accepted_at = Column(DateTime, nullable=True)
    completed_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)

    service = relationship("Service", back_populates="requests")


class Review(Base):
    __tablename__ = "reviews"
    __table_args__ = (
        UniqueConstraint("job_id", "reviewer_id", "reviewee_id", name="uq_reviews_job_reviewer_reviewee"),
    )

    id = Column(String(36), primary_key=True, default=gen_id)
    job_id = Column(String(36), ForeignKey("jobs.id"), nullable=False, index=True)
    reviewer_id = Column(String(36), ForeignKey("users.id"), nullable=False)
    reviewee_id = Column(String(36), ForeignKey("users.id"), nullable=False, index=True)
    rating = Column(Integer, nullable=False)
    comment = Column(Text, nullable=True)
    review_type = Column(String(20), nullable=False)  # client_to_worker / worker_to_client
    quality_of_work_rating = Column(Integer, nullable=True)
    communication_rating = Column(Integer, nullable=True)
    timeliness_rating = Column(Integer, nullable=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)


class SkillEndorsement(Base):
    __tablename__ = "skill_endorsements"
    __table_args__ = (
        UniqueConstraint("endorser_id", "endorsee_id", "job_id", name="uq_skill_endorsements_endorser_endorsee_job"),
    )

    id = Column(String(36), primary_key=True, default=gen_id)
    endorser_id = Column(String(36), ForeignKey("users.id"), nullable=False, index=True)
    endorsee_id = Column(String(36), ForeignKey("users.id"), nullable=False, index=True)
    job_id = Column(String(36), ForeignKey("jobs.id"), nullable=False, index=True)
    skill = Column(String(100), nullable=False, index=True)
    message = Column(Text, nullable=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)


class CoinTransaction(Base):
    """Append-only audit trail of every balance change."""
    __tablename__ = "coin_transactions"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(String(36), ForeignKey("users.id"), nullable=False, index=True)
    delta = Column(Integer, nullable=False)
    reason = Column(String(50), nullable=False, index=True)
    reference_id = Column(String(36), nullable=True)
    balance_after = Column(Integer, nullable=False)
    created_at = Column(DateTime, nullable=False, default=utcnow)


class JobReport(Base):
    __tablename__ = "job_reports"
    __table_args__ = (
        UniqueConstraint("job_id", "reporter_id", name="uq_job_reports_job_reporter"),
    )

    id = Column(String(36), primary_key=True, default=gen_id)
    job_id = Column(String(36), ForeignKey("jobs.id"), nullable=False, index=True)
    reporter_id = Column(String(36), ForeignKey("users.id"), nullable=False, index=True)
    category = Column(String(20), nullable=False)  # spam / inappropriate / fake / discriminatory / unsafe / other
    reason = Column(Text, nullable=False)
    status = Column(String(20), nullable=False, default="pending", index=True)  # pending / reviewed / resolved / dismissed
    admin_notes = Column(Text, nullable=True)
    reviewed_by = Column(String(36), nullable=True)
    reviewed_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, nullable=False, default=utcnow, index=True)


class Conversation(Base):
    """Two-party thread tied to either a job application or a service request."""
    __tablename__ = "conversations"

    id = Column(String(36), primary_key=True, default=gen_id)
    job_id = Column(String(36), ForeignKey("jobs.id"), nullable=True)
    application_id = Column(String(36), ForeignKey("applications.id"), nullable=True, unique=True)
    service_id = Column(String(36), ForeignKey("services.id"), nullable=True)
    service_request_id = Column(String(36), ForeignKey("service_requests.id"), nullable=True, unique=True)
    # job poster or service provider
    owner_id = Column(String(36), ForeignKey("users.id"), nullable=False, index=True)
    # applicant or service requester
    counterpart_id = Column(String(36), ForeignKey("users.id"), nullable=False, index=True)
    last_message_at = Column(DateTime, nullable=False, default=utcnow)
    created_at = Column(DateTime, nullable=False, default=utcnow)

    messages = relationship("Message", back_populates="conversation", cascade="all, delete-orphan")

    def participants(self):
        return (self.owner_id, self.counterpart_id)


class Message(Base):
    __tablename__ = "messages"
    __table_args__ = (
        Index("messages_conversation_id_created_at_idx", "conversation_id", "created_at"),
    )

    id = Column(String(36), primary_key=True, default=gen_id)
    conversation_id = Column(String(36), ForeignKey("conversations.id"), nullable=False)
    sender_id = Column(String(36), ForeignKey("users.id"), nullable=False, index=True)
    content = Column(Text, nullable=False)
    is_read = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime, nullable=False, default=utcnow)

    conversation = relationship("Conversation", back_populates="messages")
