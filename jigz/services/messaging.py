# jigz/services/messaging.py
"""Two-party conversations between a job poster and an applicant, or a
service provider and a requester.

A conversation hangs off exactly one application or one service request,
and only its two participants may read or write it.
"""
import logging
from datetime import datetime
from typing import List, Optional, Tuple

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from jigz.db.models import Conversation, Message, utcnow
from jigz.repositories import marketplace as repo
from jigz.services.errors import Forbidden, NotFound

logger = logging.getLogger(__name__)


def _require_participant(conversation: Conversation, user_id: str) -> None:
    if user_id not in conversation.participants():
        raise Forbidden("You are not part of this conversation")


def get_conversation(db: Session, user_id: str, conversation_id: str) -> Conversation:
    conversation = repo.get_conversation(db, conversation_id)
    if conversation is None:
        raise NotFound("Conversation not found")
    _require_participant(conversation, user_id)
    return conversation


def _application_thread(db: Session, application_id: str) -> Tuple[Optional[Conversation], dict]:
    application = repo.get_application(db, application_id)
    if application is None:
        raise NotFound("Application not found")
    job = repo.get_job(db, application.job_id)
    if job is None:
        raise NotFound("Job not found")
    existing = repo.find_conversation_for_application(db, application.id)
    fields = dict(job_id=job.id, application_id=application.id, owner_id=job.user_id, counterpart_id=application.user_id)
    return existing, fields


def _service_request_thread(db: Session, request_id: str) -> Tuple[Optional[Conversation], dict]:
    request = repo.get_service_request(db, request_id)
    if request is None:
        raise NotFound("Service request not found")
    service = repo.get_service(db, request.service_id)
    if service is None:
        raise NotFound("Service not found")
    existing = repo.find_conversation_for_service_request(db, request.id)
    fields = dict(service_id=service.id, service_request_id=request.id, owner_id=service.user_id, counterpart_id=request.user_id)
    return existing, fields


def start_conversation(
    db: Session,
    user_id: str,
    application_id: Optional[str] = None,
    service_request_id: Optional[str] = None,
    now: Optional[datetime] = None,
) -> Tuple[Conversation, bool]:
    """Open the thread for an application or service request.

    Returns `(conversation, created)`; an existing thread is returned as is.
    """
    if application_id:
        existing, fields = _application_thread(db, application_id)
    else:
        existing, fields = _service_request_thread(db, service_request_id)
    if user_id not in (fields["owner_id"], fields["counterpart_id"]):
        raise Forbidden("You are not part of this conversation")
    if existing is not None:
        return existing, False

    now = now or utcnow()
    conversation = Conversation(last_message_at=now, created_at=now, **fields)
    db.add(conversation)
    try:
        db.commit()
    except IntegrityError:
        # the other participant opened it first
        db.rollback()
        if application_id:
            existing = repo.find_conversation_for_application(db, application_id)
        else:
            existing = repo.find_conversation_for_service_request(db, service_request_id)
        if existing is None:
            raise
        return existing, False
    logger.info("Conversation %s opened by %s", conversation.id, user_id)
    return conversation, True


def conversation_for_application(db: Session, user_id: str, application_id: str) -> Conversation:
    conversation = repo.find_conversation_for_application(db, application_id)
    if conversation is None:
        raise NotFound("Conversation not found")
    _require_participant(conversation, user_id)
    return conversation


def list_conversations(db: Session, user_id: str) -> List[Conversation]:
    return repo.list_conversations_for_user(db, user_id)


def mark_read(db: Session, user_id: str, conversation_id: str) -> int:
    """Mark the other participant's messages as read. Returns how many changed."""
    get_conversation(db, user_id, conversation_id)
    result = db.execute(
        update(Message)
        .where(
            Message.conversation_id == conversation_id,
            Message.sender_id != user_id,
            Message.is_read.is_(False),
        )
        .values(is_read=True)
        .execution_options(synchronize_session=False)
    )
    db.commit()
    return result.rowcount or 0


def read_messages(db: Session, user_id: str, conversation_id: str) -> List[Message]:
    """The thread oldest first; reading it marks incoming messages read."""
    mark_read(db, user_id, conversation_id)
    db.expire_all()
    return repo.list_messages(db, conversation_id)


def send_message(db: Session, user_id: str, conversation_id: str, content: str, now: Optional[datetime] = None) -> Message:
    conversation = get_conversation(db, user_id, conversation_id)
    now = now or utcnow()
    message = Message(conversation_id=conversation.id, sender_id=user_id, content=content, created_at=now)
    db.add(message)
    conversation.last_message_at = now
    db.commit()
    logger.debug("Message %s in conversation %s from %s", message.id, conversation.id, user_id)
    return message


def unread_count(db: Session, user_id: str) -> int:
    return repo.count_unread(db, user_id)
