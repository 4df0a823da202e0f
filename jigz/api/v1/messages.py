# jigz/api/v1/messages.py
from typing import List

from fastapi import APIRouter, Depends, Response
from sqlalchemy.orm import Session

from jigz.api.v1.auth import get_current_user
from jigz.db.models import User
from jigz.db.session import get_db
from jigz.models.marketplace import ConversationCreate, ConversationOut, MessageCreate, MessageOut
from jigz.services import messaging

router = APIRouter()


@router.get("/conversations", response_model=List[ConversationOut])
def conversations(user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    return messaging.list_conversations(db, user.id)


@router.post("/conversations", status_code=201, response_model=ConversationOut)
def open_conversation(
    payload: ConversationCreate,
    response: Response,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    conversation, created = messaging.start_conversation(
        db, user.id, application_id=payload.application_id, service_request_id=payload.service_request_id
    )
    if not created:
        response.status_code = 200
    return conversation


@router.get("/conversations/application/{application_id}", response_model=ConversationOut)
def conversation_for_application(application_id: str, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    return messaging.conversation_for_application(db, user.id, application_id)


@router.get("/conversations/{conversation_id}", response_model=ConversationOut)
def conversation(conversation_id: str, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    return messaging.get_conversation(db, user.id, conversation_id)


@router.get("/conversations/{conversation_id}/messages", response_model=List[MessageOut])
def messages(conversation_id: str, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    return messaging.read_messages(db, user.id, conversation_id)


@router.post("/conversations/{conversation_id}/messages", status_code=201, response_model=MessageOut)
def send(conversation_id: str, payload: MessageCreate, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    return messaging.send_message(db, user.id, conversation_id, payload.content)


@router.patch("/conversations/{conversation_id}/mark-read")
def mark_read(conversation_id: str, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    return {"marked": messaging.mark_read(db, user.id, conversation_id)}


@router.get("/user/unread-messages")
def unread(user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    return {"count": messaging.unread_count(db, user.id)}
