# jigz/api/v1/applications.py
from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from jigz.api.v1.auth import get_current_user
from jigz.db.models import User
from jigz.db.session import get_db
from jigz.models.marketplace import ApplicationCreate, ApplicationOut, ApplicationStatusUpdate, BidIncrease
from jigz.repositories import marketplace as repo
from jigz.services import moderation
from jigz.services.gateway import CoinGateway

router = APIRouter()


@router.post("/applications", status_code=201, response_model=ApplicationOut)
def apply(payload: ApplicationCreate, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    return CoinGateway(db).perform(user.id, "apply", payload)


@router.post("/applications/{application_id}/bid", response_model=ApplicationOut)
def raise_bid(application_id: str, payload: BidIncrease, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    return CoinGateway(db).perform(user.id, "raise_bid", payload, target_id=application_id)


@router.patch("/applications/{application_id}", response_model=ApplicationOut)
def update_status(application_id: str, payload: ApplicationStatusUpdate, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    return moderation.set_application_status(db, user.id, application_id, payload.status)


@router.patch("/applications/{application_id}/complete", response_model=ApplicationOut)
def complete(application_id: str, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    return moderation.mark_application_completed(db, user.id, application_id)


@router.get("/user/applications", response_model=List[ApplicationOut])
def my_applications(user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    return repo.list_applications_for_user(db, user.id)
