# jigz/api/v1/reviews.py
from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from jigz.api.v1.auth import get_current_user
from jigz.db.models import User
from jigz.db.session import get_db
from jigz.models.marketplace import EndorsementCreate, EndorsementOut, RatingSummary, ReviewCreate, ReviewOut
from jigz.repositories import marketplace as repo
from jigz.services import reviews
from jigz.services.gateway import CoinGateway

router = APIRouter()


@router.post("/reviews", status_code=201, response_model=ReviewOut)
def create_review(payload: ReviewCreate, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    return reviews.create_review(db, user.id, payload)


@router.get("/reviews/user/{user_id}", response_model=List[ReviewOut])
def user_reviews(user_id: str, db: Session = Depends(get_db)):
    return repo.list_reviews_for_user(db, user_id)


@router.get("/reviews/user/{user_id}/summary", response_model=RatingSummary)
def user_rating(user_id: str, db: Session = Depends(get_db)):
    return reviews.user_rating_summary(db, user_id)


# Endorsements are paid (5 coins) and go through the gateway
@router.post("/skill-endorsements", status_code=201, response_model=EndorsementOut)
def endorse(payload: EndorsementCreate, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    return CoinGateway(db).perform(user.id, "endorse_skill", payload)


@router.get("/users/{user_id}/skill-endorsements", response_model=List[EndorsementOut])
def user_endorsements(user_id: str, db: Session = Depends(get_db)):
    return repo.list_endorsements_for_user(db, user_id)
