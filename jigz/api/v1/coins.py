# jigz/api/v1/coins.py
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from jigz.api.v1.auth import get_current_user
from jigz.db.models import User
from jigz.db.session import get_db
from jigz.models.marketplace import CoinBalance
from jigz.services.ledger import CoinLedger, days_until_reset

router = APIRouter()


def _balance(db: Session, user: User) -> CoinBalance:
    coins = CoinLedger(db).get_balance(user.id)
    db.commit()
    db.refresh(user)
    return CoinBalance(coins=coins, last_reset=user.last_coin_reset, days_until_reset=days_until_reset(user.last_coin_reset))


@router.get("/user/coins", response_model=CoinBalance)
def get_coins(user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    return _balance(db, user)


@router.post("/user/coins/check-reset", response_model=CoinBalance)
def check_reset(user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    return _balance(db, user)
