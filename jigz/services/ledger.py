# jigz/services/ledger.py
"""Coin ledger: per-user integer balances.

Every balance change is a single conditional UPDATE on the user row, so
two concurrent debits can never both pass the `coins >= amount` check on
a balance that only covers one of them. The ledger never commits: it
runs inside the caller's transaction, and a rollback there undoes the
balance change together with whatever the coins paid for.
"""
import logging
from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy import case, select, update
from sqlalchemy.orm import Session

from jigz.core.config import settings
from jigz.db.models import CoinTransaction, User, utcnow
from jigz.services.errors import InsufficientCoins, NotFound

logger = logging.getLogger(__name__)

# Fixed price list. "apply" is the base cost; the applicant's coinsBid is
# added on top, and "raise_bid" costs exactly the coins added.
ACTION_COSTS = {
    "post_job": 3,
    "apply": 1,
    "edit_job": 1,
    "extend_job": 2,
    "endorse_skill": 5,
    "post_service": 20,
    "extend_service": 7,
    "service_request": 1,
    # charged to the provider when they take on a request
    "accept_service_request": 2,
}


def baseline_for_role(role: Optional[str]) -> int:
    if role == "admin":
        return settings.COIN_BASELINE_ADMIN
    return settings.COIN_BASELINE_USER


def days_until_reset(last_reset: Optional[datetime], now: Optional[datetime] = None) -> int:
    if last_reset is None:
        return settings.COIN_RESET_DAYS
    now = now or utcnow()
    elapsed_days = (now - last_reset) // timedelta(days=1)
    return max(0, settings.COIN_RESET_DAYS - int(elapsed_days))


class CoinLedger:
    """Balance operations bound to one SQLAlchemy session.

    Usage:
        ledger = CoinLedger(db)
        ledger.debit(user_id, 3, reason="post_job")
        db.commit()
    """

    def __init__(self, session: Session):
        self._session = session

    def _load(self, user_id: str) -> User:
        # populate_existing refreshes a User already in the identity map,
        # which a bulk UPDATE does not touch.
        user = self._session.execute(
            select(User).where(User.id == user_id).execution_options(populate_existing=True)
        ).scalar_one_or_none()
        if user is None:
            raise NotFound("User not found")
        return user

    def _record(self, user_id: str, delta: int, reason: str, balance_after: int, reference_id: Optional[str] = None):
        self._session.add(
            CoinTransaction(
                user_id=user_id,
                delta=delta,
                reason=reason,
                reference_id=reference_id,
                balance_after=balance_after,
            )
        )

    def maybe_reset(self, user_id: str, now: Optional[datetime] = None) -> int:
        """Reset to the role baseline once the reset window has elapsed.

        The window check lives in the WHERE clause, so of two concurrent
        callers only one performs the reset. Returns the balance after the
        call.
        """
        now = now or utcnow()
        user = self._load(user_id)
        previous = user.coins
        baseline = baseline_for_role(user.role)
        cutoff = now - timedelta(days=settings.COIN_RESET_DAYS)
        result = self._session.execute(
            update(User)
            .where(User.id == user_id, User.last_coin_reset <= cutoff)
            .values(coins=baseline, last_coin_reset=now)
        )
        if result.rowcount:
            logger.info("Coin reset user=%s %s -> %s", user_id, previous, baseline)
            self._record(user_id, baseline - previous, "reset", baseline)
            return self._load(user_id).coins
        return previous

    def get_balance(self, user_id: str, now: Optional[datetime] = None) -> int:
        return self.maybe_reset(user_id, now=now)

    def debit(self, user_id: str, amount: int, reason: str, reference_id: Optional[str] = None, now: Optional[datetime] = None) -> int:
        """Atomically remove `amount` coins or raise InsufficientCoins.

        A due monthly reset is applied first so a user is never refused
        coins they are already entitled to. Returns the new balance.
        """
        if amount <= 0:
            raise ValueError("debit amount must be positive")
        self.maybe_reset(user_id, now=now)
        result = self._session.execute(
            update(User)
            .where(User.id == user_id, User.coins >= amount)
            .values(coins=User.coins - amount)
        )
        if result.rowcount != 1:
            available = self._load(user_id).coins
            logger.info("Debit refused user=%s needed=%s available=%s reason=%s", user_id, amount, available, reason)
            raise InsufficientCoins(coins_needed=amount, coins_available=available)
        balance = self._load(user_id).coins
        self._record(user_id, -amount, reason, balance, reference_id)
        logger.info("Debit user=%s amount=%s reason=%s balance=%s", user_id, amount, reason, balance)
        return balance

    def credit(self, user_id: str, amount: int, reason: str = "credit", reference_id: Optional[str] = None) -> int:
        """Add coins (refunds, rewards, admin grants). Returns the new balance."""
        if amount < 0:
            raise ValueError("credit amount must not be negative")
        result = self._session.execute(
            update(User).where(User.id == user_id).values(coins=User.coins + amount)
        )
        if result.rowcount != 1:
            raise NotFound("User not found")
        balance = self._load(user_id).coins
        self._record(user_id, amount, reason, balance, reference_id)
        return balance

    def set_balance(self, user_id: str, amount: int, reason: str = "admin_set") -> int:
        user = self._load(user_id)
        target = max(0, int(amount))
        previous = user.coins
        self._session.execute(update(User).where(User.id == user_id).values(coins=target))
        self._record(user_id, target - previous, reason, target)
        return target

    def remove(self, user_id: str, amount: int, reason: str = "admin_remove") -> int:
        """Take up to `amount` coins, stopping at zero. Returns the new balance."""
        if amount < 0:
            raise ValueError("remove amount must not be negative")
        previous = self._load(user_id).coins
        # one statement, so a concurrent debit cannot be overwritten
        self._session.execute(
            update(User)
            .where(User.id == user_id)
            .values(coins=case((User.coins > amount, User.coins - amount), else_=0))
        )
        balance = self._load(user_id).coins
        self._record(user_id, balance - previous, reason, balance)
        return balance
