# jigz/api/v1/admin.py
from typing import List, Literal, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from jigz.api.v1.auth import get_current_user
from jigz.db.models import User
from jigz.db.session import get_db
from jigz.models.marketplace import CoinAdjust, JobOut, ReportOut, ReportUpdate, ServiceOut
from jigz.repositories import marketplace as repo
from jigz.services import moderation
from jigz.services.ledger import CoinLedger

router = APIRouter(prefix="/admin")


def require_moderator(user: User = Depends(get_current_user)) -> User:
    moderation.require_role(user)
    return user


def require_admin(user: User = Depends(get_current_user)) -> User:
    moderation.require_role(user, roles=("admin",))
    return user


@router.patch("/jobs/{job_id}/approve", response_model=JobOut)
def approve_job(job_id: str, moderator: User = Depends(require_moderator), db: Session = Depends(get_db)):
    return moderation.set_job_approval(db, moderator, job_id, approved=True)


@router.patch("/jobs/{job_id}/reject", response_model=JobOut)
def reject_job(job_id: str, moderator: User = Depends(require_moderator), db: Session = Depends(get_db)):
    return moderation.set_job_approval(db, moderator, job_id, approved=False)


@router.patch("/services/{service_id}/approve", response_model=ServiceOut)
def approve_service(service_id: str, moderator: User = Depends(require_moderator), db: Session = Depends(get_db)):
    return moderation.set_service_approval(db, moderator, service_id, approved=True)


@router.patch("/services/{service_id}/reject", response_model=ServiceOut)
def reject_service(service_id: str, moderator: User = Depends(require_moderator), db: Session = Depends(get_db)):
    return moderation.set_service_approval(db, moderator, service_id, approved=False)


@router.post("/close-expired-jobs")
def close_expired(admin: User = Depends(require_admin), db: Session = Depends(get_db)):
    closed = moderation.close_expired_jobs(db)
    return {"closed": closed}


@router.patch("/users/{user_id}/coins")
def adjust_coins(user_id: str, payload: CoinAdjust, admin: User = Depends(require_admin), db: Session = Depends(get_db)):
    ledger = CoinLedger(db)
    if payload.mode == "set":
        coins = ledger.set_balance(user_id, payload.amount)
    elif payload.mode == "remove":
        # removal clamps at zero instead of refusing
        coins = ledger.remove(user_id, abs(payload.amount))
    else:
        coins = ledger.credit(user_id, abs(payload.amount), reason="admin_add")
    db.commit()
    return {"userId": user_id, "coins": coins}


@router.get("/reports", response_model=List[ReportOut])
def list_reports(
    status: Optional[Literal["pending", "reviewed", "resolved", "dismissed"]] = Query(None),
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    return repo.list_reports(db, status=status)


@router.patch("/reports/{report_id}", response_model=ReportOut)
def review_report(report_id: str, payload: ReportUpdate, admin: User = Depends(require_admin), db: Session = Depends(get_db)):
    return moderation.review_report(db, admin, report_id, payload.status, payload.admin_notes)
