# jigz/api/v1/reports.py
from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from jigz.api.v1.auth import get_current_user
from jigz.db.models import User
from jigz.db.session import get_db
from jigz.models.marketplace import ReportCreate, ReportOut
from jigz.repositories import marketplace as repo
from jigz.services import moderation
from jigz.services.errors import Forbidden, NotFound

router = APIRouter()


@router.post("/jobs/{job_id}/reports", status_code=201, response_model=ReportOut)
def report_job(job_id: str, payload: ReportCreate, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    return moderation.create_report(db, user.id, job_id, payload.category, payload.reason)


@router.get("/jobs/{job_id}/reports", response_model=List[ReportOut])
def job_reports(job_id: str, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    job = repo.get_job(db, job_id)
    if job is None:
        raise NotFound("Job not found")
    if job.user_id != user.id and user.role != "admin":
        raise Forbidden("Only the job owner or an admin can see reports")
    return repo.list_reports_for_job(db, job.id)


@router.get("/jobs/{job_id}/reports/check")
def check_reported(job_id: str, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    return {"hasReported": repo.has_reported(db, user.id, job_id)}
