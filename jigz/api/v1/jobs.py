# jigz/api/v1/jobs.py
from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from jigz.api.v1.auth import get_current_user
from jigz.db.models import User
from jigz.db.session import get_db
from jigz.models.marketplace import (
    ApplicationOut,
    JobCreate,
    JobOut,
    RankedApplicationOut,
    TopBidderOut,
)
from jigz.repositories import marketplace as repo
from jigz.services import ranking
from jigz.services.errors import NotFound
from jigz.services.gateway import CoinGateway

router = APIRouter()


def _job_out(db: Session, job) -> JobOut:
    out = JobOut.model_validate(job)
    out.application_count = repo.count_applications(db, job.id)
    return out


@router.post("/jobs", status_code=201, response_model=JobOut)
def post_job(payload: JobCreate, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    job = CoinGateway(db).perform(user.id, "post_job", payload)
    return _job_out(db, job)


@router.get("/jobs/{job_id}", response_model=JobOut)
def get_job(job_id: str, db: Session = Depends(get_db)):
    job = repo.get_job(db, job_id)
    if job is None:
        raise NotFound("Job not found")
    return _job_out(db, job)


@router.put("/jobs/{job_id}", response_model=JobOut)
def edit_job(job_id: str, payload: JobCreate, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    job = CoinGateway(db).perform(user.id, "edit_job", payload, target_id=job_id)
    return _job_out(db, job)


@router.post("/jobs/{job_id}/extend", response_model=JobOut)
def extend_job(job_id: str, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    job = CoinGateway(db).perform(user.id, "extend_job", target_id=job_id)
    return _job_out(db, job)


@router.get("/user/jobs", response_model=List[JobOut])
def my_jobs(user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    return [_job_out(db, j) for j in repo.list_jobs_for_user(db, user.id)]


@router.get("/jobs/{job_id}/applications", response_model=List[ApplicationOut])
def job_applications(job_id: str, db: Session = Depends(get_db)):
    return repo.list_applications_for_job(db, job_id)


@router.get("/jobs/{job_id}/application-rankings", response_model=List[RankedApplicationOut])
def application_rankings(job_id: str, db: Session = Depends(get_db)):
    if repo.get_job(db, job_id) is None:
        raise NotFound("Job not found")
    ranked = ranking.rank(repo.list_applications_for_job(db, job_id))
    return [
        RankedApplicationOut(
            **ApplicationOut.model_validate(r.application).model_dump(),
            rank=r.rank,
            is_bidding=r.is_bidding,
        )
        for r in ranked
    ]


@router.get("/jobs/{job_id}/top-bidders", response_model=List[TopBidderOut])
def top_bidders(job_id: str, db: Session = Depends(get_db)):
    out = []
    for r in ranking.top_bidders(repo.list_applications_for_job(db, job_id)):
        app = r.application
        out.append(
            TopBidderOut(
                application_id=app.id,
                user_id=app.user_id,
                name=app.user.name if app.user else "",
                coins_bid=app.coins_bid,
                rank=r.rank,
            )
        )
    return out


@router.get("/jobs/{job_id}/application-status")
def application_status(job_id: str, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    return {"hasApplied": repo.find_application(db, user.id, job_id) is not None}
