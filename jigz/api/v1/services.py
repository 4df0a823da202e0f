# jigz/api/v1/services.py
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from jigz.api.v1.auth import get_current_user
from jigz.db.models import User, utcnow
from jigz.db.session import get_db
from jigz.models.marketplace import ServiceCreate, ServiceList, ServiceOut, ServiceRequestCreate, ServiceRequestOut
from jigz.repositories import marketplace as repo
from jigz.services import moderation
from jigz.services.errors import Forbidden, NotFound
from jigz.services.gateway import CoinGateway

router = APIRouter()


@router.get("/services", response_model=ServiceList)
def browse_services(
    query: Optional[str] = Query(None, max_length=200),
    category: Optional[str] = Query(None),
    location: Optional[str] = Query(None),
    experience_level: Optional[str] = Query(None, alias="experienceLevel"),
    min_price: Optional[int] = Query(None, alias="minPrice", ge=0),
    max_price: Optional[int] = Query(None, alias="maxPrice", ge=0),
    db: Session = Depends(get_db),
):
    services = repo.list_services(
        db,
        utcnow(),
        query=query.strip() if query else None,
        category=category,
        location=location,
        experience_level=experience_level,
        min_price=min_price,
        max_price=max_price,
    )
    return {"services": services, "total": len(services)}


@router.post("/services", status_code=201, response_model=ServiceOut)
def post_service(payload: ServiceCreate, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    return CoinGateway(db).perform(user.id, "post_service", payload)


@router.get("/services/{service_id}", response_model=ServiceOut)
def get_service(service_id: str, db: Session = Depends(get_db)):
    service = repo.get_service(db, service_id)
    if service is None:
        raise NotFound("Service not found")
    return service


@router.post("/services/{service_id}/extend", response_model=ServiceOut)
def extend_service(service_id: str, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    return CoinGateway(db).perform(user.id, "extend_service", target_id=service_id)


@router.post("/services/{service_id}/requests", status_code=201, response_model=ServiceRequestOut)
def request_service(service_id: str, payload: ServiceRequestCreate, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    return CoinGateway(db).perform(user.id, "service_request", payload, target_id=service_id)


@router.get("/services/{service_id}/requests", response_model=List[ServiceRequestOut])
def service_requests(service_id: str, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    service = repo.get_service(db, service_id)
    if service is None:
        raise NotFound("Service not found")
    if service.user_id != user.id:
        raise Forbidden("Only the service owner can see its requests")
    return repo.list_requests_for_service(db, service.id)


@router.patch("/service-requests/{request_id}/accept", response_model=ServiceRequestOut)
def accept_request(request_id: str, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    return CoinGateway(db).perform(user.id, "accept_service_request", target_id=request_id)


@router.patch("/service-requests/{request_id}/dismiss", response_model=ServiceRequestOut)
def dismiss_request(request_id: str, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    return moderation.dismiss_service_request(db, user.id, request_id)


@router.patch("/service-requests/{request_id}/complete", response_model=ServiceRequestOut)
def complete_request(request_id: str, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    return moderation.complete_service_request(db, user.id, request_id)


@router.get("/user/services", response_model=List[ServiceOut])
def my_services(user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    return repo.list_services_for_user(db, user.id)


@router.get("/user/service-requests", response_model=List[ServiceRequestOut])
def my_service_requests(user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    return repo.list_service_requests_for_user(db, user.id)
