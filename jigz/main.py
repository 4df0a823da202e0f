# jigz/main.py
import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from jigz.core.config import settings
from jigz.db.session import init_db
from jigz.services.errors import JigzError

from jigz.api.v1.auth import router as auth_router
from jigz.api.v1.admin import router as admin_router
from jigz.api.v1.applications import router as applications_router
from jigz.api.v1.coins import router as coins_router
from jigz.api.v1.jobs import router as jobs_router
from jigz.api.v1.messages import router as messages_router
from jigz.api.v1.reports import router as reports_router
from jigz.api.v1.reviews import router as reviews_router
from jigz.api.v1.search import router as search_router
from jigz.api.v1.services import router as services_router

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(title="Jigz API")

app.add_middleware(
    CORSMiddleware,
    allow_origins=[o.strip() for o in (settings.ALLOWED_HOSTS or "*").split(",")],
    allow_methods=["*"],
    allow_headers=["*"],
)

# Mount auth routes at the root `/auth` paths
app.include_router(auth_router)
app.include_router(coins_router, prefix="/api")
app.include_router(jobs_router, prefix="/api")
app.include_router(applications_router, prefix="/api")
app.include_router(search_router, prefix="/api")
app.include_router(services_router, prefix="/api")
app.include_router(reviews_router, prefix="/api")
app.include_router(reports_router, prefix="/api")
app.include_router(messages_router, prefix="/api")
app.include_router(admin_router, prefix="/api")


@app.exception_handler(JigzError)
async def jigz_error_handler(request: Request, exc: JigzError):
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.exception_handler(SQLAlchemyError)
async def storage_error_handler(request: Request, exc: SQLAlchemyError):
    # services roll back their own transaction before the error gets here
    logger.exception("Storage error on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content={"message": "Internal server error"})


@app.get("/api/health")
def health():
    return {"status": "ok"}


@app.on_event("startup")
async def startup_event():
    init_db()
