# tests/conftest.py
import os
from datetime import timedelta

# Tests run against in-memory SQLite and never touch Redis unless a test
# hands search an explicit cache.
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["SEARCH_CACHE_ENABLED"] = "false"

import pytest
from sqlalchemy.orm import sessionmaker

from jigz.db import models  # noqa: F401
from jigz.db.base import Base
from jigz.db.models import Application, Job, Service, User, utcnow
from jigz.db.session import get_db, make_engine
from jigz.main import app
from jigz.services.auth import create_access_token, hash_password


@pytest.fixture
def engine():
    eng = make_engine("sqlite://")
    Base.metadata.create_all(eng)
    yield eng
    eng.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autoflush=False, autocommit=False, expire_on_commit=False, future=True)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def api(session_factory):
    """The FastAPI app wired to the per-test database."""
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    yield app
    app.dependency_overrides.clear()


@pytest.fixture
def make_user(db):
    counter = {"n": 0}

    def _make(coins=20, role="user", last_reset=None, name=None):
        counter["n"] += 1
        n = counter["n"]
        user = User(
            username=f"user{n}",
            email=f"user{n}@example.com",
            name=name or f"User {n}",
            password_hash=hash_password("secret123"),
            role=role,
            coins=coins,
            last_coin_reset=last_reset or utcnow(),
        )
        db.add(user)
        db.commit()
        return user

    return _make


@pytest.fixture
def make_job(db):
    def _make(owner, **overrides):
        now = utcnow()
        fields = dict(
            user_id=owner.id,
            title="Fix leaking kitchen tap",
            description="Need a plumber to replace a washer",
            category="Plumbing",
            location="Nairobi",
            min_budget=50,
            max_budget=100,
            currency="USD",
            status="open",
            approval_status="approved",
            expires_at=now + timedelta(days=30),
            created_at=now,
        )
        fields.update(overrides)
        job = Job(**fields)
        db.add(job)
        db.commit()
        return job

    return _make


@pytest.fixture
def make_application(db):
    def _make(job, applicant, coins_bid=0, **overrides):
        fields = dict(
            job_id=job.id,
            user_id=applicant.id,
            bid_amount=80,
            coins_bid=coins_bid,
            message="I can do this",
            status="pending",
        )
        fields.update(overrides)
        application = Application(**fields)
        db.add(application)
        db.commit()
        return application

    return _make


@pytest.fixture
def make_service(db):
    def _make(owner, **overrides):
        now = utcnow()
        fields = dict(
            user_id=owner.id,
            title="House cleaning",
            description="Weekly deep cleaning",
            category="Cleaning",
            location="Nairobi",
            price_from=20,
            status="active",
            approval_status="approved",
            expires_at=now + timedelta(days=30),
        )
        fields.update(overrides)
        service = Service(**fields)
        db.add(service)
        db.commit()
        return service

    return _make


@pytest.fixture
def auth_headers():
    def _headers(user) -> dict:
        return {"Authorization": f"Bearer {create_access_token(user.id)}"}

    return _headers
