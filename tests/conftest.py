"""
Shared pytest fixtures.

Uses a SQLite file database so no Postgres is required for tests.
DATABASE_URL is set before greenloop is imported because the engine is
built at import time.
"""
import os
import uuid
from decimal import Decimal

SQLITE_URL = "sqlite:///./test_greenloop.db"
os.environ["DATABASE_URL"] = SQLITE_URL

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from greenloop.db.base import Base, get_db
from greenloop.main import app
from greenloop.models import LevelReward, RewardType, SustainabilityAction, User
from greenloop.services.rate_limit import rate_limiter

engine = create_engine(SQLITE_URL, connect_args={"check_same_thread": False})
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def override_get_db():
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture(scope="session", autouse=True)
def create_tables():
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture(autouse=True)
def clean_state():
    rate_limiter.reset()
    yield
    rate_limiter.reset()
    with engine.begin() as conn:
        for table in reversed(Base.metadata.sorted_tables):
            conn.execute(table.delete())


@pytest.fixture()
def db():
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture()
def client(db):
    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


# ---------------------------------------------------------------------------
# Factories
# ---------------------------------------------------------------------------

@pytest.fixture()
def make_user(db):
    def _make(points=0, is_admin=False, is_active=True, first_name="Ada", last_name="Green"):
        user = User(
            email=f"{uuid.uuid4().hex[:12]}@example.com",
            first_name=first_name,
            last_name=last_name,
            points=points,
            total_co2_saved=Decimal("0"),
            is_admin=is_admin,
            is_active=is_active,
        )
        db.add(user)
        db.commit()
        db.refresh(user)
        return user
    return _make


@pytest.fixture()
def user(make_user):
    return make_user()


@pytest.fixture()
def admin(make_user):
    return make_user(is_admin=True, first_name="Grace", last_name="Admin")


@pytest.fixture()
def make_action(db):
    def _make(points_value=50, co2_impact="2.500", verification_required=False, is_active=True, **extra):
        action = SustainabilityAction(
            title=extra.pop("title", "Bike to work"),
            description=extra.pop("description", "Cycle instead of driving."),
            category=extra.pop("category", "transport"),
            points_value=points_value,
            co2_impact=Decimal(co2_impact),
            verification_required=verification_required,
            is_active=is_active,
            **extra,
        )
        db.add(action)
        db.commit()
        db.refresh(action)
        return action
    return _make


@pytest.fixture()
def make_reward(db):
    def _make(level=1, title="Eco Starter Badge", is_active=True):
        reward = LevelReward(
            level=level,
            reward_title=title,
            reward_description="A reward for reaching the level.",
            reward_type=RewardType.digital,
            is_active=is_active,
        )
        db.add(reward)
        db.commit()
        db.refresh(reward)
        return reward
    return _make


@pytest.fixture()
def auth():
    def _headers(user):
        return {"X-User-Id": str(user.id)}
    return _headers
