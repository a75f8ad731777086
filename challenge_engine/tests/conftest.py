"""
Shared pytest fixtures.

The app module reads its settings from the environment at import time, so
those are pinned before anything from challenge_engine is imported.
"""
import os
import tempfile

os.environ["CHALLENGE_ENGINE_SCHEDULER_ENABLED"] = "false"
os.environ.setdefault(
    "CHALLENGE_ENGINE_DATABASE_URL",
    f"sqlite:///{os.path.join(tempfile.gettempdir(), 'challenge_engine_app.db')}",
)
os.environ.setdefault("CHALLENGE_ENGINE_LOG_DIR", tempfile.gettempdir())

import pytest
from datetime import datetime, timedelta
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from challenge_engine.database import Base, get_db
from challenge_engine.main import app
from challenge_engine.auth import API_KEY
from challenge_engine.seed import seed_catalog
from challenge_engine.models import (
    Challenge, ScheduledOccurrence, Achievement,
)
from challenge_engine.constants import (
    ChallengeCategory, ChallengeDifficulty, OccurrenceStatus,
    RequirementType, AchievementTier,
)
from challenge_engine.services.date_service import DateService

engine = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def override_get_db():
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()


class FrozenClock:
    """Settable clock returning naive UTC datetimes"""

    def __init__(self, current: datetime):
        self.current = current

    def __call__(self) -> datetime:
        return self.current

    def advance(self, **kwargs) -> datetime:
        self.current = self.current + timedelta(**kwargs)
        return self.current


class FakeMonotonic:
    """Settable stand-in for time.monotonic"""

    def __init__(self, start: float = 1000.0):
        self.value = start

    def __call__(self) -> float:
        return self.value

    def advance(self, seconds: float) -> float:
        self.value += seconds
        return self.value


@pytest.fixture
def db_session():
    """Fresh schema for every test"""
    Base.metadata.create_all(bind=engine)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def clock():
    return FrozenClock(datetime(2026, 1, 30, 10, 0, 0))


@pytest.fixture
def date_service(clock):
    return DateService(now_fn=clock, timezone_name="UTC")


@pytest.fixture
def user_id():
    return "user-1"


@pytest.fixture
def physical_challenge(db_session):
    """Physical challenge worth 20 points"""
    return create_challenge(db_session, ChallengeCategory.PHYSICAL, points=20)


@pytest.fixture
def mental_challenge(db_session):
    """Mental challenge worth 10 points"""
    return create_challenge(db_session, ChallengeCategory.MENTAL, points=10)


@pytest.fixture
def first_step(db_session):
    """The 'complete one challenge' achievement"""
    return create_achievement(
        db_session, "First Step", RequirementType.CHALLENGES_COMPLETED, 1
    )


def create_challenge(
    db,
    category: ChallengeCategory,
    points: int = 10,
    difficulty: ChallengeDifficulty = ChallengeDifficulty.EASY,
    title: str = None,
) -> Challenge:
    """Helper to insert one catalog challenge"""
    challenge = Challenge(
        title=title or f"{category.value} challenge",
        description="",
        category=category,
        difficulty=difficulty,
        points=points,
        instructions="Do the thing for two minutes.",
    )
    db.add(challenge)
    db.commit()
    db.refresh(challenge)
    return challenge


def create_achievement(
    db,
    name: str,
    requirement_type: RequirementType,
    requirement_value: int,
    requirement_meta: dict = None,
    sort_order: int = 0,
) -> Achievement:
    """Helper to insert one achievement definition"""
    achievement = Achievement(
        name=name,
        description=name,
        tier=AchievementTier.BRONZE,
        requirement_type=requirement_type,
        requirement_value=requirement_value,
        requirement_meta=requirement_meta,
        sort_order=sort_order,
    )
    db.add(achievement)
    db.commit()
    db.refresh(achievement)
    return achievement


def create_occurrence(
    db,
    user_id: str,
    challenge: Challenge,
    scheduled_time: datetime,
    status: OccurrenceStatus = OccurrenceStatus.PENDING,
    snoozed_until: datetime = None,
) -> ScheduledOccurrence:
    """Helper to insert one queued occurrence"""
    occurrence = ScheduledOccurrence(
        user_id=user_id,
        challenge_id=challenge.id,
        scheduled_time=scheduled_time,
        status=status,
        snoozed_until=snoozed_until,
        postponed_count=0,
    )
    db.add(occurrence)
    db.commit()
    db.refresh(occurrence)
    return occurrence


@pytest.fixture
def client(db_session):
    """Test client on the seeded test database"""
    seed_catalog(db_session)
    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture
def auth_headers(user_id):
    return {"X-API-Key": API_KEY, "X-User-Id": user_id}
