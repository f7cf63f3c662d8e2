"""
Shared fixtures for the test suite.
"""
import os
import tempfile

# Configure before any habitlog module reads the environment
os.environ["HABITLOG_DATABASE_URL"] = "sqlite://"
os.environ["HABITLOG_TIMEZONE"] = "UTC"
os.environ["HABITLOG_LOG_DIR"] = tempfile.mkdtemp(prefix="habitlog-tests-")

import pytest
from datetime import timezone
from zoneinfo import ZoneInfo
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool
from tzlocal import reload_localzone
from unittest.mock import patch

from habitlog.infrastructure.database import Base
from habitlog import models  # noqa: F401  registers all tables on Base
from habitlog.schemas import HabitSave


@pytest.fixture
def engine():
    """In-memory SQLite engine shared by every connection of one test"""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def db_session(engine):
    """Database session on a fresh schema"""
    session = sessionmaker(autocommit=False, autoflush=False, bind=engine)()
    yield session
    session.close()


@pytest.fixture
def user_id():
    """A 28-character id, the usual length of an auth provider uid"""
    return "u7Hq2LmXc9RtYp4KsBn1VwZe3Jd8"


@pytest.fixture
def other_user_id():
    return "Qa5Nf0GhTu6Ie2Ow8Py1Rx4Sz7Lk"


@pytest.fixture
def utc():
    return timezone.utc


@pytest.fixture
def tokyo():
    return ZoneInfo("Asia/Tokyo")


@pytest.fixture
def new_york():
    return ZoneInfo("America/New_York")


@pytest.fixture
def new_york_system_zone():
    """System zone set to New York through TZ, with HABITLOG_TIMEZONE unset"""
    with patch.dict(os.environ, {"HABITLOG_TIMEZONE": "", "TZ": "America/New_York"}):
        reload_localzone()
        yield
    reload_localzone()


def create_habit(db_session, user_id, name="Read", icon="📚", **fields):
    """Create a habit through the service and return the response"""
    from habitlog.services.habit_service import HabitService
    return HabitService(db_session).save_habit(user_id, HabitSave(name=name, icon=icon, **fields))
