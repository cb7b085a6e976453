from __future__ import annotations

import os
import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parent
sys.path.append(str(ROOT))

os.environ["DATABASE_URL"] = "sqlite+pysqlite:///:memory:"
os.environ["DATABASE_WRITE_URL"] = "sqlite+pysqlite:///:memory:"

import papermate  # noqa: E402,F401
from papermate.config import Settings  # noqa: E402
from papermate.database import Base, create_db_engine, create_session_factory  # noqa: E402


@pytest.fixture()
def test_settings():
    return Settings(
        database_url="sqlite+pysqlite:///:memory:",
        environment="test",
        cors_origins=["*"],
    )


@pytest.fixture()
def db_session(test_settings):
    engine = create_db_engine(test_settings)
    Base.metadata.create_all(bind=engine)
    TestingSession = create_session_factory(engine)
    session = TestingSession()
    try:
        yield session
    finally:
        session.close()
        engine.dispose()
