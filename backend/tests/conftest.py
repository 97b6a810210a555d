import os
import tempfile

# Must run before safecircle.config is imported.
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("DB_INIT_MODE", "off")
os.environ.setdefault("LOG_FILE", os.path.join(tempfile.gettempdir(), "safecircle-tests.log"))

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from safecircle.core.database import Base
from safecircle.models.user import User


def make_engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    return engine


@pytest.fixture()
def engine():
    engine = make_engine()
    try:
        yield engine
    finally:
        engine.dispose()


@pytest.fixture()
def db(engine):
    SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture()
def make_user(db):
    counter = {"n": 0}

    def _make(name=None, email=None):
        counter["n"] += 1
        user = User(
            name=name or f"user{counter['n']}",
            email=email or f"user{counter['n']}@example.com",
            password_hash="hash",
        )
        db.add(user)
        db.commit()
        db.refresh(user)
        return user

    return _make
