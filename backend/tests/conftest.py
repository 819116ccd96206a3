import os

# Ensure test settings before app import
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["SCHEDULER_ENABLED"] = "false"
os.environ["REDIS_URL"] = "redis://localhost:1"

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

import app.models  # noqa: E402,F401
from app.database import Base, SessionLocal, engine, get_db, seed_defaults  # noqa: E402
from app.services import feature_flags  # noqa: E402
from app.services.auth import create_user, create_access_token  # noqa: E402
from app.services.feature_flags import FeatureFlags  # noqa: E402

ALL_FLAGS = (
    feature_flags.SUPER_LIKES,
    feature_flags.BOOSTS,
    feature_flags.REWINDS,
    feature_flags.WHO_LIKES_ME,
    feature_flags.HOT_SECTION,
    feature_flags.PRIORITY_RANKING,
    feature_flags.AUCTIONS,
    feature_flags.CIRCULAR_TRADES,
    feature_flags.MISSIONS,
    feature_flags.ACHIEVEMENTS,
)


@pytest.fixture
def db():
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    session = SessionLocal()
    seed_defaults(session)
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def flags():
    return FeatureFlags.all_enabled(*ALL_FLAGS)


@pytest.fixture
def make_user(db):
    counter = {"n": 0}

    def _make(email=None, is_admin=False, display_name=None):
        counter["n"] += 1
        user = create_user(
            db,
            email or f"user{counter['n']}@example.com",
            "secret123",
            display_name,
        )
        if is_admin:
            user.is_admin = True
            db.commit()
        return user

    return _make


@pytest.fixture
def make_product(db):
    def _make(owner, title="Bicicleta", **fields):
        from app.services.products import create_product
        return create_product(db, owner, title=title, **fields)

    return _make


@pytest.fixture
def client(db):
    from app.main import app

    def _get_db():
        yield db

    app.dependency_overrides[get_db] = _get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def auth_headers():
    def _headers(user) -> dict:
        token = create_access_token({"sub": str(user.id)})
        return {"Authorization": f"Bearer {token}"}

    return _headers
