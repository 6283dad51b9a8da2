import os
import tempfile
from pathlib import Path

_tmpdir = Path(tempfile.mkdtemp(prefix="cityguide_test_"))
_db_path = _tmpdir / "test.db"

os.environ.setdefault("ENV", "test")
os.environ.setdefault("DATABASE_URL", f"sqlite:///{_db_path.as_posix()}")
os.environ.setdefault("APP_SECRET_KEY", "test-secret-key")
os.environ.setdefault("LOG_DIR", str(_tmpdir / "logs"))
os.environ.setdefault("SMTP_HOST", "")

import pytest
from fastapi.testclient import TestClient

import cityguide.models  # noqa: F401
from cityguide.core.rate_limit import limiter
from cityguide.core.security import create_access_token, get_password_hash
from cityguide.db.base import Base
from cityguide.db.session import SessionLocal, engine
from cityguide.main import create_app
from cityguide.models.enums import UserRole
from cityguide.models.places import Place
from cityguide.models.users import UserAuth

# One bcrypt hash shared by every seeded account keeps the suite fast.
PASSWORD = "password123"
_PASSWORD_HASH = get_password_hash(PASSWORD)


@pytest.fixture()
def clean_db():
    limiter.reset()

    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture()
def db(clean_db):
    session = SessionLocal()
    try:
        yield session
        session.commit()
    finally:
        session.close()


@pytest.fixture()
def client(clean_db):
    app = create_app()
    with TestClient(app) as c:
        yield c


def auth_header(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture()
def make_user(db):
    counter = {"n": 0}

    def _make(name: str | None = None, *, role: UserRole = UserRole.user, verified: bool = True) -> UserAuth:
        counter["n"] += 1
        n = counter["n"]
        user = UserAuth(
            name=name or f"User {n}",
            email=f"user{n}@example.com",
            password_hash=_PASSWORD_HASH,
            role=role.value,
            is_email_verified=verified,
        )
        db.add(user)
        db.commit()
        db.refresh(user)
        return user

    return _make


@pytest.fixture()
def headers_for():
    def _headers(user: UserAuth) -> dict[str, str]:
        return auth_header(create_access_token(user.id))

    return _headers


@pytest.fixture()
def make_place(db):
    def _make(name: str = "Cafe Alpha", **fields) -> Place:
        values = {
            "category": "Cafe",
            "city": "Mumbai",
            "description": "Coffee and cake",
            "address": "MG Road 1",
        }
        values.update(fields)
        place = Place(name=name, **values)
        db.add(place)
        db.commit()
        db.refresh(place)
        return place

    return _make
