import pytest
from fastapi.testclient import TestClient

from auth import create_access_token, get_password_hash
from database import get_session_factory, init_db, make_engine, make_session_factory
from main import app
from models import ADMIN, MEMBER, Identity
from models_orm import UserORM

PASSWORD = "password123"


def add_user(session_factory, user_id, username, role, password=PASSWORD):
    db = session_factory()
    try:
        db.add(UserORM(
            id=user_id,
            username=username,
            hashed_password=get_password_hash(password),
            role=role
        ))
        db.commit()
    finally:
        db.close()
    return Identity(id=user_id, role=role)


@pytest.fixture
def session_factory(tmp_path):
    # Throw-away SQLite database per test
    engine = make_engine(f"sqlite:///{tmp_path / 'test.db'}")
    init_db(engine)
    yield make_session_factory(engine)
    engine.dispose()


@pytest.fixture
def admin(session_factory):
    return add_user(session_factory, "admin", "admin", ADMIN)


@pytest.fixture
def member(session_factory):
    return add_user(session_factory, "u1", "ana", MEMBER)


@pytest.fixture
def other_member(session_factory):
    return add_user(session_factory, "u2", "bruno", MEMBER)


@pytest.fixture
def client(session_factory):
    app.dependency_overrides[get_session_factory] = lambda: session_factory
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def headers_for():
    def _headers(identity):
        token = create_access_token(identity.id, identity.role)
        return {"Authorization": f"Bearer {token}"}
    return _headers
