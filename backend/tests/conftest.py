import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from app.database import Base, get_db, enable_sqlite_foreign_keys
from app.main import app
from app.models.user import User
from app.services.note_cache import NoteCache
from app.utils.security import hash_password
from tests.fakes import FakeRedis

TEST_DB_URL = "sqlite:///./test_notes.db"

engine = create_engine(TEST_DB_URL, connect_args={"check_same_thread": False})
enable_sqlite_foreign_keys(engine)
TestingSession = sessionmaker(autocommit=False, autoflush=False, bind=engine)

TEST_PASSWORD = "secret-pass"


def override_get_db():
    db = TestingSession()
    try:
        yield db
    finally:
        db.close()


app.dependency_overrides[get_db] = override_get_db


@pytest.fixture(autouse=True)
def setup_db():
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def fake_redis():
    return FakeRedis()


@pytest.fixture
def cache(fake_redis):
    return NoteCache(fake_redis, ttl_seconds=300)


@pytest.fixture(autouse=True)
def install_cache(cache):
    app.state.note_cache = cache
    yield
    app.state.note_cache = None


@pytest.fixture
def db():
    db = TestingSession()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture
def client():
    return TestClient(app)


@pytest.fixture
def seed_users(db):
    users = {
        "alice": User(email="alice@example.com", password_hash=hash_password(TEST_PASSWORD), first_name="Alice"),
        "bob": User(email="bob@example.com", password_hash=hash_password(TEST_PASSWORD), first_name="Bob"),
    }
    for u in users.values():
        db.add(u)
    db.commit()
    for u in users.values():
        db.refresh(u)
    return users


def login(client, email: str) -> dict:
    resp = client.post("/api/auth/login", json={"email": email, "password": TEST_PASSWORD})
    assert resp.status_code == 200, resp.text
    return resp.json()


def auth_headers(client, email: str) -> dict:
    return {"Authorization": f"Bearer {login(client, email)['access_token']}"}


def create_note(client, headers, title="제목", content="본문") -> dict:
    resp = client.post("/api/notes", json={"title": title, "content": content}, headers=headers)
    assert resp.status_code == 201, resp.text
    return resp.json()
