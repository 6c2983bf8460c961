import os

os.environ.setdefault("DATABASE_URL", "sqlite:///./test_app.db")
os.environ.setdefault("JWT_SECRET", "test-jwt-secret")

import pytest
from fastapi.testclient import TestClient
from jose import jwt
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from app.database import Base, init_db, sqlite_connect_args
from app.main import app as fastapi_app
from app.models import GlobalSetting, Team

SQLALCHEMY_DATABASE_URL = "sqlite:///./test_temp.db"
engine = create_engine(SQLALCHEMY_DATABASE_URL, connect_args=sqlite_connect_args(SQLALCHEMY_DATABASE_URL))
TestingSessionLocal = sessionmaker(
    autocommit=False, autoflush=False, bind=engine)

WEBHOOK_SECRET = "whsec_test"


@pytest.fixture(autouse=True)
def setup_db():
    init_db(engine)
    yield
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def db():
    session = TestingSessionLocal()
    yield session
    session.close()


@pytest.fixture
def client(monkeypatch):
    # Point every module that opens sessions at the test database
    monkeypatch.setattr("app.routes.SessionLocal", TestingSessionLocal)
    monkeypatch.setattr("app.main.SessionLocal", TestingSessionLocal)
    monkeypatch.setenv("PAYMENT_WEBHOOK_SECRET", WEBHOOK_SECRET)
    with TestClient(fastapi_app) as c:
        yield c


def make_token(sub="user-1", role="PARTICIPANT", team_id="team-1"):
    return jwt.encode({"sub": sub, "role": role, "team_id": team_id}, os.environ["JWT_SECRET"], algorithm="HS256")


@pytest.fixture
def user_headers():
    return {"Authorization": f"Bearer {make_token()}"}


@pytest.fixture
def admin_headers():
    return {"Authorization": f"Bearer {make_token('admin-1', 'ADMIN', team_id=None)}"}


def add_team(team_id="team-1", name="Team One", **fields):
    db = TestingSessionLocal()
    db.add(Team(id=team_id, name=name, **fields))
    db.commit()
    db.close()


def load_team(team_id="team-1"):
    db = TestingSessionLocal()
    team = db.get(Team, team_id)
    db.expunge(team)
    db.close()
    return team


@pytest.fixture
def gateway_key():
    db = TestingSessionLocal()
    db.add(GlobalSetting(key="payment_gateway_key", value="yo_sec_test"))
    db.commit()
    db.close()
    return "yo_sec_test"


def gateway_response(mocker, body, status_code=200):
    resp = mocker.Mock()
    resp.status_code = status_code
    resp.json.return_value = body
    return resp
