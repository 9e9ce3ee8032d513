import asyncio
from datetime import datetime, timedelta
import pytest
from fastapi.testclient import TestClient
from sqlalchemy.exc import OperationalError
import educhain.middleware.auth as session_middleware
from educhain.main import create_app
from educhain.middleware.auth import COOKIE_NAME, PUBLIC_PATHS, is_excluded
from educhain.models.auth_session import UserSession
from educhain.utils.security import hash_session_token, sign_session_token
from conftest import make_user, login_as


class CountingFactory:
    def __init__(self, factory):
        self.factory = factory
        self.calls = 0

    def __call__(self):
        self.calls += 1
        return self.factory()


class BrokenFactory:
    def __call__(self):
        raise OperationalError("SELECT 1", {}, Exception("database is down"))


@pytest.mark.parametrize("path,expected", [
    ("/", True),
    ("/cert-viewer", True),
    ("/auth/signin", True),
    ("/auth/", True),
    ("/static/style.css", True),
    ("/uploads/1_logo.png", True),
    ("/dashboard/student", False),
    ("/mint-cert", False),
    ("/index", False),
    ("/authx", False),
])
def test_exclusion_patterns(path, expected):
    assert is_excluded(path, PUBLIC_PATHS) is expected


@pytest.mark.parametrize("path", ["/", "/auth/signin", "/auth/signup", "/static/style.css"])
def test_excluded_paths_never_touch_session_store(settings, session_factory, ledger, path):
    counting = CountingFactory(session_factory)
    client = TestClient(create_app(settings, session_factory=counting, ledger=ledger))
    client.cookies.set(COOKIE_NAME, sign_session_token("whatever", settings.secret_key))

    r = client.get(path)
    assert r.status_code == 200
    assert counting.calls == 0


@pytest.mark.parametrize("path", ["/dashboard/issuer", "/dashboard/student", "/dashboard/student/courses/1"])
def test_missing_cookie_redirects_to_signin(client, path):
    r = client.get(path, follow_redirects=False)
    assert r.status_code == 303
    assert r.headers["location"] == "/auth/signin"


def test_post_without_cookie_redirects_to_signin(client):
    r = client.post("/mint-cert", json={"cert_id": 1}, follow_redirects=False)
    assert r.status_code == 303
    assert r.headers["location"] == "/auth/signin"


def test_unsigned_cookie_redirects(client, db, settings):
    user = make_user(db, "ada@example.com", password=None)
    token = login_as(client, db, user, settings)
    client.cookies.set(COOKIE_NAME, token)

    r = client.get("/dashboard/student", follow_redirects=False)
    assert r.headers["location"] == "/auth/signin"


def test_valid_session_reaches_handler(client, db, settings):
    user = make_user(db, "ada@example.com", password=None)
    login_as(client, db, user, settings)
    assert client.get("/dashboard/student").status_code == 200


def test_expired_session_redirects(client, db, settings):
    user = make_user(db, "ada@example.com", password=None)
    db.add(UserSession(
        id=hash_session_token("old-token"),
        user_id=user.id,
        expires_at=datetime.utcnow() - timedelta(minutes=1),
    ))
    db.commit()
    client.cookies.set(COOKIE_NAME, sign_session_token("old-token", settings.secret_key))

    r = client.get("/dashboard/student", follow_redirects=False)
    assert r.status_code == 303
    assert r.headers["location"] == "/auth/signin"


def test_storage_failure_is_treated_as_signed_out(settings, ledger):
    client = TestClient(create_app(settings, session_factory=BrokenFactory(), ledger=ledger))
    client.cookies.set(COOKIE_NAME, sign_session_token("tok", settings.secret_key))

    r = client.get("/dashboard/student", follow_redirects=False)
    assert r.status_code == 303
    assert r.headers["location"] == "/auth/signin"


def test_custom_exclusion_list(settings, session_factory, ledger):
    client = TestClient(create_app(settings, session_factory=session_factory, ledger=ledger, exclude=["/auth/*"]))
    assert client.get("/auth/signin").status_code == 200
    assert client.get("/", follow_redirects=False).status_code == 303


def test_wrong_role_is_forbidden(client, db, settings):
    user = make_user(db, "ada@example.com", password=None)
    login_as(client, db, user, settings)
    assert client.get("/dashboard/issuer").status_code == 403


def test_session_lookup_runs_in_a_worker_thread(client, db, settings, monkeypatch):
    user = make_user(db, "ada@example.com", password=None)
    login_as(client, db, user, settings)
    seen = []
    real_lookup = session_middleware.lookup_session

    def spy(session, token):
        try:
            asyncio.get_running_loop()
            seen.append("event loop")
        except RuntimeError:
            seen.append("worker")
        return real_lookup(session, token)

    monkeypatch.setattr(session_middleware, "lookup_session", spy)
    assert client.get("/dashboard/student").status_code == 200
    assert seen == ["worker"]
