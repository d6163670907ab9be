from pathlib import Path
import os
import tempfile
import pytest

# Settings are read at import time, so the environment must be ready before any app import.
_TMP = Path(tempfile.mkdtemp(prefix="educonnect-tests-"))
os.environ.setdefault("JWT_SECRET", "test-secret-0123456789abcdef0123456789abcdef")
os.environ["DATABASE_URL"] = f"sqlite:///{_TMP / 'test.db'}"
os.environ.setdefault("LOG_LEVEL", "WARNING")


@pytest.fixture(autouse=True)
def reset_db():
    """Give every test empty tables."""
    from educonnect.database import create_db_and_tables, drop_db_and_tables
    drop_db_and_tables()
    create_db_and_tables()
    yield


@pytest.fixture
def session():
    from sqlmodel import Session
    from educonnect.database import engine
    with Session(engine) as s:
        yield s


@pytest.fixture
def signup():
    """Return a helper that registers an account and returns (user, auth headers)."""
    from fastapi.testclient import TestClient
    from educonnect.main import app
    client = TestClient(app)

    def _signup(email: str, password: str = "secret1", name: str = "Student"):
        r = client.post('/auth/register', json={'email': email, 'password': password, 'name': name})
        assert r.status_code == 201, r.text
        body = r.json()
        return body['user'], {'Authorization': f"Bearer {body['token']}"}

    return _signup
