# tests/conftest.py

import os
import tempfile

# Settings are read at import time, so the environment goes first
_tmp = tempfile.mkdtemp(prefix="falcon-test-")
os.environ["DATABASE_URL"] = f"sqlite:///{os.path.join(_tmp, 'test.db')}"
os.environ["JWT_SECRET"] = "test-secret"
os.environ["GROQ_API_KEY"] = "groq-key"
os.environ["GEMINI_API_KEY"] = "gemini-key"
os.environ["DEEPSEEK_API_KEY"] = "deepseek-key"
os.environ["HF_API_KEY"] = "hf-key"
os.environ["WEATHER_API_KEY"] = "weather-key"

import json

import pytest
import requests
from fastapi.testclient import TestClient

from db import Base, SessionLocal, engine
from main import app


class FakeResponse:
    """Stand-in for ``requests.Response``."""

    def __init__(self, status_code=200, payload=None, content=b"", text=None):
        self.status_code = status_code
        self._payload = payload
        self.content = content
        if text is None:
            text = json.dumps(payload) if payload is not None else content.decode("latin-1")
        self.text = text

    @property
    def ok(self):
        return self.status_code < 400

    def json(self):
        if self._payload is None:
            raise ValueError("no JSON body")
        return self._payload

    def raise_for_status(self):
        if not self.ok:
            raise requests.exceptions.HTTPError(f"{self.status_code} Error", response=self)


class Recorder:
    """Callable replacing ``requests.post``/``get``; remembers each call."""

    def __init__(self, response=None, exc=None):
        self.response = response
        self.exc = exc
        self.calls = []

    def __call__(self, url, **kwargs):
        self.calls.append((url, kwargs))
        if self.exc is not None:
            raise self.exc
        return self.response


@pytest.fixture
def fake_response():
    return FakeResponse


@pytest.fixture
def upstream(monkeypatch):
    """Patch outbound ``requests.post``; returns a setter."""

    def _set(response=None, exc=None, method="post"):
        recorder = Recorder(response, exc)
        monkeypatch.setattr(requests, method, recorder)
        return recorder

    return _set


@pytest.fixture
def db():
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def client(db):
    with TestClient(app) as c:
        yield c


@pytest.fixture
def auth_headers(client):
    r = client.post(
        "/api/auth/register",
        json={"name": "Ada", "email": "ada@example.com", "password": "s3cret!"},
    )
    assert r.status_code == 200
    return {"Authorization": f"Bearer {r.json()['token']}"}
