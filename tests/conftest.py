from datetime import datetime, timedelta, timezone
import itertools

import fakeredis
import pytest
from fastapi.testclient import TestClient

from taskapp.config import Settings
from taskapp.main import create_app


class FakeGenerator:
    """Stands in for the text-generation API and records prompts."""

    def __init__(self, reply="", error=None):
        self.reply = reply
        self.error = error
        self.prompts = []

    def generate(self, prompt):
        self.prompts.append(prompt)
        if self.error is not None:
            raise self.error
        return self.reply


def ticking_clock(start=datetime(2025, 1, 1, 9, 0, tzinfo=timezone.utc)):
    counter = itertools.count()
    return lambda: start + timedelta(seconds=next(counter))


@pytest.fixture(autouse=True)
def fast_bcrypt(monkeypatch):
    monkeypatch.setattr("taskapp.auth.BCRYPT_ROUNDS", 4)


@pytest.fixture
def redis_client():
    return fakeredis.FakeRedis(decode_responses=True)


@pytest.fixture
def generator():
    return FakeGenerator()


@pytest.fixture
def settings():
    return Settings(session_secret="test-secret", openai_api_key="sk-test")


@pytest.fixture
def app(settings, redis_client, generator):
    app = create_app(settings=settings, redis_client=redis_client, text_generator=generator)
    app.state.tasks.clock = ticking_clock()
    return app


def register_and_login(client, email, name="Tester", password="Password123!"):
    r = client.post("/auth/register", json={"email": email, "name": name, "password": password})
    assert r.status_code == 201
    r = client.post("/auth/login", json={"email": email, "password": password})
    assert r.status_code == 200
    return r.json()["user"]


@pytest.fixture
def anon(app):
    return TestClient(app)


@pytest.fixture
def alice(app):
    client = TestClient(app)
    client.user = register_and_login(client, "alice@example.com", "Alice")
    return client


@pytest.fixture
def bob(app):
    client = TestClient(app)
    client.user = register_and_login(client, "bob@example.com", "Bob")
    return client
