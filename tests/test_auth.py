from fastapi.testclient import TestClient

from taskapp.auth import hash_password, verify_password

from .conftest import register_and_login


def test_password_hash_round_trip():
    stored = hash_password("Password123!")
    assert "$" in stored
    assert verify_password(stored, "Password123!")
    assert not verify_password(stored, "password123!")
    assert not verify_password("", "Password123!")
    assert not verify_password("nodollar", "Password123!")


def test_register_login_me_logout(anon):
    r = anon.post("/auth/register", json={"email": "Carol@Example.com", "name": "Carol", "password": "Password123!"})
    assert r.status_code == 201
    user = r.json()["user"]
    assert user["email"] == "carol@example.com"
    assert "password" not in str(r.json()).lower()

    # registering does not log you in
    assert anon.get("/auth/me").status_code == 401

    r = anon.post("/auth/login", json={"email": "carol@example.com", "password": "Password123!"})
    assert r.status_code == 200
    assert r.json()["user"]["id"] == user["id"]

    me = anon.get("/auth/me")
    assert me.status_code == 200
    assert me.json()["user"]["name"] == "Carol"

    assert anon.post("/auth/logout").json() == {"message": "Logged out"}
    assert anon.get("/auth/me").status_code == 401
    assert anon.get("/tasks").status_code == 401


def test_login_with_wrong_password(anon):
    anon.post("/auth/register", json={"email": "dave@example.com", "name": "Dave", "password": "Password123!"})
    r = anon.post("/auth/login", json={"email": "dave@example.com", "password": "nope"})
    assert r.status_code == 401
    assert r.json() == {"error": "Invalid email or password"}

    r = anon.post("/auth/login", json={"email": "nobody@example.com", "password": "Password123!"})
    assert r.status_code == 401


def test_register_duplicate_email(anon):
    payload = {"email": "erin@example.com", "name": "Erin", "password": "Password123!"}
    assert anon.post("/auth/register", json=payload).status_code == 201
    r = anon.post("/auth/register", json={**payload, "email": "ERIN@example.com"})
    assert r.status_code == 409
    assert r.json() == {"error": "Email already registered"}


def test_register_validation(anon):
    r = anon.post("/auth/register", json={"email": "not-an-email", "name": "", "password": "short"})
    assert r.status_code == 400
    body = r.json()
    assert body["error"] == "Validation failed"
    assert {tuple(e["loc"])[-1] for e in body["details"]} == {"email", "name", "password"}


def test_session_for_deleted_user_is_unauthorized(alice, redis_client):
    redis_client.delete(f"user:{alice.user['id']}")
    assert alice.get("/tasks").status_code == 401


def test_tampered_cookie_is_unauthorized(app, alice):
    other = TestClient(app)
    other.cookies.set("session", "forged.value")
    assert other.get("/tasks").status_code == 401


def test_password_hash_is_bcrypt_and_counts_every_character():
    long_password = "x" * 80
    stored = hash_password(long_password)
    assert stored.startswith("$2")
    assert verify_password(stored, long_password)
    # differs only after bcrypt's 72-byte input limit
    assert not verify_password(stored, "x" * 79 + "y")


def test_register_and_login_hash_off_the_event_loop(anon, monkeypatch):
    import taskapp.main

    offloaded = []
    original = taskapp.main.run_in_threadpool

    async def recording(func, *args, **kwargs):
        offloaded.append(func.__name__)
        return await original(func, *args, **kwargs)

    monkeypatch.setattr(taskapp.main, "run_in_threadpool", recording)
    register_and_login(anon, "ivy@example.com")
    assert offloaded == ["hash_password", "authenticate"]
