import logging

from taskapp.config import Settings, get_settings
from taskapp.logging_setup import setup_logging


def test_defaults(monkeypatch):
    for name in ("REDIS_HOST", "REDIS_PORT", "OPENAI_API_KEY", "OPENAI_MODEL", "LOG_LEVEL"):
        monkeypatch.delenv(name, raising=False)
    s = get_settings()
    assert s.redis_host == "redis"
    assert s.redis_port == 6379
    assert s.openai_model == "gpt-4o"
    assert s.log_level == "INFO"
    assert s.ai_configured is False


def test_env_overrides_and_bad_numbers(monkeypatch):
    monkeypatch.setenv("REDIS_HOST", "localhost")
    monkeypatch.setenv("REDIS_PORT", "not-a-port")
    monkeypatch.setenv("OPENAI_API_KEY", "sk-live")
    monkeypatch.setenv("LOG_LEVEL", "debug")
    s = get_settings()
    assert s.redis_host == "localhost"
    assert s.redis_port == 6379
    assert s.ai_configured is True
    assert s.log_level == "DEBUG"


def test_blank_api_key_is_not_configured(monkeypatch):
    monkeypatch.setenv("OPENAI_API_KEY", "   ")
    assert get_settings().ai_configured is False


def test_setup_logging_writes_file(tmp_path):
    log_file = tmp_path / "logs" / "taskapp.log"
    root = logging.getLogger()
    saved = list(root.handlers), root.level
    try:
        setup_logging("debug", log_file)
        logging.getLogger("taskapp.test").debug("hello from test")
        for h in root.handlers:
            h.flush()
        assert "hello from test" in log_file.read_text(encoding="utf-8")
    finally:
        for h in list(root.handlers):
            root.removeHandler(h)
            h.close()
        for h in saved[0]:
            root.addHandler(h)
        root.setLevel(saved[1])
        logging.captureWarnings(False)


def test_host_and_port(monkeypatch):
    monkeypatch.setenv("HOST", "127.0.0.1")
    monkeypatch.setenv("PORT", "9000")
    s = get_settings()
    assert (s.host, s.port) == ("127.0.0.1", 9000)
    monkeypatch.delenv("HOST")
    monkeypatch.delenv("PORT")
    s = get_settings()
    assert (s.host, s.port) == ("0.0.0.0", 8000)


def test_missing_session_secret_is_random_and_warns(monkeypatch, caplog):
    monkeypatch.delenv("SESSION_SECRET", raising=False)
    with caplog.at_level(logging.WARNING, logger="taskapp.config"):
        first = get_settings().session_secret
        second = get_settings().session_secret
    assert first != second
    assert "dev_secret_change_me" not in (first, second)
    assert len(first) >= 32
    assert "SESSION_SECRET is not set" in caplog.text

    monkeypatch.setenv("SESSION_SECRET", "from-env")
    assert get_settings().session_secret == "from-env"


def test_app_startup_configures_logging(monkeypatch, redis_client):
    import taskapp.main
    from fastapi.testclient import TestClient

    calls = []
    monkeypatch.setattr(taskapp.main, "setup_logging", lambda *args: calls.append(args))
    settings = Settings(session_secret="s", log_level="DEBUG", log_file="/tmp/taskapp-test.log")
    app = taskapp.main.create_app(settings=settings, redis_client=redis_client)
    with TestClient(app) as client:
        assert client.get("/health").status_code == 200
    assert calls == [("DEBUG", "/tmp/taskapp-test.log")]
