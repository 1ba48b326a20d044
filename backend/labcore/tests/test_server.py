import uvicorn

from labcore import __main__ as server


def test_main_serves_app_from_env(monkeypatch):
    calls = []
    monkeypatch.setattr(uvicorn, "run", lambda app, **kwargs: calls.append((app, kwargs)))
    monkeypatch.setenv("HOST", "0.0.0.0")
    monkeypatch.setenv("PORT", "9123")
    monkeypatch.setenv("LOG_LEVEL", "WARNING")

    server.main()

    assert calls == [("labcore.main:app", {"host": "0.0.0.0", "port": 9123, "log_level": "warning"})]
