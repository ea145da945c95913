"""Tests for the server entry point."""

from autoblog import run
from autoblog.config import settings


def test_main_starts_uvicorn_with_settings(monkeypatch):
    calls = []
    monkeypatch.setattr(run.uvicorn, "run", lambda app, **kwargs: calls.append((app, kwargs)))
    monkeypatch.setattr(settings, "PORT", 9100)

    run.main()

    assert calls == [("autoblog.main:app", {"host": "0.0.0.0", "port": 9100, "reload": False})]
