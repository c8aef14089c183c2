import logging
import os
import sys

from fastapi import FastAPI
from fastapi.testclient import TestClient

sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))
from matchcore.main import unhandled_exception_handler
from matchcore.utils import sentry


def test_unhandled_exception_logs_traceback(caplog):
    app = FastAPI()
    app.add_exception_handler(Exception, unhandled_exception_handler)

    @app.get("/boom")
    def boom():
        raise ValueError("boom")

    client = TestClient(app, raise_server_exceptions=False)
    with caplog.at_level(logging.ERROR):
        response = client.get("/boom")

    assert response.status_code == 500
    assert response.json()["code"] == "internal_server_error"
    record = next((r for r in caplog.records if r.message == "Unhandled exception"), None)
    assert record is not None
    assert record.exc_info[0] is ValueError
    assert "ValueError: boom" in caplog.text


def test_sample_rate_parsing(monkeypatch):
    monkeypatch.setenv("SENTRY_TRACES_SAMPLE_RATE", "0.25")
    assert sentry.parse_sample_rate("SENTRY_TRACES_SAMPLE_RATE") == 0.25
    monkeypatch.setenv("SENTRY_TRACES_SAMPLE_RATE", "lots")
    assert sentry.parse_sample_rate("SENTRY_TRACES_SAMPLE_RATE", 0.1) == 0.1
    monkeypatch.setenv("SENTRY_TRACES_SAMPLE_RATE", "2")
    assert sentry.parse_sample_rate("SENTRY_TRACES_SAMPLE_RATE") == 0.0


def test_sentry_skipped_without_dsn(monkeypatch):
    monkeypatch.delenv("SENTRY_DSN", raising=False)
    assert sentry.init_sentry() is False
