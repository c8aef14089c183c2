import os
import sys

from fastapi.testclient import TestClient

sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))
from matchcore import db
from matchcore.main import app


def test_startup_creates_schema_on_empty_database(tmp_path, monkeypatch):
    db_file = tmp_path / "matchcore.db"
    monkeypatch.setenv("DATABASE_URL", f"sqlite+aiosqlite:///{db_file}")
    monkeypatch.setattr(db, "engine", None)
    monkeypatch.setattr(db, "AsyncSessionLocal", None)

    with TestClient(app) as client:
        resp = client.post(
            "/api/tournaments",
            json={"name": "Fresh Start", "sport": "tennis", "format": "round_robin"},
        )
        assert resp.status_code == 200
        tid = resp.json()["id"]
        assert client.get(f"/api/tournaments/{tid}").json()["name"] == "Fresh Start"

    assert db_file.exists()
    assert db.engine is None
