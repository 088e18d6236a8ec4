"""
Tests for CORS configuration.
"""

from fastapi import FastAPI
from fastapi.testclient import TestClient

from rest_api.core import cors
from rest_api.core.cors import configure_cors, get_cors_origins


def test_origins_from_settings(monkeypatch):
    monkeypatch.setattr(cors.settings, "allowed_origins", " https://a.gob.pe, ,https://b.gob.pe ")
    assert get_cors_origins() == ["https://a.gob.pe", "https://b.gob.pe"]


def test_no_origins_by_default(monkeypatch):
    monkeypatch.setattr(cors.settings, "allowed_origins", "")
    assert get_cors_origins() == []


def test_preflight_allows_configured_origin(monkeypatch):
    monkeypatch.setattr(cors.settings, "allowed_origins", "https://mesa.gob.pe")
    app = FastAPI()
    configure_cors(app)

    @app.get("/ping")
    def ping():
        return {"ok": True}

    client = TestClient(app)
    response = client.options(
        "/ping",
        headers={
            "Origin": "https://mesa.gob.pe",
            "Access-Control-Request-Method": "GET",
            "Access-Control-Request-Headers": "Authorization",
        },
    )
    assert response.status_code == 200
    assert response.headers["access-control-allow-origin"] == "https://mesa.gob.pe"

    rejected = client.options(
        "/ping",
        headers={"Origin": "https://otro.com", "Access-Control-Request-Method": "GET"},
    )
    assert "access-control-allow-origin" not in rejected.headers
