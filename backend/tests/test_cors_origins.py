from fastapi.testclient import TestClient

from backend.contract_billing.main import (
    LOCAL_DEVELOPMENT_ORIGINS,
    _resolve_allowed_origins,
    _split_raw_origins,
    app,
)


def test_split_raw_origins_accepts_commas_and_whitespace():
    raw = "http://localhost:5173, http://127.0.0.1:5173 http://0.0.0.0:5173"
    assert _split_raw_origins(raw) == [
        "http://localhost:5173",
        "http://127.0.0.1:5173",
        "http://0.0.0.0:5173",
    ]


def test_resolve_allowed_origins_keeps_local_development_origins(monkeypatch):
    monkeypatch.setenv("BACKEND_ALLOWED_ORIGINS", "https://backoffice.example.com/")

    origins = _resolve_allowed_origins()

    assert "https://backoffice.example.com" in origins
    assert LOCAL_DEVELOPMENT_ORIGINS <= set(origins)


def test_contracts_endpoint_includes_cors_headers_for_local_dev_origin():
    client = TestClient(app)
    origin = "http://localhost:5173"

    response = client.options(
        "/contracts/",
        headers={
            "Origin": origin,
            "Access-Control-Request-Method": "GET",
        },
    )

    assert response.status_code == 200
    assert response.headers.get("access-control-allow-origin") == origin


def test_get_app_returns_the_configured_application():
    from backend.contract_billing import get_app

    assert get_app() is app
    assert TestClient(app).get("/").json() == {"status": "ok"}
