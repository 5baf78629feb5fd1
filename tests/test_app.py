"""Front door behaviour: health, routing fallbacks, error shaping and CORS."""
from fastapi.testclient import TestClient

from expense_tracker.core.errors import ServerError
from expense_tracker.core.settings import Settings
from expense_tracker.db import get_transaction_store
from expense_tracker.main import create_app


def _broken_store():
    raise RuntimeError("database exploded")


def test_root_endpoint(client):
    response = client.get("/")
    assert response.status_code == 200
    assert "message" in response.json()


def test_health_check(client):
    assert client.get("/healthz").json() == {"status": "ok"}


def test_unknown_route_returns_not_found(client):
    response = client.get("/api/does-not-exist")

    assert response.status_code == 404
    assert response.json() == {
        "success": False,
        "error": {"message": "Route not found", "code": "NOT_FOUND", "details": {}},
    }


def test_unsupported_method_returns_not_found(client):
    response = client.patch("/api/analytics/summary")

    assert response.status_code == 404
    assert response.json()["error"]["code"] == "NOT_FOUND"


def test_unhandled_error_includes_detail_outside_production(session_factory):
    app = create_app(session_factory=session_factory, app_settings=Settings(ENV="development"))
    app.dependency_overrides[get_transaction_store] = _broken_store
    client = TestClient(app, raise_server_exceptions=False)

    response = client.get("/api/analytics/summary")

    assert response.status_code == 500
    assert response.json()["error"]["code"] == "SERVER_ERROR"
    assert response.json()["error"]["message"] == "Internal server error"
    assert response.json()["error"]["details"] == "database exploded"


def test_unhandled_error_hides_detail_in_production(session_factory):
    app = create_app(session_factory=session_factory, app_settings=Settings(ENV="production"))
    app.dependency_overrides[get_transaction_store] = _broken_store
    client = TestClient(app, raise_server_exceptions=False)

    response = client.get("/api/transactions")

    assert response.status_code == 500
    assert response.json()["error"] == {"message": "Internal server error", "code": "SERVER_ERROR", "details": {}}


def test_cors_allows_listed_and_preview_origins(session_factory):
    app = create_app(
        session_factory=session_factory,
        app_settings=Settings(CLIENT_URL="https://budget.example.com"),
    )
    client = TestClient(app)

    for origin in ("https://budget.example.com", "http://localhost:3000", "https://feature-x.vercel.app"):
        response = client.options(
            "/api/transactions",
            headers={"Origin": origin, "Access-Control-Request-Method": "POST"},
        )
        assert response.status_code == 200
        assert response.headers["access-control-allow-origin"] == origin
        assert response.headers["access-control-allow-credentials"] == "true"


def test_cors_rejects_unknown_origin(client):
    response = client.options(
        "/api/transactions",
        headers={"Origin": "https://evil.example.com", "Access-Control-Request-Method": "GET"},
    )

    assert "access-control-allow-origin" not in response.headers


def test_settings_allowed_origins_include_client_url():
    settings = Settings(CLIENT_URL="https://app.example.com", CORS_ALLOW_ORIGINS=["http://localhost:3000"])

    assert settings.allowed_origins == ["https://app.example.com", "http://localhost:3000"]
    assert Settings(ENV="Production").is_production


class _RecordingEngine:
    def __init__(self):
        self.disposed = False

    def dispose(self):
        self.disposed = True


def test_shutdown_disposes_the_engine(session_factory):
    engine = _RecordingEngine()
    app = create_app(session_factory=session_factory, engine=engine)

    with TestClient(app) as client:
        assert client.get("/api/analytics/summary").status_code == 200
        assert not engine.disposed

    assert engine.disposed
    assert app.state.engine is None
    assert app.state.session_factory is None


def test_server_error_defaults():
    error = ServerError()

    assert error.status_code == 500
    assert error.code == "SERVER_ERROR"
    assert error.message == "Internal server error"
    assert error.details == {}
