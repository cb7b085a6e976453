from __future__ import annotations

import asyncio
import json
from types import SimpleNamespace

import pytest
from sqlalchemy.orm import Session

from papermate import serve
from papermate.config import Settings, get_settings
from papermate.database import get_db
from papermate.errors import InsufficientStockError, NotFoundError, PaperMateError
from papermate.main import create_app


def _settings(**overrides) -> Settings:
    data = dict(database_url="sqlite+pysqlite:///:memory:", environment="test", cors_origins=["*"])
    data.update(overrides)
    return Settings(**data)


def _route(app, path, method="GET"):
    for route in app.routes:
        if getattr(route, "path", None) == path and method in getattr(route, "methods", set()):
            return route
    raise AssertionError(f"{method} {path} is not registered")


def test_all_app_routes_are_registered():
    app = create_app(_settings())
    paths = app.openapi()["paths"]

    for method, path in [
        ("GET", "/api/health"),
        ("GET", "/catalog/products"),
        ("PUT", "/catalog/products/{code}"),
        ("POST", "/catalog/parties"),
        ("GET", "/inventory/stock"),
        ("GET", "/inventory/stock/{product_code}"),
        ("GET", "/inventory/ledger"),
        ("POST", "/purchasing/purchase-orders"),
        ("POST", "/purchasing/purchase-orders/{purchase_order_id}/receive"),
        ("POST", "/production/orders"),
        ("POST", "/production/orders/{production_order_id}/complete"),
        ("POST", "/sales/orders"),
        ("POST", "/sales/orders/{sales_order_id}/ship"),
        ("PATCH", "/sales/orders/{sales_order_id}/payment"),
    ]:
        assert method.lower() in paths.get(path, {}), f"{method} {path} is not registered"


def test_health_reports_environment():
    settings = _settings(environment="staging")
    app = create_app(settings)

    route = _route(app, "/api/health")
    assert route.endpoint(app_settings=settings) == {"ok": True, "env": "staging"}


def test_lifespan_builds_and_releases_session_factory():
    app = create_app(_settings())

    async def _run():
        async with app.router.lifespan_context(app):
            request = SimpleNamespace(app=app)
            db_iter = get_db(request)
            db = next(db_iter)
            assert isinstance(db, Session)
            db_iter.close()

    asyncio.run(_run())
    assert app.state.settings.environment == "test"


def test_domain_errors_map_to_status_codes():
    app = create_app(_settings())
    handler = app.exception_handlers[PaperMateError]
    request = SimpleNamespace(url=SimpleNamespace(path="/sales/orders/1/ship"))

    response = asyncio.run(handler(request, InsufficientStockError("not enough plates")))
    assert response.status_code == 409
    assert json.loads(response.body) == {"detail": "not enough plates"}

    response = asyncio.run(handler(request, NotFoundError("missing")))
    assert response.status_code == 404


def test_settings_read_from_environment(monkeypatch):
    monkeypatch.delenv("DATABASE_WRITE_URL", raising=False)
    monkeypatch.setenv("DATABASE_URL", "postgresql+psycopg2://pm:pm@localhost:5432/papermate")
    monkeypatch.setenv("PAPERMATE_DEFAULT_WAREHOUSE", " annex ")
    monkeypatch.setenv("PAPERMATE_ALLOW_NEGATIVE_STOCK", "yes")
    monkeypatch.setenv("CORS_ALLOWED_ORIGINS", "https://a.example, https://b.example")
    monkeypatch.delenv("PAPERMATE_ENV", raising=False)
    monkeypatch.setenv("VERCEL", "1")

    settings = get_settings()

    assert settings.database_url.startswith("postgresql+psycopg2://")
    assert settings.default_warehouse == "ANNEX"
    assert settings.allow_negative_stock is True
    assert settings.cors_origins == ["https://a.example", "https://b.example"]
    assert settings.environment == "vercel"


def test_server_options_from_environment(monkeypatch):
    monkeypatch.setenv("PORT", "9000")
    monkeypatch.setenv("RELOAD", "on")
    monkeypatch.setenv("LOG_LEVEL", "DEBUG")
    monkeypatch.delenv("SSL_CERTFILE", raising=False)
    monkeypatch.delenv("SSL_KEYFILE", raising=False)

    kwargs = serve.ServerOptions.from_env().uvicorn_kwargs()

    assert kwargs["factory"] is True
    assert kwargs["port"] == 9000
    assert kwargs["reload"] is True
    assert kwargs["log_level"] == "debug"
    assert "ssl_certfile" not in kwargs


def test_server_options_require_cert_and_key_together():
    options = serve.ServerOptions(ssl_certfile="/etc/ssl/papermate.pem")

    with pytest.raises(RuntimeError):
        options.uvicorn_kwargs()


def test_serve_main_runs_app_factory(monkeypatch):
    calls = []
    monkeypatch.setattr(serve.uvicorn, "run", lambda app, **kwargs: calls.append((app, kwargs)))
    monkeypatch.delenv("SSL_CERTFILE", raising=False)
    monkeypatch.delenv("SSL_KEYFILE", raising=False)

    serve.main()

    assert calls[0][0] == "papermate.main:create_app"
    assert calls[0][1]["factory"] is True
