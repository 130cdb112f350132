import time

from fastapi import FastAPI, Depends, Request
from fastapi.testclient import TestClient
from fastapi_limiter import FastAPILimiter

from backend.auth.service import create_admin_token
from backend.utils.rate_limit import client_key, optional_rate_limit, rate_limit_health_info


def _make_app(times=2, seconds=60):
    app = FastAPI()

    @app.post("/api/v1/orders", dependencies=[Depends(optional_rate_limit(times, seconds))])
    def create_order():
        return {"ok": True}

    @app.post("/api/v1/orders/refresh", dependencies=[Depends(optional_rate_limit(times, seconds))])
    def refresh():
        return {"ok": True}

    @app.get("/rl_info")
    def rl_info(request: Request):
        return rate_limit_health_info(request)

    @app.get("/key")
    def key(request: Request):
        return {"key": client_key(request)}

    return app


def test_rate_limit_fallback_blocks_after_limit(monkeypatch):
    client = TestClient(_make_app(times=2, seconds=60))
    monkeypatch.setenv("LOCAL_RATE_LIMIT_FALLBACK", "1")

    assert client.post("/api/v1/orders").status_code == 200
    assert client.post("/api/v1/orders").status_code == 200
    assert client.post("/api/v1/orders").status_code == 429


def test_rate_limit_is_per_path(monkeypatch):
    client = TestClient(_make_app(times=2, seconds=60))
    monkeypatch.setenv("LOCAL_RATE_LIMIT_FALLBACK", "1")

    assert client.post("/api/v1/orders").status_code == 200
    assert client.post("/api/v1/orders").status_code == 200
    assert client.post("/api/v1/orders").status_code == 429

    # chemin différent: fenêtre indépendante
    assert client.post("/api/v1/orders/refresh").status_code == 200
    assert client.post("/api/v1/orders/refresh").status_code == 200
    assert client.post("/api/v1/orders/refresh").status_code == 429


def test_forged_bearer_tokens_share_ip_window(monkeypatch):
    client = TestClient(_make_app(times=1, seconds=60))
    monkeypatch.setenv("LOCAL_RATE_LIMIT_FALLBACK", "1")

    assert client.post("/api/v1/orders", headers={"Authorization": "Bearer token-a"}).status_code == 200
    # un nouveau jeton inventé ne contourne pas la limite
    assert client.post("/api/v1/orders", headers={"Authorization": "Bearer token-b"}).status_code == 429
    assert client.post("/api/v1/orders").status_code == 429


def test_rate_limit_separates_verified_admin_token(monkeypatch, admin_credentials):
    client = TestClient(_make_app(times=1, seconds=60))
    monkeypatch.setenv("LOCAL_RATE_LIMIT_FALLBACK", "1")
    admin = {"Authorization": f"Bearer {create_admin_token('admin')}"}

    assert client.post("/api/v1/orders").status_code == 200
    assert client.post("/api/v1/orders").status_code == 429
    assert client.post("/api/v1/orders", headers=admin).status_code == 200
    assert client.post("/api/v1/orders", headers=admin).status_code == 429


def test_client_key_hashes_verified_bearer_token(admin_credentials):
    client = TestClient(_make_app())
    token = create_admin_token("admin")
    key = client.get("/key", headers={"Authorization": f"Bearer {token}"}).json()["key"]
    assert key.startswith("admin:")
    assert key.endswith(":/key")
    assert token not in key
    assert client.get("/key", headers={"Authorization": "Bearer secret-token"}).json()["key"].startswith("ip:")
    assert client.get("/key").json()["key"].startswith("ip:")


def test_rate_limit_resets_after_window_sleep(monkeypatch):
    client = TestClient(_make_app(times=2, seconds=1))
    monkeypatch.setenv("LOCAL_RATE_LIMIT_FALLBACK", "1")

    assert client.post("/api/v1/orders").status_code == 200
    assert client.post("/api/v1/orders").status_code == 200
    assert client.post("/api/v1/orders").status_code == 429

    time.sleep(1.1)
    assert client.post("/api/v1/orders").status_code == 200


def test_rate_limit_disabled_flag_bypasses_limit(monkeypatch):
    monkeypatch.delenv("LOCAL_RATE_LIMIT_FALLBACK", raising=False)
    app = _make_app(times=2, seconds=60)
    app.state.rate_limit_enabled = False
    client = TestClient(app)

    for _ in range(4):
        assert client.post("/api/v1/orders").status_code == 200


def test_rate_limit_without_redis_serves_requests(monkeypatch):
    monkeypatch.delenv("LOCAL_RATE_LIMIT_FALLBACK", raising=False)
    monkeypatch.setattr(FastAPILimiter, "redis", None, raising=False)
    app = _make_app(times=1, seconds=60)
    app.state.rate_limit_enabled = True
    client = TestClient(app)

    assert client.post("/api/v1/orders").status_code == 200
    assert client.post("/api/v1/orders").status_code == 200


def test_rate_limit_health_info(monkeypatch):
    monkeypatch.delenv("LOCAL_RATE_LIMIT_FALLBACK", raising=False)
    app = _make_app()
    client = TestClient(app)
    app.state.rate_limit_enabled = True

    monkeypatch.setattr(FastAPILimiter, "redis", None, raising=False)
    info = client.get("/rl_info").json()
    assert info["enabled"] is True
    assert info["ready"] is False
    assert info["backend"] is None

    monkeypatch.setattr(FastAPILimiter, "redis", object(), raising=False)
    monkeypatch.setenv("RATE_LIMIT_REDIS_URL", "redis://localhost:6379/0")
    info2 = client.get("/rl_info").json()
    assert info2["ready"] is True
    assert info2["backend"] == "redis"
    assert info2["redis"] == {"scheme": "redis", "host": "localhost", "port": 6379}


def test_rate_limit_health_info_memory_backend(monkeypatch):
    monkeypatch.setenv("LOCAL_RATE_LIMIT_FALLBACK", "1")
    monkeypatch.setattr(FastAPILimiter, "redis", None, raising=False)
    info = TestClient(_make_app()).get("/rl_info").json()
    assert info["backend"] == "memory"
