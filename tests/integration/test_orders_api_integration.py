import pytest

from backend.payments.base import Confirmation, Outcome, PaymentProviderAdapter, ProviderAttempt, ProviderError

ORDER_ID = "0b8f3c8e-2d7a-4a55-9f3e-6b1c2d3e4f50"


class StubAdapter(PaymentProviderAdapter):
    name = "stripe"

    def __init__(self):
        self.opened = 0
        self.status = Confirmation("cs_test_int", Outcome.PENDING)
        self.fail = False

    def open_attempt(self, order, *, return_url, cancel_url):
        if self.fail:
            raise ProviderError("Stripe indisponible", provider="stripe")
        self.opened += 1
        return ProviderAttempt("cs_test_int", {"url": "https://checkout.stripe.com/c/pay/cs_test_int"})

    def confirm(self, signal):
        return self.status

    def fetch_status(self, provider_attempt_ref):
        return self.status

    def resume_attempt(self, provider_attempt_ref):
        if self.status.outcome != Outcome.PENDING:
            return None
        return ProviderAttempt(provider_attempt_ref, {"url": f"https://checkout.stripe.com/c/pay/{provider_attempt_ref}"})


@pytest.fixture
def stub_adapter(monkeypatch):
    adapter = StubAdapter()
    monkeypatch.setattr("backend.orders.service.get_adapter", lambda provider: adapter)
    return adapter


def _body(**overrides):
    body = {
        "id": ORDER_ID,
        "email": "buyer@example.com",
        "message": "Happy birthday Kofi!",
        "photo_url": "https://cdn.example.com/kofi.jpg",
        "music_option": "custom",
        "delivery_method": "express",
        "payment_method": "stripe",
        "total_price": 0.5,
    }
    body.update(overrides)
    return body


def test_create_order_returns_checkout_handle(client, store, stub_adapter):
    r = client.post("/api/v1/orders", json=_body())
    assert r.status_code == 200
    data = r.json()
    assert data["order_id"] == ORDER_ID
    assert data["provider"] == "stripe"
    assert data["total_usd"] == 37.97
    assert data["client_handle"]["url"].startswith("https://checkout.stripe.com/")
    assert store.get_order(ORDER_ID)["provider_attempt_ref"] == "cs_test_int"


def test_create_order_resubmission_returns_same_handle(client, store, stub_adapter):
    first = client.post("/api/v1/orders", json=_body())
    second = client.post("/api/v1/orders", json=_body())
    assert second.status_code == 200
    assert second.json() == first.json()
    assert stub_adapter.opened == 1
    assert len(store.rows) == 1


def test_create_order_resubmission_with_other_content_is_conflict(client, store, stub_adapter):
    assert client.post("/api/v1/orders", json=_body()).status_code == 200
    r = client.post("/api/v1/orders", json=_body(message="Another message"))
    assert r.status_code == 409
    assert stub_adapter.opened == 1


def test_create_order_resubmission_after_payment_is_conflict(client, store, stub_adapter):
    assert client.post("/api/v1/orders", json=_body()).status_code == 200
    store.transition_to_paid(ORDER_ID, "pi_int")
    assert client.post("/api/v1/orders", json=_body()).status_code == 409


def test_create_order_validation_errors(client, store, stub_adapter):
    assert client.post("/api/v1/orders", json=_body(email="not-an-email")).status_code == 422
    assert client.post("/api/v1/orders", json=_body(id="not-a-uuid")).status_code == 422
    assert client.post("/api/v1/orders", json=_body(payment_method="bitcoin")).status_code == 422
    assert store.rows == {}


def test_create_order_provider_failure_is_502(client, store, stub_adapter):
    stub_adapter.fail = True
    r = client.post("/api/v1/orders", json=_body())
    assert r.status_code == 502
    # la commande reste pending sans tentative: une nouvelle soumission peut réessayer
    assert store.get_order(ORDER_ID)["provider_attempt_ref"] is None
    stub_adapter.fail = False
    assert client.post("/api/v1/orders", json=_body()).status_code == 200


def test_create_order_pricing_unavailable_is_503(client, store, stub_adapter, monkeypatch):
    def _boom(keys):
        raise RuntimeError("settings down")

    monkeypatch.setattr("backend.pricing.repository.fetch_settings", _boom)
    assert client.post("/api/v1/orders", json=_body()).status_code == 503
    assert store.rows == {}


def test_get_order_public_view(client, store):
    store.seed(ORDER_ID, total_usd=27.98, provider="paypal", ref="PP-1")
    r = client.get(f"/api/v1/orders/{ORDER_ID}")
    assert r.status_code == 200
    assert r.json() == {"id": ORDER_ID, "status": "pending", "total_usd": 27.98, "payment_provider": "paypal"}
    assert "no-store" in r.headers["Cache-Control"]


def test_get_order_unknown_is_404(client, store):
    assert client.get(f"/api/v1/orders/{ORDER_ID}").status_code == 404
    assert client.get("/api/v1/orders/not-a-uuid").status_code == 422


def test_refresh_order_applies_status(client, store, stub_adapter, notified):
    store.seed(ORDER_ID, ref="cs_test_int", provider="stripe")
    stub_adapter.status = Confirmation("cs_test_int", Outcome.SUCCEEDED, "pi_int")

    r = client.post(f"/api/v1/orders/{ORDER_ID}/refresh")
    assert r.status_code == 200
    assert r.json() == {"order_id": ORDER_ID, "status": "paid", "transition": "applied"}

    again = client.post(f"/api/v1/orders/{ORDER_ID}/refresh")
    assert again.json()["transition"] == "already_applied"
    assert notified.events() == ["paid"]


def test_refresh_unknown_order_is_404(client, store, stub_adapter):
    assert client.post(f"/api/v1/orders/{ORDER_ID}/refresh").status_code == 404


def test_pricing_endpoint(client):
    r = client.get("/api/v1/pricing")
    assert r.status_code == 200
    assert r.json() == {"base": 19.99, "customSong": 9.99, "expressDelivery": 7.99}


def test_health(client):
    assert client.get("/health").json() == {"ok": True}
    info = client.get("/health/rate-limit").json()
    assert info["enabled"] is False


def test_security_headers_and_https_redirect(client):
    r = client.get("/health")
    assert r.headers["X-Frame-Options"] == "DENY"
    assert "frame-ancestors 'none'" in r.headers["Content-Security-Policy"]

    redirected = client.get("/health", headers={"x-forwarded-proto": "http"}, follow_redirects=False)
    assert redirected.status_code == 301
    assert redirected.headers["location"].startswith("https://")


def test_no_server_session_cookie(client, app):
    assert "SessionMiddleware" not in {m.cls.__name__ for m in app.user_middleware}
    r = client.get("/health")
    assert "session" not in r.cookies
